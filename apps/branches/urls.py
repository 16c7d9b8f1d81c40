from django.urls import path
from .views import BranchListCreateView, BranchDetailView, BranchSettingsView

app_name = 'branches'

urlpatterns = [
    path('', BranchListCreateView.as_view(), name='branch-list'),
    path('<int:pk>/', BranchDetailView.as_view(), name='branch-detail'),
    path('<int:pk>/settings/', BranchSettingsView.as_view(), name='branch-settings'),
]
