from django.urls import path
from .views import (
    SaleListCreateView,
    SaleDetailView,
    ExpenseListCreateView,
    ExpenseDetailView,
    DailySummaryView,
    RangeSummaryView,
    DashboardView,
)

app_name = 'finance'

urlpatterns = [
    path('sales/', SaleListCreateView.as_view(), name='sale-list'),
    path('sales/<int:pk>/', SaleDetailView.as_view(), name='sale-detail'),
    path('expenses/', ExpenseListCreateView.as_view(), name='expense-list'),
    path('expenses/<int:pk>/', ExpenseDetailView.as_view(), name='expense-detail'),
    path('summary/daily/', DailySummaryView.as_view(), name='summary-daily'),
    path('summary/range/', RangeSummaryView.as_view(), name='summary-range'),
    path('summary/dashboard/', DashboardView.as_view(), name='summary-dashboard'),
]
