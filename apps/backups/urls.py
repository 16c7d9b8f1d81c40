from django.urls import path
from .views import BackupListCreateView, BackupDetailView, BackupRestoreView, BackupDownloadView

app_name = 'backups'

urlpatterns = [
    path('', BackupListCreateView.as_view(), name='backup-list'),
    path('<int:pk>/', BackupDetailView.as_view(), name='backup-detail'),
    path('<int:pk>/restore/', BackupRestoreView.as_view(), name='backup-restore'),
    path('<int:pk>/download/', BackupDownloadView.as_view(), name='backup-download'),
]
