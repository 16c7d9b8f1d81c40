import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class BackupsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.backups'
    verbose_name = 'Backups'

    def ready(self):
        """
        Start the nightly backup scheduler when explicitly enabled
        """
        if not settings.ENABLE_BACKUP_SCHEDULER:
            return
        try:
            from .scheduler import start_scheduler
            start_scheduler()
        except Exception as e:
            # The API keeps serving without scheduled backups
            logger.error(f"Failed to start backup scheduler: {str(e)}")
