"""
Scheduler for nightly branch backups
Runs every day at BACKUP_SCHEDULE_HOUR venue time
"""
import logging
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from django.conf import settings
from django_apscheduler.jobstores import DjangoJobStore, register_events

logger = logging.getLogger(__name__)


def run_backup_job():
    """
    Back up every active branch, then prune expired automatic backups
    """
    from apps.branches.models import Branch
    from apps.backups.services import BackupService

    success_count = 0
    fail_count = 0
    for branch in Branch.objects.filter(is_active=True):
        try:
            BackupService.create_backup(branch, automatic=True)
            success_count += 1
        except Exception as e:
            # One failing branch must not stop the others
            fail_count += 1
            logger.error(f"Backup of {branch.branch_name} failed: {str(e)}")

    pruned = BackupService.prune()
    logger.info(f"Nightly backup completed! Branches: {success_count}, Failed: {fail_count}, Pruned: {pruned}")


def start_scheduler():
    venue_tz = ZoneInfo(settings.VENUE_TIME_ZONE)

    scheduler = BackgroundScheduler(timezone=venue_tz)
    scheduler.add_jobstore(DjangoJobStore(), "default")

    scheduler.add_job(
        run_backup_job,
        trigger=CronTrigger(hour=settings.BACKUP_SCHEDULE_HOUR, minute=0, timezone=venue_tz),
        id='nightly_backup_job',
        name='Back Up Every Branch Nightly',
        replace_existing=True,
    )

    register_events(scheduler)

    scheduler.start()
    logger.info(f"Backup scheduler started. Will run daily at {settings.BACKUP_SCHEDULE_HOUR}:00 {settings.VENUE_TIME_ZONE}.")
