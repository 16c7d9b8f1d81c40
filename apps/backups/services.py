import json
import logging
from datetime import timedelta

from django.conf import settings
from django.core import serializers
from django.core.serializers.base import DeserializationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.finance.models import Expense, Sale, SaleItem
from apps.tickets.exceptions import ValidationError
from apps.tickets.models import ExtraTimeEntry, Ticket

from .models import Backup

logger = logging.getLogger(__name__)

PAYLOAD_VERSION = 1

# Restore order follows foreign keys: parents before children
SECTIONS = [
    ('tickets', 'tickets.ticket'),
    ('extra_time', 'tickets.extratimeentry'),
    ('sales', 'finance.sale'),
    ('sale_items', 'finance.saleitem'),
    ('expenses', 'finance.expense'),
]


class BackupService:
    """
    Branch level snapshots built on Django's serialization framework
    """

    @staticmethod
    def _querysets(branch):
        return {
            'tickets': Ticket.objects.filter(branch=branch).order_by('pk'),
            'extra_time': ExtraTimeEntry.objects.filter(ticket__branch=branch).order_by('pk'),
            'sales': Sale.objects.filter(branch=branch).order_by('pk'),
            'sale_items': SaleItem.objects.filter(sale__branch=branch).order_by('pk'),
            'expenses': Expense.objects.filter(branch=branch).order_by('pk'),
        }

    @classmethod
    def create_backup(cls, branch, user=None, name=None, automatic=False):
        now = timezone.now()
        payload = {
            'version': PAYLOAD_VERSION,
            'branch': branch.pk,
            'branch_name': branch.branch_name,
            'created_at': now.isoformat(),
        }
        for key, queryset in cls._querysets(branch).items():
            payload[key] = json.loads(serializers.serialize('json', queryset))

        backup = Backup.objects.create(
            branch=branch,
            created_by=user,
            name=name or f"{branch.branch_name} {timezone.localtime(now).strftime('%Y-%m-%d %H:%M')}",
            payload=payload,
            ticket_count=len(payload['tickets']),
            extra_time_count=len(payload['extra_time']),
            sale_count=len(payload['sales']),
            expense_count=len(payload['expenses']),
            is_automatic=automatic,
        )
        logger.info(
            f"Backup {backup.pk} of {branch.branch_name}: {backup.ticket_count} tickets, "
            f"{backup.sale_count} sales, {backup.expense_count} expenses"
        )
        return backup

    @staticmethod
    def _load(backup):
        payload = backup.payload or {}
        if payload.get('version') != PAYLOAD_VERSION:
            raise ValidationError(f"Unsupported backup version: {payload.get('version')}")
        if payload.get('branch') != backup.branch_id:
            raise ValidationError("Backup belongs to a different branch")

        objects = []
        for key, model_label in SECTIONS:
            records = payload.get(key) or []
            if any(record.get('model') != model_label for record in records):
                raise ValidationError(f"Backup section '{key}' contains foreign records")
            try:
                objects.extend(serializers.deserialize('python', records))
            except DeserializationError as e:
                raise ValidationError(f"Backup is corrupt: {str(e)}")

        for deserialized in objects:
            branch_id = getattr(deserialized.object, 'branch_id', backup.branch_id)
            if branch_id != backup.branch_id:
                raise ValidationError("Backup contains records of another branch")
        return objects

    @classmethod
    def restore_backup(cls, backup):
        """
        Replace the branch's tickets, sales and expenses with the snapshot.
        All or nothing: any failure rolls the branch back untouched.
        """
        objects = cls._load(backup)
        querysets = cls._querysets(backup.branch)

        try:
            with transaction.atomic():
                # Children go with their parents through CASCADE
                querysets['tickets'].delete()
                querysets['sales'].delete()
                querysets['expenses'].delete()
                for deserialized in objects:
                    deserialized.save()

                backup.restored_at = timezone.now()
                backup.save(update_fields=['restored_at'])
        except IntegrityError as e:
            raise ValidationError(f"Backup references records that no longer exist: {str(e)}")

        logger.info(f"Backup {backup.pk} restored to {backup.branch.branch_name}: {len(objects)} records")
        return backup

    @staticmethod
    def prune(retention_days=None):
        """
        Delete automatic backups older than the retention window
        """
        if retention_days is None:
            retention_days = settings.BACKUP_RETENTION_DAYS
        cutoff = timezone.now() - timedelta(days=retention_days)
        deleted, _ = Backup.objects.filter(is_automatic=True, created_at__lt=cutoff).delete()
        if deleted:
            logger.info(f"Pruned {deleted} backups older than {retention_days} days")
        return deleted
