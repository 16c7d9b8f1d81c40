from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class Backup(models.Model):
    """
    Snapshot of one branch's tickets, extra time, sales and expenses
    """
    branch = models.ForeignKey('branches.Branch', on_delete=models.CASCADE, related_name='backups')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='backups'
    )
    name = models.CharField(max_length=200)
    payload = models.JSONField(default=dict, encoder=DjangoJSONEncoder)
    ticket_count = models.PositiveIntegerField(default=0)
    extra_time_count = models.PositiveIntegerField(default=0)
    sale_count = models.PositiveIntegerField(default=0)
    expense_count = models.PositiveIntegerField(default=0)
    is_automatic = models.BooleanField(default=False, help_text="Created by the nightly scheduler")
    restored_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'backups'
        verbose_name = 'Backup'
        verbose_name_plural = 'Backups'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.branch})"
