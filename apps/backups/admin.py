from django.contrib import admin
from .models import Backup


@admin.register(Backup)
class BackupAdmin(admin.ModelAdmin):
    list_display = ['name', 'branch', 'ticket_count', 'sale_count', 'expense_count', 'is_automatic', 'restored_at', 'created_at']
    list_filter = ['branch', 'is_automatic', 'created_at']
    search_fields = ['name', 'branch__branch_name']
    readonly_fields = ['ticket_count', 'extra_time_count', 'sale_count', 'expense_count', 'restored_at', 'created_at']
    exclude = ['payload']
