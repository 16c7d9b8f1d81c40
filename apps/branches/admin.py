from django.contrib import admin
from .models import Branch, BranchSettings


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ('branch_name', 'location', 'contact_number', 'manager', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('branch_name', 'location', 'manager')
    readonly_fields = ('created_at', 'updated_at')


@admin.register(BranchSettings)
class BranchSettingsAdmin(admin.ModelAdmin):
    list_display = ('branch', 'company_name', 'default_currency', 'conversion_rate', 'updated_at')
    list_filter = ('default_currency',)
    readonly_fields = ('updated_at',)
