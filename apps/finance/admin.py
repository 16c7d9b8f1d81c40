from django.contrib import admin
from .models import Sale, SaleItem, Expense


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ('sale_number', 'branch', 'customer_name', 'total_amount', 'payment_method', 'is_sale', 'local_date')
    list_filter = ('branch', 'payment_method', 'is_sale')
    search_fields = ('sale_number', 'customer_name', 'items__item_name')
    readonly_fields = ('sale_number', 'sale_date', 'local_date', 'created_at', 'updated_at')
    inlines = [SaleItemInline]


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ('expense_number', 'branch', 'category', 'amount', 'payment_method', 'local_date')
    list_filter = ('branch', 'category', 'payment_method')
    search_fields = ('expense_number', 'category', 'description')
    readonly_fields = ('expense_number', 'expense_date', 'local_date', 'created_at', 'updated_at')
