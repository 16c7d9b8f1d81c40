from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Sale(models.Model):
    """
    Counter sale of items other than tickets (drinks, gear rental, ...)
    """
    PAYMENT_CHOICES = [
        ('Cash', 'Cash'),
        ('Card', 'Card'),
        ('Online', 'Online'),
    ]

    sale_number = models.CharField(max_length=30, unique=True, editable=False)
    branch = models.ForeignKey('branches.Branch', on_delete=models.PROTECT, related_name='sales')
    staff = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='sales')
    customer_name = models.CharField(max_length=200, blank=True, default='')
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    payment_method = models.CharField(max_length=10, choices=PAYMENT_CHOICES, default='Cash')
    is_sale = models.BooleanField(default=True, help_text="Only sales are counted in reports")
    sale_date = models.DateTimeField(db_index=True)
    local_date = models.CharField(max_length=10, help_text="Bikram Sambat date, YYYY-MM-DD")
    remarks = models.CharField(max_length=500, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'sales'
        verbose_name = 'Sale'
        verbose_name_plural = 'Sales'
        ordering = ['-sale_date']
        indexes = [
            models.Index(fields=['branch', 'sale_date'], name='sales_branch_date_idx'),
        ]

    def __str__(self):
        return f"Sale {self.sale_number} - {self.total_amount}"


class SaleItem(models.Model):
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name='items')
    item_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    price = models.DecimalField(max_digits=12, decimal_places=2)
    total = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = 'sale_items'
        ordering = ['id']

    def __str__(self):
        return f"{self.item_name} x{self.quantity}"


class Expense(models.Model):
    PAYMENT_CHOICES = [
        ('Cash', 'Cash'),
        ('Card', 'Card'),
        ('Bank Transfer', 'Bank Transfer'),
    ]

    expense_number = models.CharField(max_length=30, unique=True, editable=False)
    branch = models.ForeignKey('branches.Branch', on_delete=models.PROTECT, related_name='expenses')
    staff = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='expenses')
    category = models.CharField(max_length=100, db_index=True)
    description = models.CharField(max_length=500, blank=True, default='')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_CHOICES, default='Cash')
    expense_date = models.DateTimeField(db_index=True)
    local_date = models.CharField(max_length=10, help_text="Bikram Sambat date, YYYY-MM-DD")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'expenses'
        verbose_name = 'Expense'
        verbose_name_plural = 'Expenses'
        ordering = ['-expense_date']
        indexes = [
            models.Index(fields=['branch', 'expense_date'], name='expenses_branch_date_idx'),
        ]

    def __str__(self):
        return f"Expense {self.expense_number} - {self.category}"
