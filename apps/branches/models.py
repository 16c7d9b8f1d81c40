from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Branch(models.Model):
    """
    A physical skating park location. Tickets, sales, expenses and
    backups are all scoped to one branch.
    """
    branch_name = models.CharField(
        max_length=200,
        unique=True,
        help_text="Display name of the branch"
    )
    location = models.CharField(max_length=255, blank=True, default='')
    contact_number = models.CharField(max_length=20, blank=True, default='')
    email = models.EmailField(blank=True, default='')
    manager = models.CharField(max_length=200, blank=True, default='')
    opening_time = models.TimeField(null=True, blank=True)
    closing_time = models.TimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'branches'
        verbose_name = 'Branch'
        verbose_name_plural = 'Branches'
        ordering = ['branch_name']

    def __str__(self):
        return self.branch_name


class BranchSettings(models.Model):
    """
    Per-branch business details printed on tickets and receipts, plus the
    currency new tickets are issued in.
    """
    CURRENCY_CHOICES = [
        ('NPR', 'Nepalese Rupee'),
        ('USD', 'US Dollar'),
    ]
    LANGUAGE_CHOICES = [
        ('en', 'English'),
        ('ne', 'Nepali'),
    ]

    branch = models.OneToOneField(Branch, on_delete=models.CASCADE, related_name='settings')
    company_name = models.CharField(max_length=200, blank=True, default='')
    company_address = models.CharField(max_length=255, blank=True, default='')
    contact_numbers = models.JSONField(default=list, blank=True)
    email = models.EmailField(blank=True, default='')
    pan_number = models.CharField(max_length=30, blank=True, default='')
    reg_no = models.CharField(max_length=50, blank=True, default='')
    logo = models.CharField(max_length=500, blank=True, default='', help_text="Logo URL or path")
    default_currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default='NPR')
    default_language = models.CharField(max_length=2, choices=LANGUAGE_CHOICES, default='en')
    conversion_rate = models.DecimalField(
        max_digits=10,
        decimal_places=4,
        default=Decimal('1.6'),
        validators=[MinValueValidator(Decimal('0.0001'))],
        help_text="Rupees per unit of the foreign currency"
    )
    nepali_date_format = models.CharField(max_length=20, default='YYYY-MM-DD')
    ticket_rules = models.JSONField(default=list, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'branch_settings'
        verbose_name = 'Branch settings'
        verbose_name_plural = 'Branch settings'

    def __str__(self):
        return f"Settings of {self.branch}"

    @classmethod
    def for_branch(cls, branch):
        obj, _ = cls.objects.get_or_create(
            branch=branch,
            defaults={
                'company_name': branch.branch_name,
                'default_currency': settings.DEFAULT_CURRENCY,
            }
        )
        return obj

    @classmethod
    def currency_for(cls, branch):
        currency = cls.objects.filter(branch=branch).values_list('default_currency', flat=True).first()
        return currency or settings.DEFAULT_CURRENCY
