from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class SequenceCounter(models.Model):
    """
    Durable named counter used to mint ticket, sale and expense numbers
    """
    name = models.CharField(max_length=50, unique=True)
    current_value = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'sequence_counters'
        verbose_name = 'Sequence Counter'
        verbose_name_plural = 'Sequence Counters'

    def __str__(self):
        return f"{self.name}={self.current_value}"


class Ticket(models.Model):
    """
    Admission record for one or more players
    """
    TYPE_ADULT = 'Adult'
    TYPE_CHILD = 'Child'
    TYPE_GROUP = 'Group'
    TYPE_CUSTOM = 'Custom'
    TYPE_CHOICES = [
        (TYPE_ADULT, 'Adult'),
        (TYPE_CHILD, 'Child'),
        (TYPE_GROUP, 'Group'),
        (TYPE_CUSTOM, 'Custom'),
    ]

    STATUS_BOOKED = 'booked'
    STATUS_PLAYING = 'playing'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_BOOKED, 'Booked'),
        (STATUS_PLAYING, 'Playing'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED)

    REFUND_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('online', 'Online'),
        ('bank', 'Bank'),
        ('wallet', 'Wallet'),
        ('other', 'Other'),
    ]

    ticket_number = models.CharField(
        max_length=30,
        unique=True,
        editable=False,
        help_text="Zero padded sequential number, assigned once"
    )
    customer_name = models.CharField(max_length=200, blank=True, default='')
    player_names = models.JSONField(default=list, blank=True)
    contact_number = models.CharField(max_length=20, blank=True, default='')
    number_of_people = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    ticket_type = models.CharField(max_length=10, choices=TYPE_CHOICES)

    per_person_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Amount actually charged, including extra time"
    )
    currency = models.CharField(max_length=3, default='NPR')

    booking_date = models.DateTimeField(db_index=True, help_text="Authoritative booking instant")
    booking_local_date = models.CharField(max_length=10, help_text="Bikram Sambat date, YYYY-MM-DD")
    booking_time = models.CharField(max_length=8, help_text="Venue wall clock, HH:MM:SS")

    branch = models.ForeignKey(
        'branches.Branch',
        on_delete=models.PROTECT,
        related_name='tickets'
    )
    staff = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='tickets'
    )
    remarks = models.CharField(max_length=500, blank=True, default='')

    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_BOOKED,
        db_index=True
    )
    total_players = models.PositiveIntegerField(default=1)
    played_players = models.PositiveIntegerField(default=0)
    waiting_players = models.PositiveIntegerField(default=1)
    refunded_players_count = models.PositiveIntegerField(default=0)

    is_refunded = models.BooleanField(default=False, db_index=True)
    refund_reason = models.CharField(max_length=500, blank=True, default='')
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    refunded_players = models.JSONField(default=list, blank=True)
    refund_name = models.CharField(max_length=200, blank=True, default='')
    refund_method = models.CharField(max_length=10, choices=REFUND_METHOD_CHOICES, blank=True, default='')
    refunded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='refunded_tickets'
    )
    payment_reference = models.CharField(max_length=100, blank=True, default='')

    group_name = models.CharField(max_length=200, blank=True, default='')
    group_number = models.CharField(max_length=50, blank=True, default='')
    group_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    total_members = models.PositiveIntegerField(default=0)

    total_extra_minutes = models.PositiveIntegerField(default=0)
    printed = models.BooleanField(default=False)
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tickets'
        verbose_name = 'Ticket'
        verbose_name_plural = 'Tickets'
        ordering = ['-booking_date']
        indexes = [
            models.Index(fields=['branch', 'booking_date'], name='tickets_branch_booked_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(
                    total_players=models.F('played_players')
                    + models.F('waiting_players')
                    + models.F('refunded_players_count')
                ),
                name='tickets_player_counts_balance',
            ),
        ]

    def __str__(self):
        return f"Ticket {self.ticket_number} - {self.customer_name}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def is_inactive(self, now=None):
        """
        Display-only: booked more than the configured window ago and not refunded
        """
        now = now or timezone.now()
        window = timedelta(minutes=settings.TICKET_INACTIVE_AFTER_MINUTES)
        return not self.is_refunded and now - self.booking_date > window

    def display_status(self, now=None):
        if self.is_refunded:
            return 'Refunded'
        if self.is_inactive(now):
            return 'Deactivated'
        return 'Playing'


class ExtraTimeEntry(models.Model):
    """
    Chargeable add-on extending a ticket's play time. Append-only.
    """
    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name='extra_time_entries')
    added_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='extra_time_entries'
    )
    minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    label = models.CharField(max_length=100, blank=True, default='')
    notes = models.CharField(max_length=500, blank=True, default='')
    added_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = 'ticket_extra_time_entries'
        verbose_name = 'Extra Time Entry'
        verbose_name_plural = 'Extra Time Entries'
        ordering = ['added_at', 'id']

    def __str__(self):
        return f"{self.ticket.ticket_number} +{self.minutes}m"
