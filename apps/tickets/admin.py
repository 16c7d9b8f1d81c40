from django.contrib import admin
from .models import Ticket, ExtraTimeEntry, SequenceCounter


class ExtraTimeEntryInline(admin.TabularInline):
    model = ExtraTimeEntry
    extra = 0
    fields = ('minutes', 'amount', 'label', 'notes', 'added_by', 'added_at')
    readonly_fields = fields
    can_delete = False


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = (
        'ticket_number', 'customer_name', 'branch', 'ticket_type', 'number_of_people',
        'fee', 'status', 'is_refunded', 'booking_local_date', 'booking_time'
    )
    list_filter = ('status', 'ticket_type', 'is_refunded', 'branch')
    search_fields = ('ticket_number', 'customer_name', 'contact_number')
    readonly_fields = (
        'ticket_number', 'booking_date', 'booking_local_date', 'booking_time',
        'fee', 'refund_amount', 'total_extra_minutes', 'version', 'created_at', 'updated_at'
    )
    ordering = ('-booking_date',)
    inlines = [ExtraTimeEntryInline]

    fieldsets = (
        ('Ticket', {
            'fields': ('ticket_number', 'branch', 'staff', 'status', 'printed', 'version')
        }),
        ('Customer', {
            'fields': ('customer_name', 'player_names', 'contact_number', 'remarks')
        }),
        ('Pricing', {
            'fields': ('ticket_type', 'number_of_people', 'per_person_fee', 'discount', 'fee', 'currency')
        }),
        ('Booking', {
            'fields': ('booking_date', 'booking_local_date', 'booking_time', 'total_extra_minutes')
        }),
        ('Players', {
            'fields': ('total_players', 'played_players', 'waiting_players', 'refunded_players_count')
        }),
        ('Refund', {
            'fields': (
                'is_refunded', 'refund_amount', 'refund_reason', 'refunded_players',
                'refund_name', 'refund_method', 'refunded_by', 'payment_reference'
            )
        }),
        ('Group', {
            'fields': ('group_name', 'group_number', 'group_price', 'total_members')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        }),
    )


@admin.register(SequenceCounter)
class SequenceCounterAdmin(admin.ModelAdmin):
    list_display = ('name', 'current_value', 'updated_at')
    readonly_fields = ('updated_at',)
