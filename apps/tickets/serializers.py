from rest_framework import serializers
from .models import Ticket, ExtraTimeEntry


class ExtraTimeEntrySerializer(serializers.ModelSerializer):
    added_by = serializers.CharField(source='added_by.email', read_only=True, default=None)
    ticket_number = serializers.CharField(source='ticket.ticket_number', read_only=True)

    class Meta:
        model = ExtraTimeEntry
        fields = ['id', 'ticket_number', 'minutes', 'amount', 'label', 'notes', 'added_by', 'added_at']
        read_only_fields = fields


class TicketSerializer(serializers.ModelSerializer):
    """
    Read representation of a ticket

    Groups the flat columns into booking_date, player_status, refund_details
    and group_info blocks and adds the derived display_status label.
    """
    booking_date = serializers.SerializerMethodField()
    player_status = serializers.SerializerMethodField()
    refund_details = serializers.SerializerMethodField()
    group_info = serializers.SerializerMethodField()
    display_status = serializers.SerializerMethodField()
    branch_name = serializers.CharField(source='branch.branch_name', read_only=True)
    staff_name = serializers.SerializerMethodField()

    class Meta:
        model = Ticket
        fields = [
            'id',
            'ticket_number',
            'customer_name',
            'player_names',
            'contact_number',
            'number_of_people',
            'ticket_type',
            'per_person_fee',
            'discount',
            'fee',
            'currency',
            'booking_date',
            'booking_time',
            'branch',
            'branch_name',
            'staff',
            'staff_name',
            'remarks',
            'status',
            'display_status',
            'player_status',
            'refund_details',
            'group_info',
            'total_extra_minutes',
            'printed',
            'version',
            'created_at',
            'updated_at'
        ]
        read_only_fields = fields

    def get_booking_date(self, obj):
        return {
            'calendar_date': obj.booking_date,
            'local_date': obj.booking_local_date,
        }

    def get_player_status(self, obj):
        return {
            'total_players': obj.total_players,
            'played_players': obj.played_players,
            'waiting_players': obj.waiting_players,
            'refunded_players_count': obj.refunded_players_count,
        }

    def get_refund_details(self, obj):
        return {
            'is_refunded': obj.is_refunded,
            'refund_reason': obj.refund_reason,
            'refund_amount': str(obj.refund_amount),
            'refunded_players': obj.refunded_players,
            'refund_name': obj.refund_name,
            'refund_method': obj.refund_method,
            'refunded_by': obj.refunded_by_id,
            'payment_reference': obj.payment_reference,
        }

    def get_group_info(self, obj):
        return {
            'group_name': obj.group_name,
            'group_number': obj.group_number,
            'group_price': str(obj.group_price),
            'total_members': obj.total_members,
        }

    def get_display_status(self, obj):
        return obj.display_status()

    def get_staff_name(self, obj):
        return obj.staff.name or obj.staff.email


class GroupInfoSerializer(serializers.Serializer):
    group_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    group_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    group_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    total_members = serializers.IntegerField(required=False, min_value=0)


class TicketCreateSerializer(serializers.Serializer):
    """
    Input for a new ticket. Booking date and time are set by the server.
    """
    customer_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    player_names = serializers.ListField(
        child=serializers.CharField(max_length=200, allow_blank=True),
        required=False,
        default=list
    )
    contact_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    number_of_people = serializers.IntegerField(required=False, help_text="Defaults to the number of player names")
    ticket_type = serializers.ChoiceField(choices=Ticket.TYPE_CHOICES)
    per_person_fee = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    remarks = serializers.CharField(max_length=500, required=False, allow_blank=True)
    group_info = GroupInfoSerializer(required=False)


class QuickTicketSerializer(TicketCreateSerializer):
    """
    Counter shortcut: type defaults to Adult and the fee to the configured price
    """
    ticket_type = serializers.ChoiceField(choices=Ticket.TYPE_CHOICES, required=False)
    per_person_fee = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)


class TicketUpdateSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=200, required=False)
    contact_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    player_names = serializers.ListField(child=serializers.CharField(max_length=200), required=False)
    remarks = serializers.CharField(max_length=500, required=False, allow_blank=True)
    group_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    group_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    group_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    total_members = serializers.IntegerField(required=False, min_value=0)
    booking_date = serializers.DateTimeField(required=False)


class ExtraTimeSerializer(serializers.Serializer):
    minutes = serializers.IntegerField(help_text="Extra minutes, greater than zero")
    charge = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    label = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class RefundSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)
    cancellation_fee = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    refund_method = serializers.ChoiceField(choices=Ticket.REFUND_METHOD_CHOICES, required=False, default='cash')
    payment_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    refund_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')


class PartialRefundSerializer(serializers.Serializer):
    refunded_player_names = serializers.ListField(
        child=serializers.CharField(max_length=200),
        allow_empty=False
    )
    reason = serializers.CharField(max_length=500)
    cancellation_fee = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    refund_method = serializers.ChoiceField(choices=Ticket.REFUND_METHOD_CHOICES, required=False, default='cash')
    payment_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')


class PlayerStatusSerializer(serializers.Serializer):
    played_players = serializers.IntegerField()


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[
        (Ticket.STATUS_COMPLETED, 'Completed'),
        (Ticket.STATUS_CANCELLED, 'Cancelled'),
    ])
