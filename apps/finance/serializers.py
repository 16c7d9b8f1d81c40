from rest_framework import serializers
from apps.tickets.serializers import TicketSerializer
from .models import Sale, SaleItem, Expense


class SaleItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = SaleItem
        fields = ['item_name', 'quantity', 'price', 'total']
        read_only_fields = ['total']


class SaleSerializer(serializers.ModelSerializer):
    items = SaleItemSerializer(many=True, read_only=True)
    staff_name = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            'id',
            'sale_number',
            'branch',
            'staff',
            'staff_name',
            'customer_name',
            'items',
            'discount',
            'total_amount',
            'payment_method',
            'is_sale',
            'sale_date',
            'local_date',
            'remarks',
            'created_at'
        ]
        read_only_fields = fields

    def get_staff_name(self, obj):
        return obj.staff.name or obj.staff.email


class SaleCreateSerializer(serializers.Serializer):
    customer_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    items = SaleItemSerializer(many=True, allow_empty=False)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    payment_method = serializers.ChoiceField(choices=Sale.PAYMENT_CHOICES, required=False, default='Cash')
    is_sale = serializers.BooleanField(required=False, default=True)
    remarks = serializers.CharField(max_length=500, required=False, allow_blank=True)


class ExpenseSerializer(serializers.ModelSerializer):
    staff_name = serializers.SerializerMethodField()

    class Meta:
        model = Expense
        fields = [
            'id',
            'expense_number',
            'branch',
            'staff',
            'staff_name',
            'category',
            'description',
            'amount',
            'payment_method',
            'expense_date',
            'local_date',
            'created_at'
        ]
        read_only_fields = fields

    def get_staff_name(self, obj):
        return obj.staff.name or obj.staff.email


class ExpenseCreateSerializer(serializers.Serializer):
    category = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_method = serializers.ChoiceField(choices=Expense.PAYMENT_CHOICES, required=False, default='Cash')


class MoneyField(serializers.DecimalField):
    def __init__(self, **kwargs):
        super().__init__(max_digits=14, decimal_places=2, **kwargs)


class SummaryTotalsSerializer(serializers.Serializer):
    total_tickets = serializers.IntegerField()
    total_ticket_sales = MoneyField()
    total_refunds = MoneyField()
    net_ticket_sales = MoneyField()
    total_other_sales = MoneyField()
    total_expenses = MoneyField()
    profit_loss = MoneyField()


class DailySummarySerializer(SummaryTotalsSerializer):
    date = serializers.DateField()
    local_date = serializers.CharField()
    tickets = TicketSerializer(many=True, required=False)
    sales = SaleSerializer(many=True, required=False)
    expenses = ExpenseSerializer(many=True, required=False)


class RangeTotalsSerializer(serializers.Serializer):
    total_tickets = serializers.IntegerField()
    total_revenue = MoneyField()
    total_refunds = MoneyField()
    total_expenses = MoneyField()
    total_profit_loss = MoneyField()


class RangeSummarySerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    days = DailySummarySerializer(many=True)
    totals = RangeTotalsSerializer()


class TodaySerializer(serializers.Serializer):
    date = serializers.DateField()
    local_date = serializers.CharField()
    tickets = serializers.IntegerField()
    revenue = MoneyField()
    expenses = MoneyField()
    profit_loss = MoneyField()


class DashboardSerializer(serializers.Serializer):
    today = TodaySerializer()
    total_tickets = serializers.IntegerField()
    total_sales = serializers.IntegerField()
    total_expenses = serializers.IntegerField()
    total_revenue = MoneyField()
    ticket_revenue = MoneyField()
    other_revenue = MoneyField()
    expense_amount = MoneyField()
    net_profit = MoneyField()
