import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Sum

from apps.tickets.dates import DateNormalizer
from apps.tickets.exceptions import ValidationError
from apps.tickets.fees import ZERO, quantize, to_decimal
from apps.tickets.models import Ticket
from apps.tickets.sequence import DatabaseSequenceCounter

from .models import Expense, Sale, SaleItem

logger = logging.getLogger(__name__)


def _sum(queryset, field):
    return quantize(queryset.aggregate(total=Sum(field))['total'] or ZERO)


class FinanceService:
    """
    Creates sales and expenses the same way tickets are created:
    validate, compute totals, number and stamp, then persist.
    """

    def __init__(self, counter=None, dates=None):
        self.counter = counter or DatabaseSequenceCounter()
        self.dates = dates or DateNormalizer()

    def _next_number(self, counter_name):
        return str(self.counter.next_value(counter_name)).zfill(settings.TICKET_NUMBER_WIDTH)

    def create_sale(self, data, branch, staff):
        items = []
        for line in data.get('items') or []:
            item_name = (line.get('item_name') or '').strip()
            if not item_name:
                continue
            quantity = line.get('quantity')
            try:
                quantity = 1 if quantity in (None, '') else int(quantity)
            except (TypeError, ValueError):
                raise ValidationError(f"Quantity of {item_name} must be a whole number")
            price = to_decimal(line.get('price'), 'price')
            if quantity < 1:
                raise ValidationError(f"Quantity of {item_name} must be at least 1")
            if price < 0:
                raise ValidationError(f"Price of {item_name} cannot be negative")
            items.append({
                'item_name': item_name,
                'quantity': quantity,
                'price': quantize(price),
                'total': quantize(price * quantity),
            })
        if not items:
            raise ValidationError("A sale needs at least one item")

        discount = max(ZERO, to_decimal(data.get('discount'), 'discount'))
        subtotal = sum((item['total'] for item in items), ZERO)
        sale_date, local_date, _ = self.dates.stamp()

        with transaction.atomic():
            sale = Sale.objects.create(
                sale_number=self._next_number(settings.SALE_NUMBER_COUNTER),
                branch=branch,
                staff=staff,
                customer_name=(data.get('customer_name') or '').strip(),
                discount=quantize(discount),
                total_amount=quantize(max(ZERO, subtotal - discount)),
                payment_method=data.get('payment_method') or 'Cash',
                is_sale=data.get('is_sale', True),
                sale_date=sale_date,
                local_date=local_date,
                remarks=(data.get('remarks') or '').strip(),
            )
            SaleItem.objects.bulk_create([SaleItem(sale=sale, **item) for item in items])

        logger.info(f"Sale {sale.sale_number} recorded at {branch.branch_name}: {sale.total_amount}")
        return sale

    def create_expense(self, data, branch, staff):
        category = (data.get('category') or '').strip()
        if not category:
            raise ValidationError("Expense category is required")
        amount = to_decimal(data.get('amount'), 'amount')
        if amount <= 0:
            raise ValidationError("Expense amount must be greater than zero")

        expense_date, local_date, _ = self.dates.stamp()
        expense = Expense.objects.create(
            expense_number=self._next_number(settings.EXPENSE_NUMBER_COUNTER),
            branch=branch,
            staff=staff,
            category=category,
            description=(data.get('description') or '').strip(),
            amount=quantize(amount),
            payment_method=data.get('payment_method') or 'Cash',
            expense_date=expense_date,
            local_date=local_date,
        )
        logger.info(f"Expense {expense.expense_number} recorded at {branch.branch_name}: {expense.amount}")
        return expense


class ReportAggregator:
    """
    Read-only totals over tickets, sales and expenses of a branch.

    Days are venue-local calendar days. Profit/loss is net ticket sales
    (fees less refunds) plus other sales less expenses.
    """

    def __init__(self, dates=None):
        self.dates = dates or DateNormalizer()

    def _records(self, branch, start=None, end=None):
        tickets = Ticket.objects.filter(branch=branch)
        sales = Sale.objects.filter(branch=branch, is_sale=True)
        expenses = Expense.objects.filter(branch=branch)
        if start is not None:
            tickets = tickets.filter(booking_date__gte=start)
            sales = sales.filter(sale_date__gte=start)
            expenses = expenses.filter(expense_date__gte=start)
        if end is not None:
            tickets = tickets.filter(booking_date__lt=end)
            sales = sales.filter(sale_date__lt=end)
            expenses = expenses.filter(expense_date__lt=end)
        return tickets, sales, expenses

    def _totals(self, tickets, sales, expenses):
        gross = _sum(tickets, 'fee')
        refunds = _sum(tickets, 'refund_amount')
        other_sales = _sum(sales, 'total_amount')
        expense_total = _sum(expenses, 'amount')
        net = gross - refunds
        return {
            'total_tickets': tickets.count(),
            'total_ticket_sales': gross,
            'total_refunds': refunds,
            'net_ticket_sales': net,
            'total_other_sales': other_sales,
            'total_expenses': expense_total,
            'profit_loss': net + other_sales - expense_total,
        }

    def daily(self, branch, day=None, include_records=True):
        day = day or self.dates.today()
        start, end = self.dates.day_bounds(day)
        tickets, sales, expenses = self._records(branch, start, end)

        summary = {
            'date': day,
            'local_date': self.dates.to_local_calendar(start),
            **self._totals(tickets, sales, expenses),
        }
        if include_records:
            summary['tickets'] = tickets.select_related('staff').order_by('booking_date')
            summary['sales'] = sales.prefetch_related('items').order_by('sale_date')
            summary['expenses'] = expenses.select_related('staff').order_by('expense_date')
        return summary

    def range(self, branch, start_day, end_day):
        if end_day < start_day:
            raise ValidationError("End date cannot be before start date")
        days = (end_day - start_day).days + 1
        if days > settings.REPORT_MAX_RANGE_DAYS:
            raise ValidationError(f"Date range cannot exceed {settings.REPORT_MAX_RANGE_DAYS} days")

        daily = [
            self.daily(branch, start_day + timedelta(days=offset), include_records=False)
            for offset in range(days)
        ]
        return {
            'start_date': start_day,
            'end_date': end_day,
            'days': daily,
            'totals': {
                'total_tickets': sum(day['total_tickets'] for day in daily),
                'total_revenue': sum(
                    (day['net_ticket_sales'] + day['total_other_sales'] for day in daily), ZERO
                ),
                'total_refunds': sum((day['total_refunds'] for day in daily), ZERO),
                'total_expenses': sum((day['total_expenses'] for day in daily), ZERO),
                'total_profit_loss': sum((day['profit_loss'] for day in daily), ZERO),
            },
        }

    def dashboard(self, branch):
        today = self.daily(branch, include_records=False)
        tickets, sales, expenses = self._records(branch)
        totals = self._totals(tickets, sales, expenses)
        ticket_revenue = totals['net_ticket_sales']
        other_revenue = totals['total_other_sales']

        return {
            'today': {
                'date': today['date'],
                'local_date': today['local_date'],
                'tickets': today['total_tickets'],
                'revenue': today['net_ticket_sales'] + today['total_other_sales'],
                'expenses': today['total_expenses'],
                'profit_loss': today['profit_loss'],
            },
            'total_tickets': totals['total_tickets'],
            'total_sales': sales.count(),
            'total_expenses': expenses.count(),
            'total_revenue': ticket_revenue + other_revenue,
            'ticket_revenue': ticket_revenue,
            'other_revenue': other_revenue,
            'expense_amount': totals['total_expenses'],
            'net_profit': totals['profit_loss'],
        }
