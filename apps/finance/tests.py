"""
Tests for sales, expenses and report aggregation
"""
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from apps.branches.models import Branch
from apps.tickets.dates import DateNormalizer
from apps.tickets.exceptions import ValidationError
from apps.tickets.services import TicketLifecycle

from .models import Expense, Sale
from .services import FinanceService, ReportAggregator

User = get_user_model()

FIXED_NOW = datetime(2024, 4, 13, 6, 0, 0, tzinfo=dt_timezone.utc)


def fixed_clock():
    return FIXED_NOW


class FinanceServiceTestCase(TestCase):
    """Test cases for FinanceService"""

    def setUp(self):
        self.branch = Branch.objects.create(branch_name='Thamel')
        self.staff = User.objects.create_user(email='staff@example.com', password='pass1234', branch=self.branch)
        self.service = FinanceService(dates=DateNormalizer(clock=fixed_clock))

    def test_create_sale(self):
        sale = self.service.create_sale({
            'customer_name': 'Ram',
            'items': [
                {'item_name': 'Water', 'quantity': 2, 'price': '50'},
                {'item_name': 'Socks', 'quantity': 1, 'price': '120'},
                {'item_name': '', 'quantity': 1, 'price': '999'},
            ],
            'discount': '20',
        }, self.branch, self.staff)

        self.assertEqual(sale.sale_number, '000001')
        self.assertEqual(sale.total_amount, Decimal('200.00'))
        self.assertEqual(sale.items.count(), 2)
        self.assertEqual(sale.local_date, '2081-01-01')

    def test_sale_discount_cannot_go_negative(self):
        sale = self.service.create_sale(
            {'items': [{'item_name': 'Water', 'quantity': 1, 'price': '50'}], 'discount': '80'},
            self.branch,
            self.staff
        )
        self.assertEqual(sale.total_amount, Decimal('0.00'))

    def test_sale_requires_items(self):
        for items in ([], [{'item_name': ' ', 'quantity': 1, 'price': 10}],
                      [{'item_name': 'Water', 'quantity': 0, 'price': 10}],
                      [{'item_name': 'Water', 'quantity': 1, 'price': -10}]):
            with self.subTest(items=items):
                with self.assertRaises(ValidationError):
                    self.service.create_sale({'items': items}, self.branch, self.staff)
        self.assertFalse(Sale.objects.exists())

    def test_create_expense(self):
        expense = self.service.create_expense(
            {'category': 'Electricity', 'amount': '1500', 'description': 'April bill'},
            self.branch,
            self.staff
        )
        self.assertEqual(expense.expense_number, '000001')
        self.assertEqual(expense.amount, Decimal('1500.00'))

    def test_expense_validation(self):
        with self.assertRaises(ValidationError):
            self.service.create_expense({'category': '', 'amount': '10'}, self.branch, self.staff)
        with self.assertRaises(ValidationError):
            self.service.create_expense({'category': 'Rent', 'amount': '0'}, self.branch, self.staff)
        self.assertFalse(Expense.objects.exists())


class ReportAggregatorTestCase(TestCase):
    """Test cases for daily, range and dashboard summaries"""

    def setUp(self):
        self.branch = Branch.objects.create(branch_name='Thamel')
        self.other_branch = Branch.objects.create(branch_name='Patan')
        self.staff = User.objects.create_user(email='staff@example.com', password='pass1234', branch=self.branch)
        dates = DateNormalizer(clock=fixed_clock)
        self.lifecycle = TicketLifecycle(dates=dates)
        self.finance = FinanceService(dates=dates)
        self.reports = ReportAggregator(dates=dates)

        ticket = self.lifecycle.create_ticket({
            'player_names': ['Asha', 'Bikash', 'Chandra'],
            'ticket_type': 'Adult',
            'per_person_fee': 100,
            'discount': 50,
        }, self.branch, self.staff)
        self.lifecycle.refund_partial(ticket.pk, ['Chandra'], 'Sick')
        self.finance.create_sale({
            'items': [
                {'item_name': 'Water', 'quantity': 2, 'price': '50'},
                {'item_name': 'Socks', 'quantity': 1, 'price': '120'},
            ],
            'discount': '20',
        }, self.branch, self.staff)
        self.finance.create_sale({
            'items': [{'item_name': 'Quote', 'quantity': 1, 'price': '500'}],
            'is_sale': False,
        }, self.branch, self.staff)
        self.finance.create_expense({'category': 'Supplies', 'amount': '75'}, self.branch, self.staff)

        self.lifecycle.create_ticket(
            {'customer_name': 'Gita', 'ticket_type': 'Adult', 'per_person_fee': 1000},
            self.other_branch,
            self.staff
        )

    def test_daily(self):
        summary = self.reports.daily(self.branch, date(2024, 4, 13))

        self.assertEqual(summary['local_date'], '2081-01-01')
        self.assertEqual(summary['total_tickets'], 1)
        self.assertEqual(summary['total_ticket_sales'], Decimal('250.00'))
        self.assertEqual(summary['total_refunds'], Decimal('83.33'))
        self.assertEqual(summary['net_ticket_sales'], Decimal('166.67'))
        self.assertEqual(summary['total_other_sales'], Decimal('200.00'))
        self.assertEqual(summary['total_expenses'], Decimal('75.00'))
        self.assertEqual(summary['profit_loss'], Decimal('291.67'))
        self.assertEqual(summary['tickets'].count(), 1)
        self.assertEqual(summary['sales'].count(), 1)
        self.assertEqual(summary['expenses'].count(), 1)

    def test_daily_other_day_is_empty(self):
        summary = self.reports.daily(self.branch, date(2024, 4, 14))
        self.assertEqual(summary['total_tickets'], 0)
        self.assertEqual(summary['profit_loss'], Decimal('0.00'))

    def test_range(self):
        summary = self.reports.range(self.branch, date(2024, 4, 12), date(2024, 4, 14))

        self.assertEqual(len(summary['days']), 3)
        self.assertNotIn('tickets', summary['days'][0])
        self.assertEqual(summary['totals']['total_tickets'], 1)
        self.assertEqual(summary['totals']['total_revenue'], Decimal('366.67'))
        self.assertEqual(summary['totals']['total_refunds'], Decimal('83.33'))
        self.assertEqual(summary['totals']['total_expenses'], Decimal('75.00'))
        self.assertEqual(summary['totals']['total_profit_loss'], Decimal('291.67'))

    def test_range_rejects_reversed_dates(self):
        with self.assertRaises(ValidationError):
            self.reports.range(self.branch, date(2024, 4, 14), date(2024, 4, 13))

    def test_range_rejects_long_windows(self):
        with self.assertRaises(ValidationError):
            self.reports.range(self.branch, date(2020, 1, 1), date(2024, 1, 1))

    def test_dashboard(self):
        summary = self.reports.dashboard(self.branch)

        self.assertEqual(summary['today']['date'], date(2024, 4, 13))
        self.assertEqual(summary['today']['tickets'], 1)
        self.assertEqual(summary['today']['revenue'], Decimal('366.67'))
        self.assertEqual(summary['total_tickets'], 1)
        self.assertEqual(summary['total_sales'], 1)
        self.assertEqual(summary['total_expenses'], 1)
        self.assertEqual(summary['ticket_revenue'], Decimal('166.67'))
        self.assertEqual(summary['other_revenue'], Decimal('200.00'))
        self.assertEqual(summary['total_revenue'], Decimal('366.67'))
        self.assertEqual(summary['expense_amount'], Decimal('75.00'))
        self.assertEqual(summary['net_profit'], Decimal('291.67'))


class FinanceAPITestCase(APITestCase):
    """Test cases for sales, expenses and summary endpoints"""

    def setUp(self):
        self.branch = Branch.objects.create(branch_name='Thamel')
        self.staff = User.objects.create_user(email='staff@example.com', password='pass1234', branch=self.branch)
        self.admin = User.objects.create_user(email='admin@example.com', password='pass1234', role=User.ROLE_ADMIN)
        self.url = '/api/finance/'

    def get_auth_headers(self, user=None):
        refresh = RefreshToken.for_user(user or self.staff)
        return {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}

    def test_create_and_list_sales(self):
        response = self.client.post(
            f'{self.url}sales/',
            {'items': [{'item_name': 'Water', 'quantity': 3, 'price': '40.00'}], 'payment_method': 'Card'},
            format='json',
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sale']['total_amount'], '120.00')
        self.assertEqual(response.data['sale']['items'][0]['total'], '120.00')

        response = self.client.get(f'{self.url}sales/', **self.get_auth_headers())
        self.assertEqual(response.data['count'], 1)

    def test_sale_without_items(self):
        response = self.client.post(f'{self.url}sales/', {'items': []}, format='json', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_expense(self):
        response = self.client.post(
            f'{self.url}expenses/',
            {'category': 'Rent', 'amount': '5000.00'},
            format='json',
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(
            f'{self.url}expenses/',
            {'category': 'Rent', 'amount': '0'},
            format='json',
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

        response = self.client.get(f'{self.url}expenses/', {'category': 'rent'}, **self.get_auth_headers())
        self.assertEqual(response.data['count'], 1)

    def test_delete_expense_requires_admin(self):
        expense = FinanceService().create_expense({'category': 'Rent', 'amount': '10'}, self.branch, self.staff)
        url = f'{self.url}expenses/{expense.pk}/'

        response = self.client.delete(url, **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.delete(url, **self.get_auth_headers(self.admin))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_daily_summary(self):
        FinanceService().create_expense({'category': 'Rent', 'amount': '10'}, self.branch, self.staff)

        response = self.client.get(f'{self.url}summary/daily/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_expenses'], '10.00')
        self.assertEqual(response.data['profit_loss'], '-10.00')
        self.assertEqual(len(response.data['expenses']), 1)

        response = self.client.get(f'{self.url}summary/daily/', {'date': 'yesterday'}, **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_range_summary(self):
        response = self.client.get(
            f'{self.url}summary/range/',
            {'start_date': '2024-04-01', 'end_date': '2024-04-07'},
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['days']), 7)
        self.assertEqual(response.data['totals']['total_profit_loss'], '0.00')

        response = self.client.get(f'{self.url}summary/range/', {'start_date': '2024-04-01'},
                                   **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(
            f'{self.url}summary/range/',
            {'start_date': '2024-04-07', 'end_date': '2024-04-01'},
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_dashboard(self):
        response = self.client.get(f'{self.url}summary/dashboard/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_tickets'], 0)
        self.assertEqual(response.data['net_profit'], '0.00')
