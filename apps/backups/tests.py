"""
Tests for branch backups
"""
from datetime import timedelta
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from apps.branches.models import Branch
from apps.finance.models import Expense, Sale
from apps.finance.services import FinanceService
from apps.tickets.exceptions import ValidationError
from apps.tickets.models import Ticket
from apps.tickets.services import TicketLifecycle

from .models import Backup
from .scheduler import run_backup_job
from .services import BackupService

User = get_user_model()


class BackupServiceTestCase(TestCase):
    """Test cases for BackupService"""

    def setUp(self):
        self.branch = Branch.objects.create(branch_name='Thamel')
        self.other_branch = Branch.objects.create(branch_name='Patan')
        self.staff = User.objects.create_user(email='staff@example.com', password='pass1234', branch=self.branch)
        self.lifecycle = TicketLifecycle()
        self.finance = FinanceService()

        self.ticket = self.lifecycle.create_ticket(
            {'player_names': ['Asha', 'Bikash'], 'ticket_type': 'Adult', 'per_person_fee': 200},
            self.branch,
            self.staff
        )
        self.lifecycle.add_extra_time(self.ticket.pk, 30, 100, actor=self.staff)
        self.finance.create_sale(
            {'items': [{'item_name': 'Water', 'quantity': 2, 'price': '50'}]},
            self.branch,
            self.staff
        )
        self.finance.create_expense({'category': 'Rent', 'amount': '1000'}, self.branch, self.staff)
        self.other_ticket = self.lifecycle.create_ticket(
            {'customer_name': 'Gita', 'ticket_type': 'Child', 'per_person_fee': 150},
            self.other_branch,
            self.staff
        )

    def test_create_backup(self):
        backup = BackupService.create_backup(self.branch, user=self.staff)

        self.assertEqual(backup.ticket_count, 1)
        self.assertEqual(backup.extra_time_count, 1)
        self.assertEqual(backup.sale_count, 1)
        self.assertEqual(backup.expense_count, 1)
        self.assertEqual(len(backup.payload['sale_items']), 1)
        self.assertEqual(backup.payload['tickets'][0]['fields']['ticket_number'], self.ticket.ticket_number)
        self.assertTrue(backup.name.startswith('Thamel'))

    def test_restore_replaces_branch_records(self):
        backup = BackupService.create_backup(self.branch)

        self.lifecycle.refund_full(self.ticket.pk, 'Rain')
        self.finance.create_expense({'category': 'Repairs', 'amount': '300'}, self.branch, self.staff)
        Sale.objects.filter(branch=self.branch).delete()

        BackupService.restore_backup(backup)

        ticket = Ticket.objects.get(pk=self.ticket.pk)
        self.assertFalse(ticket.is_refunded)
        self.assertEqual(ticket.status, Ticket.STATUS_PLAYING)
        self.assertEqual(ticket.total_extra_minutes, 30)
        self.assertEqual(ticket.extra_time_entries.count(), 1)
        self.assertEqual(Sale.objects.get(branch=self.branch).items.count(), 1)
        self.assertEqual(list(Expense.objects.filter(branch=self.branch).values_list('category', flat=True)), ['Rent'])
        self.assertTrue(Ticket.objects.filter(pk=self.other_ticket.pk).exists())

        backup.refresh_from_db()
        self.assertIsNotNone(backup.restored_at)

    def test_restore_rejects_foreign_records(self):
        backup = BackupService.create_backup(self.branch)
        backup.payload['tickets'][0]['fields']['branch'] = self.other_branch.pk
        backup.save()

        with self.assertRaises(ValidationError):
            BackupService.restore_backup(backup)
        self.assertTrue(Ticket.objects.filter(pk=self.ticket.pk, branch=self.branch).exists())

    def test_restore_rejects_unknown_version(self):
        backup = BackupService.create_backup(self.branch)
        backup.payload['version'] = 99
        backup.save()

        with self.assertRaises(ValidationError):
            BackupService.restore_backup(backup)

    def test_prune(self):
        old = BackupService.create_backup(self.branch, automatic=True)
        manual = BackupService.create_backup(self.branch)
        recent = BackupService.create_backup(self.branch, automatic=True)
        Backup.objects.filter(pk__in=[old.pk, manual.pk]).update(created_at=timezone.now() - timedelta(days=40))

        self.assertEqual(BackupService.prune(30), 1)
        self.assertFalse(Backup.objects.filter(pk=old.pk).exists())
        self.assertTrue(Backup.objects.filter(pk=manual.pk).exists())
        self.assertTrue(Backup.objects.filter(pk=recent.pk).exists())

    def test_scheduled_job_backs_up_active_branches(self):
        self.other_branch.is_active = False
        self.other_branch.save()

        run_backup_job()

        self.assertEqual(Backup.objects.filter(branch=self.branch, is_automatic=True).count(), 1)
        self.assertFalse(Backup.objects.filter(branch=self.other_branch).exists())

    def test_scheduled_job_continues_after_failure(self):
        with mock.patch.object(BackupService, 'create_backup', side_effect=RuntimeError('disk full')):
            run_backup_job()
        self.assertFalse(Backup.objects.exists())

    def test_create_backup_command(self):
        out = StringIO()
        call_command('create_backup', stdout=out)

        self.assertEqual(Backup.objects.count(), 2)
        self.assertIn('Thamel', out.getvalue())

        call_command('create_backup', branch=self.branch.pk, name='Before audit', stdout=out)
        self.assertTrue(Backup.objects.filter(branch=self.branch, name='Before audit').exists())


class BackupAPITestCase(APITestCase):
    """Test cases for backup endpoints"""

    def setUp(self):
        self.branch = Branch.objects.create(branch_name='Thamel')
        self.staff = User.objects.create_user(email='staff@example.com', password='pass1234', branch=self.branch)
        self.admin = User.objects.create_user(email='admin@example.com', password='pass1234', role=User.ROLE_ADMIN)
        TicketLifecycle().create_ticket(
            {'customer_name': 'Asha', 'ticket_type': 'Adult', 'per_person_fee': 200},
            self.branch,
            self.staff
        )
        self.url = '/api/backups/'

    def get_auth_headers(self, user=None):
        refresh = RefreshToken.for_user(user or self.staff)
        return {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}

    def test_create_and_list(self):
        response = self.client.post(self.url, {'name': 'Evening'}, format='json', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['backup']['ticket_count'], 1)
        self.assertEqual(response.data['backup']['created_by_email'], 'staff@example.com')

        response = self.client.get(self.url, **self.get_auth_headers())
        self.assertEqual(response.data['count'], 1)
        self.assertNotIn('payload', response.data['results'][0])

    def test_download(self):
        backup = BackupService.create_backup(self.branch)

        response = self.client.get(f'{self.url}{backup.pk}/download/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('attachment;', response['Content-Disposition'])
        self.assertEqual(len(response.json()['tickets']), 1)

    def test_restore_requires_admin(self):
        backup = BackupService.create_backup(self.branch)
        Ticket.objects.all().delete()

        response = self.client.post(f'{self.url}{backup.pk}/restore/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.post(f'{self.url}{backup.pk}/restore/', **self.get_auth_headers(self.admin))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Ticket.objects.count(), 1)

    def test_delete_requires_admin(self):
        backup = BackupService.create_backup(self.branch)

        response = self.client.delete(f'{self.url}{backup.pk}/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.delete(f'{self.url}{backup.pk}/', **self.get_auth_headers(self.admin))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Backup.objects.exists())

    def test_other_branch_backup_is_hidden(self):
        other = Branch.objects.create(branch_name='Patan')
        backup = BackupService.create_backup(other)

        response = self.client.get(f'{self.url}{backup.pk}/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
