"""
Tests for branch endpoints
"""
from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from .models import Branch, BranchSettings

User = get_user_model()


class BranchViewTestCase(APITestCase):
    """Test cases for branch list and detail views"""

    def setUp(self):
        self.thamel = Branch.objects.create(branch_name='Thamel')
        self.patan = Branch.objects.create(branch_name='Patan', is_active=False)
        self.staff = User.objects.create_user(email='staff@example.com', password='pass1234', branch=self.thamel)
        self.admin = User.objects.create_user(email='admin@example.com', password='pass1234', role=User.ROLE_ADMIN)
        self.url = '/api/branches/'

    def get_auth_headers(self, user):
        refresh = RefreshToken.for_user(user)
        return {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}

    def test_admin_lists_all_branches(self):
        response = self.client.get(self.url, **self.get_auth_headers(self.admin))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.client.get(self.url, {'active': 'true'}, **self.get_auth_headers(self.admin))
        self.assertEqual(response.data['count'], 1)

    def test_staff_sees_own_branch_only(self):
        response = self.client.get(self.url, **self.get_auth_headers(self.staff))
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['branch_name'], 'Thamel')

        response = self.client.get(f'{self.url}{self.patan.pk}/', **self.get_auth_headers(self.staff))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_requires_admin(self):
        data = {'branch_name': 'Bhaktapur', 'opening_time': '09:00', 'closing_time': '20:00'}

        response = self.client.post(self.url, data, format='json', **self.get_auth_headers(self.staff))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.post(self.url, data, format='json', **self.get_auth_headers(self.admin))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Branch.objects.filter(branch_name='Bhaktapur').exists())

    def test_closing_time_after_opening_time(self):
        data = {'branch_name': 'Bhaktapur', 'opening_time': '20:00', 'closing_time': '09:00'}
        response = self.client.post(self.url, data, format='json', **self.get_auth_headers(self.admin))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_branch(self):
        response = self.client.patch(
            f'{self.url}{self.thamel.pk}/',
            {'manager': 'Hari'},
            format='json',
            **self.get_auth_headers(self.admin)
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.thamel.refresh_from_db()
        self.assertEqual(self.thamel.manager, 'Hari')

    def test_unauthenticated(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class BranchSettingsViewTestCase(APITestCase):
    """Test cases for the branch settings endpoint"""

    def setUp(self):
        self.thamel = Branch.objects.create(branch_name='Thamel')
        self.patan = Branch.objects.create(branch_name='Patan')
        self.staff = User.objects.create_user(email='staff@example.com', password='pass1234', branch=self.thamel)
        self.admin = User.objects.create_user(email='admin@example.com', password='pass1234', role=User.ROLE_ADMIN)
        self.url = f'/api/branches/{self.thamel.pk}/settings/'

    def get_auth_headers(self, user):
        refresh = RefreshToken.for_user(user)
        return {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}

    def test_get_returns_defaults(self):
        response = self.client.get(self.url, **self.get_auth_headers(self.staff))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['company_name'], 'Thamel')
        self.assertEqual(response.data['default_currency'], 'NPR')
        self.assertEqual(response.data['conversion_rate'], '1.6000')
        self.assertEqual(response.data['ticket_rules'], [])

    def test_staff_cannot_update(self):
        response = self.client.patch(
            self.url, {'default_currency': 'USD'}, format='json', **self.get_auth_headers(self.staff)
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(BranchSettings.currency_for(self.thamel), 'NPR')

    def test_admin_updates_settings(self):
        data = {
            'company_name': 'Thamel Skate Park',
            'contact_numbers': ['01-4412345', ' ', '9800000000'],
            'pan_number': '123456789',
            'default_currency': 'USD',
            'conversion_rate': '133.5',
            'ticket_rules': ['Helmets are mandatory', ''],
        }
        response = self.client.patch(self.url, data, format='json', **self.get_auth_headers(self.admin))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['contact_numbers'], ['01-4412345', '9800000000'])
        self.assertEqual(response.data['ticket_rules'], ['Helmets are mandatory'])
        branch_settings = BranchSettings.objects.get(branch=self.thamel)
        self.assertEqual(branch_settings.company_name, 'Thamel Skate Park')
        self.assertEqual(BranchSettings.currency_for(self.thamel), 'USD')

    def test_invalid_settings_rejected(self):
        for data in ({'default_currency': 'EUR'}, {'conversion_rate': '0'}):
            with self.subTest(data=data):
                response = self.client.patch(self.url, data, format='json', **self.get_auth_headers(self.admin))
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_staff_cannot_see_other_branch_settings(self):
        response = self.client.get(
            f'/api/branches/{self.patan.pk}/settings/', **self.get_auth_headers(self.staff)
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_unknown_branch(self):
        response = self.client.get('/api/branches/9999/settings/', **self.get_auth_headers(self.admin))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
