"""
Tests for authentication, profile and user management
"""
from django.conf import settings
from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from apps.branches.models import Branch
from .services import AuthService, BranchAccessService

User = get_user_model()


class AuthServiceTestCase(TestCase):
    """Test cases for AuthService and BranchAccessService"""

    def setUp(self):
        self.branch = Branch.objects.create(branch_name='Thamel')
        self.other_branch = Branch.objects.create(branch_name='Patan')
        self.user = User.objects.create_user(email='staff@example.com', password='pass1234', branch=self.branch)
        self.admin = User.objects.create_user(email='admin@example.com', password='pass1234', role=User.ROLE_ADMIN)

    def test_login(self):
        self.assertEqual(AuthService.login('staff@example.com', 'pass1234'), self.user)

    def test_login_wrong_password(self):
        with self.assertRaisesMessage(ValueError, 'Invalid email or password'):
            AuthService.login('staff@example.com', 'wrong')

    def test_login_deactivated(self):
        self.user.is_active = False
        self.user.save()
        with self.assertRaisesMessage(ValueError, 'Account is deactivated'):
            AuthService.login('staff@example.com', 'pass1234')

    def test_change_password(self):
        with self.assertRaises(ValueError):
            AuthService.change_password(self.user, 'wrong', 'n3w-Passw0rd!')

        AuthService.change_password(self.user, 'pass1234', 'n3w-Passw0rd!')
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('n3w-Passw0rd!'))

    def test_resolve_branch_defaults_to_home_branch(self):
        self.assertEqual(BranchAccessService.resolve_branch(self.user), self.branch)

    def test_resolve_branch_access(self):
        with self.assertRaises(PermissionDenied):
            BranchAccessService.resolve_branch(self.user, self.other_branch.pk)
        with self.assertRaises(PermissionDenied):
            BranchAccessService.resolve_branch(self.admin)
        with self.assertRaises(NotFound):
            BranchAccessService.resolve_branch(self.admin, 9999)

        self.assertEqual(BranchAccessService.resolve_branch(self.admin, self.other_branch.pk), self.other_branch)

    def test_create_superuser_is_admin(self):
        user = User.objects.create_superuser(email='root@example.com', password='pass1234')
        self.assertTrue(user.is_admin)
        self.assertEqual(user.role, User.ROLE_ADMIN)


class AuthViewTestCase(APITestCase):
    """Test cases for login, logout, refresh and profile endpoints"""

    def setUp(self):
        self.branch = Branch.objects.create(branch_name='Thamel')
        self.user = User.objects.create_user(
            email='staff@example.com', password='pass1234', name='Sita', branch=self.branch
        )
        self.url = '/api/auth/'

    def get_auth_headers(self, user=None):
        refresh = RefreshToken.for_user(user or self.user)
        return {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}

    def test_login_sets_cookies(self):
        response = self.client.post(
            f'{self.url}login/',
            {'email': 'staff@example.com', 'password': 'pass1234'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('token', response.data)
        self.assertEqual(response.data['user']['email'], 'staff@example.com')
        self.assertIn(settings.COOKIE_ACCESS_TOKEN_NAME, response.cookies)
        self.assertIn(settings.COOKIE_REFRESH_TOKEN_NAME, response.cookies)

    def test_login_invalid_credentials(self):
        response = self.client.post(
            f'{self.url}login/',
            {'email': 'staff@example.com', 'password': 'nope'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('error', response.data)

    def test_cookie_authentication(self):
        login = self.client.post(
            f'{self.url}login/',
            {'email': 'staff@example.com', 'password': 'pass1234'},
            format='json'
        )
        self.client.cookies[settings.COOKIE_ACCESS_TOKEN_NAME] = login.cookies[settings.COOKIE_ACCESS_TOKEN_NAME].value

        response = self.client.get(f'{self.url}profile/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Sita')

    def test_refresh_token(self):
        response = self.client.post(f'{self.url}refresh-token/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.cookies[settings.COOKIE_REFRESH_TOKEN_NAME] = str(RefreshToken.for_user(self.user))
        response = self.client.post(f'{self.url}refresh-token/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(settings.COOKIE_ACCESS_TOKEN_NAME, response.cookies)

    def test_logout_clears_cookies(self):
        response = self.client.post(f'{self.url}logout/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.cookies[settings.COOKIE_ACCESS_TOKEN_NAME].value, '')

    def test_update_profile(self):
        response = self.client.patch(
            f'{self.url}profile/',
            {'name': 'Sita Rai', 'phone': '98-4100-0000', 'role': 'admin'},
            format='json',
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.name, 'Sita Rai')
        self.assertEqual(self.user.phone, '9841000000')
        self.assertEqual(self.user.role, User.ROLE_STAFF)

    def test_change_password(self):
        response = self.client.put(
            f'{self.url}change-password/',
            {'current_password': 'pass1234', 'new_password': 'n3w-Passw0rd!'},
            format='json',
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.put(
            f'{self.url}change-password/',
            {'current_password': 'wrong', 'new_password': 'an0ther-Passw0rd!'},
            format='json',
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class UserManagementViewTestCase(APITestCase):
    """Test cases for administrator user management"""

    def setUp(self):
        self.branch = Branch.objects.create(branch_name='Thamel')
        self.admin = User.objects.create_user(email='admin@example.com', password='pass1234', role=User.ROLE_ADMIN)
        self.staff = User.objects.create_user(email='staff@example.com', password='pass1234', branch=self.branch)
        self.url = '/api/auth/users/'

    def get_auth_headers(self, user):
        refresh = RefreshToken.for_user(user)
        return {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}

    def test_staff_cannot_manage_users(self):
        response = self.client.get(self.url, **self.get_auth_headers(self.staff))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_user(self):
        data = {'email': 'new@example.com', 'password': 'pass1234', 'branch': self.branch.pk}
        response = self.client.post(self.url, data, format='json', **self.get_auth_headers(self.admin))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('password', response.data)
        self.assertTrue(User.objects.get(email='new@example.com').check_password('pass1234'))

    def test_create_staff_requires_branch(self):
        data = {'email': 'new@example.com', 'password': 'pass1234'}
        response = self.client.post(self.url, data, format='json', **self.get_auth_headers(self.admin))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('branch', response.data)

    def test_list_users_by_branch(self):
        response = self.client.get(self.url, {'branch': self.branch.pk}, **self.get_auth_headers(self.admin))
        self.assertEqual(response.data['count'], 1)

    def test_deactivate_user(self):
        response = self.client.delete(f'{self.url}{self.staff.pk}/', **self.get_auth_headers(self.admin))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.staff.refresh_from_db()
        self.assertFalse(self.staff.is_active)

        response = self.client.delete(f'{self.url}{self.admin.pk}/', **self.get_auth_headers(self.admin))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
