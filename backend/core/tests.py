"""
Test suite for the Core module
Tests: registration and approval, roles, settings, audit logs and serverless function calls
"""
from unittest.mock import patch, MagicMock
import requests
from django.test import TestCase, SimpleTestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient
from backend.core.edge_functions import invoke_edge_function
from backend.core.exceptions import EdgeFunctionError
from backend.core.models import AuditLog, Setting
from backend.core.permissions import ROLE_MANAGER, ROLE_DOCTOR, ROLE_SALES, ROLE_ADMIN, has_any_role
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import sanitize_filename

PASSWORD = 'Kh0ng-de-doan-2024'


class RegistrationTests(TestCase):
    """Test self-registration and manager approval"""

    def setUp(self):
        self.client = APIClient()
        self.manager = TestDataFactory.create_user(roles=[ROLE_MANAGER])

    def register(self, username='nurse.hoa'):
        return self.client.post('/api/v1/auth/register/', {
            'username': username,
            'email': f'{username}@clinic.test',
            'password': PASSWORD,
            'password_confirm': PASSWORD,
            'full_name': 'Nguyen Thi Hoa',
        }, format='json')

    def login(self, username='nurse.hoa'):
        return self.client.post('/api/v1/auth/login/', {'username': username, 'password': PASSWORD}, format='json')

    def test_registration_awaits_approval(self):
        response = self.register()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['user']['is_approved'])
        self.assertEqual(self.login().status_code, status.HTTP_401_UNAUTHORIZED)

    def test_approved_user_can_log_in(self):
        user_id = self.register().data['user']['id']
        manager_client = AuthenticatedAPIClient()
        manager_client.authenticate_user(self.manager)
        response = manager_client.post(f'/api/v1/users/{user_id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(AuditLog.objects.filter(action='user_approve', object_id=str(user_id)).exists())

        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

        response = manager_client.post(f'/api/v1/users/{user_id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'x', 'password': PASSWORD, 'password_confirm': PASSWORD + '!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class UserManagementTests(TestCase):
    """Test user, role and settings endpoints"""

    def setUp(self):
        self.manager = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)

    def test_roles_are_replaced(self):
        user = TestDataFactory.create_user(roles=[ROLE_SALES])
        response = self.client.put(f'/api/v1/users/{user.id}/roles/', {'roles': [ROLE_DOCTOR]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['groups'], [ROLE_DOCTOR])

        response = self.client.put(f'/api/v1/users/{user.id}/roles/', {'roles': ['Janitor']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_pending_filter(self):
        TestDataFactory.create_user(is_approved=False)
        response = self.client.get('/api/v1/users/?is_approved=false')
        self.assertEqual(response.data['count'], 1)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.manager.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_manager_cannot_list_users(self):
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_SALES]))
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_me_reports_module_access(self):
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_DOCTOR]))
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['can_access_medical'])
        self.assertFalse(response.data['can_access_finance'])
        self.assertFalse(response.data['is_admin'])

    def test_settings_crud(self):
        response = self.client.post('/api/v1/settings/', {'key': 'pos_default_fund', 'value': '1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Setting.get_value('pos_default_fund'), '1')
        self.assertEqual(Setting.get_value('missing', 'fallback'), 'fallback')

    def test_staff_only_see_own_audit_logs(self):
        staff = TestDataFactory.create_user(roles=[ROLE_SALES])
        AuditLog.objects.create(user=staff, action='create', model_name='Patient', object_id='1')
        AuditLog.objects.create(user=self.manager, action='create', model_name='Patient', object_id='2')

        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.data['count'], 2)

        self.client.authenticate_user(staff)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.data['count'], 1)

    @override_settings(EDGE_FUNCTIONS_URL='https://functions.clinic.test')
    @patch('backend.core.edge_functions.requests.post')
    def test_invite_user(self, mock_post):
        mock_post.return_value = MagicMock(ok=True, status_code=200, content=b'{"invited": true}')
        mock_post.return_value.json.return_value = {'invited': True}
        response = self.client.post('/api/v1/users/invite/', {'email': 'new@clinic.test', 'roles': [ROLE_DOCTOR]},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        self.assertEqual(mock_post.call_args[0][0], 'https://functions.clinic.test/invite-user')
        self.assertEqual(mock_post.call_args[1]['json']['roles'], [ROLE_DOCTOR])

    @override_settings(EDGE_FUNCTIONS_URL='')
    def test_invite_without_functions_configured(self):
        response = self.client.post('/api/v1/users/invite/', {'email': 'new@clinic.test'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)


class RoleTests(TestCase):
    """Test role checks"""

    def test_admin_passes_every_check(self):
        admin = TestDataFactory.create_user(roles=[ROLE_ADMIN])
        self.assertTrue(has_any_role(admin, ROLE_DOCTOR))
        superuser = TestDataFactory.create_user(is_superuser=True)
        self.assertTrue(has_any_role(superuser, ROLE_SALES))

    def test_roles_must_match(self):
        doctor = TestDataFactory.create_user(roles=[ROLE_DOCTOR])
        self.assertTrue(has_any_role(doctor, ROLE_DOCTOR, ROLE_MANAGER))
        self.assertFalse(has_any_role(doctor, ROLE_SALES))
        self.assertFalse(has_any_role(doctor))


@override_settings(EDGE_FUNCTIONS_URL='https://functions.clinic.test/', EDGE_FUNCTIONS_KEY='secret')
class EdgeFunctionTests(SimpleTestCase):
    """Test the serverless function client"""

    @patch('backend.core.edge_functions.requests.post')
    def test_success(self, mock_post):
        mock_post.return_value = MagicMock(ok=True, status_code=200, content=b'{"name": "Amoxicillin"}')
        mock_post.return_value.json.return_value = {'name': 'Amoxicillin'}
        result = invoke_edge_function('enrich-product-data', {'barcode': '893'})
        self.assertEqual(result, {'name': 'Amoxicillin'})
        self.assertEqual(mock_post.call_args[0][0], 'https://functions.clinic.test/enrich-product-data')
        self.assertEqual(mock_post.call_args[1]['headers']['Authorization'], 'Bearer secret')

    @patch('backend.core.edge_functions.requests.post')
    def test_empty_body(self, mock_post):
        mock_post.return_value = MagicMock(ok=True, status_code=204, content=b'')
        self.assertEqual(invoke_edge_function('extract-from-pdf', {'path': 'invoices/1.pdf'}), {})

    @patch('backend.core.edge_functions.requests.post')
    def test_error_status(self, mock_post):
        mock_post.return_value = MagicMock(ok=False, status_code=409, text='conflict')
        mock_post.return_value.json.return_value = {'error': 'User already exists'}
        with self.assertRaises(EdgeFunctionError) as ctx:
            invoke_edge_function('invite-user', {'email': 'a@b.test'})
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.message, 'User already exists')

    @patch('backend.core.edge_functions.requests.post')
    def test_error_body_that_is_not_an_object(self, mock_post):
        mock_post.return_value = MagicMock(ok=False, status_code=500, text='["boom"]')
        mock_post.return_value.json.return_value = ['boom']
        with self.assertRaises(EdgeFunctionError) as ctx:
            invoke_edge_function('enrich-product-data', {'barcode': '893'})
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.message, '["boom"]')

    @patch('backend.core.edge_functions.requests.post')
    def test_user_admin_functions_are_local(self, mock_post):
        for name in ('approve-user', 'update-user-roles'):
            with self.assertRaises(EdgeFunctionError):
                invoke_edge_function(name, {'user_id': 1})
        mock_post.assert_not_called()

    @patch('backend.core.edge_functions.requests.post', side_effect=requests.exceptions.Timeout)
    def test_timeout(self, mock_post):
        with self.assertRaises(EdgeFunctionError) as ctx:
            invoke_edge_function('extract-from-pdf', {})
        self.assertEqual(ctx.exception.message, 'Request timed out')

    @patch('backend.core.edge_functions.requests.post')
    def test_unknown_function(self, mock_post):
        with self.assertRaises(EdgeFunctionError):
            invoke_edge_function('drop-database')
        mock_post.assert_not_called()


class SanitizeFilenameTests(SimpleTestCase):

    def test_vietnamese_name(self):
        self.assertEqual(sanitize_filename('Đơn thuốc (bản 2).pdf'), 'Don_thuoc_ban_2_.pdf')

    def test_empty_name(self):
        self.assertEqual(sanitize_filename(''), 'attachment')
