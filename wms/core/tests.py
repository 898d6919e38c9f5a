"""
Test suite for the core module
Tests: authentication, role permissions, audit logs, notifications and helpers
"""
from datetime import date
from io import StringIO
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from wms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wms.core.models import AuditLog, Notification
from wms.core.permissions import has_permission
from wms.core.utils import create_audit_log, generate_sequential_code, parse_bool, parse_date, parse_id_list
from wms.core.notifications import notify_low_stock
from wms.parties.models import Supplier


class PermissionTests(TestCase):
    """Test the role to resource/action matrix"""

    def test_admin_has_everything(self):
        user = TestDataFactory.create_user(role='admin')
        self.assertTrue(has_permission(user, 'users', 'delete'))
        self.assertTrue(has_permission(user, 'settings', 'edit'))

    def test_manager_cannot_manage_users(self):
        user = TestDataFactory.create_user(role='manager')
        self.assertTrue(has_permission(user, 'purchase_orders', 'delete'))
        self.assertFalse(has_permission(user, 'users', 'view'))

    def test_operator_can_pick_but_not_order(self):
        user = TestDataFactory.create_user(role='operator')
        self.assertTrue(has_permission(user, 'picking', 'edit'))
        self.assertTrue(has_permission(user, 'purchase_orders', 'view'))
        self.assertFalse(has_permission(user, 'purchase_orders', 'create'))

    def test_viewer_is_read_only(self):
        user = TestDataFactory.create_user(role='viewer')
        self.assertTrue(has_permission(user, 'parts', 'view'))
        self.assertFalse(has_permission(user, 'parts', 'create'))

    def test_superuser_overrides_role(self):
        user = TestDataFactory.create_user(role='viewer', is_superuser=True)
        self.assertTrue(has_permission(user, 'users', 'delete'))
        self.assertEqual(user.effective_role, 'admin')


class AuthAPITests(TestCase):
    """Test login, registration and the current-user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(username='alice', password='S3cure-pass!', role='operator')

    def test_login_returns_tokens_and_user(self):
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'alice',
            'password': 'S3cure-pass!'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['role'], 'operator')

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'alice',
            'password': 'wrong'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_register_creates_viewer(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'bob',
            'email': 'bob@test.com',
            'password': 'An0ther-pass!',
            'password_confirm': 'An0ther-pass!',
            'role': 'admin'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], 'viewer')

    def test_me_lists_permissions(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('edit', response.data['permissions']['picking'])
        self.assertEqual(response.data['permissions']['users'], [])

    def test_unauthenticated_request_rejected(self):
        response = self.client.get('/api/v1/parts/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_viewer_cannot_create(self):
        viewer = TestDataFactory.create_user(role='viewer')
        self.client.authenticate_user(viewer)
        response = self.client.post('/api/v1/suppliers/', {'code': 'S1', 'name': 'Acme'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class UserAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_user(role='admin')
        self.client.authenticate_user(self.admin)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_role_change_is_audited(self):
        user = TestDataFactory.create_user(role='viewer')
        response = self.client.patch(f'/api/v1/users/{user.id}/', {'role': 'operator'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(model_name='User', object_id=str(user.id))
        self.assertEqual(log.changes['role'], {'old': 'viewer', 'new': 'operator'})

    def test_manager_cannot_list_users(self):
        manager = TestDataFactory.create_user(role='manager')
        self.client.authenticate_user(manager)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AuditLogAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_user(role='admin')
        self.operator = TestDataFactory.create_user(role='operator')
        create_audit_log(user=self.admin, action='create', model_name='Part', object_id=1, object_reference='P-1')
        create_audit_log(user=self.operator, action='update', model_name='Part', object_id=1, object_reference='P-1')

    def test_admin_sees_all_logs(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

    def test_operator_sees_own_logs(self):
        self.client.authenticate_user(self.operator)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'update')

    def test_filter_by_action(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/audit-logs/?action=create')
        self.assertEqual(response.data['count'], 1)


class NotificationAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='viewer')
        self.client.authenticate_user(self.user)

    def test_low_stock_notification_is_global(self):
        part = TestDataFactory.create_part(safety_stock=10)
        notification = notify_low_stock(part, 0)
        self.assertIsNone(notification.user)
        self.assertEqual(notification.type, 'error')

        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['unread_count'], 1)

    def test_mark_all_read(self):
        Notification.objects.create(title='A', message='a')
        Notification.objects.create(title='B', message='b', user=self.user)
        response = self.client.post('/api/v1/notifications/mark-all-read/')
        self.assertEqual(response.data['updated'], 2)
        response = self.client.get('/api/v1/notifications/unread-count/')
        self.assertEqual(response.data['unread_count'], 0)

    def test_other_users_notifications_hidden(self):
        other = TestDataFactory.create_user()
        notification = Notification.objects.create(title='Private', message='x', user=other)
        response = self.client.patch(f'/api/v1/notifications/{notification.id}/', {'is_read': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class GlobalSearchTests(TestCase):
    def test_search_across_entities(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user())
        TestDataFactory.create_part(part_code='BOLT-M8', part_name='Hex bolt')
        TestDataFactory.create_supplier(name='Bolt Works', code='BW')
        response = client.get('/api/v1/search/?q=bolt')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['parts']), 1)
        self.assertEqual(len(response.data['suppliers']), 1)


class UtilsTests(TestCase):
    def test_generate_sequential_code(self):
        Supplier.objects.create(code='SUP-0007', name='A')
        Supplier.objects.create(code='SUP-0002', name='B')
        self.assertEqual(generate_sequential_code(Supplier, 'code', 'SUP'), 'SUP-0008')

    def test_generate_sequential_code_first(self):
        self.assertEqual(generate_sequential_code(Supplier, 'code', 'NEW', width=3), 'NEW-001')

    def test_parse_helpers(self):
        self.assertEqual(parse_date('2024-03-05'), date(2024, 3, 5))
        self.assertIsNone(parse_date('05/03/2024'))
        self.assertTrue(parse_bool('true'))
        self.assertFalse(parse_bool('0'))
        self.assertIsNone(parse_bool(None))
        self.assertEqual(parse_id_list('1, 2,x,3'), [1, 2, 3])


class SeedDemoDataCommandTests(TestCase):
    def test_seed_is_repeatable(self):
        from wms.catalog.models import BomItem, Part
        from wms.inventory.models import Inventory
        from wms.locations.models import Shelf
        from wms.sales.models import SalesOrder

        call_command('seed_demo_data', '--with-stock', '--with-orders', stdout=StringIO())
        call_command('seed_demo_data', '--with-stock', '--with-orders', stdout=StringIO())

        self.assertEqual(Part.objects.count(), 6)
        self.assertEqual(BomItem.objects.count(), 10)
        self.assertEqual(Inventory.objects.get(part__part_code='BOLT-M8').current_qty, 2400)
        self.assertEqual(Shelf.objects.count(), 12)
        self.assertEqual(SalesOrder.objects.get(order_code='DEMO-SO-2').total_qty, 75)
