"""
Test suite for sales orders
Tests: creation with items, code generation, filtering, item replacement and material requirements
"""
from datetime import timedelta
from decimal import Decimal
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from wms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wms.core.models import AuditLog
from wms.sales.models import SalesOrder, SalesOrderItem


class SalesOrderAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='manager')
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(product_code='CHAIR')
        self.today = timezone.localdate()

    def test_create_with_items_generates_code(self):
        response = self.client.post('/api/v1/sales-orders/', {
            'project': 'Office refit',
            'due_date': str(self.today + timedelta(days=20)),
            'items': [{'product': self.product.id, 'order_qty': 12}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['order_code'].startswith(f"SO{self.today.strftime('%y%m')}-"))
        self.assertEqual(response.data['total_qty'], 12)
        self.assertEqual(response.data['created_by'], self.user.id)
        self.assertEqual(len(response.data['items']), 1)
        self.assertTrue(AuditLog.objects.filter(model_name='SalesOrder', action='create').exists())

    def test_create_requires_items(self):
        response = self.client.post('/api/v1/sales-orders/', {'project': 'Empty'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_item_rolls_back(self):
        response = self.client.post('/api/v1/sales-orders/', {
            'order_code': 'SO-BAD',
            'items': [{'product': self.product.id, 'order_qty': 0}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(SalesOrder.objects.filter(order_code='SO-BAD').exists())

    def test_due_date_before_order_date(self):
        response = self.client.post('/api/v1/sales-orders/', {
            'order_date': str(self.today),
            'due_date': str(self.today - timedelta(days=1)),
            'items': [{'product': self.product.id, 'order_qty': 1}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_code_rejected(self):
        TestDataFactory.create_sales_order(order_code='SO-1', items=[(self.product, 1)])
        response = self.client.post('/api/v1/sales-orders/', {
            'order_code': 'so-1',
            'items': [{'product': self.product.id, 'order_qty': 1}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        TestDataFactory.create_sales_order(order_code='SO-A', status='received', project='Alpha',
                                           due_date=self.today + timedelta(days=5))
        TestDataFactory.create_sales_order(order_code='SO-B', status='completed', project='Beta',
                                           due_date=self.today + timedelta(days=40))

        response = self.client.get('/api/v1/sales-orders/?status=received,in_progress')
        self.assertEqual([row['order_code'] for row in response.data['results']], ['SO-A'])

        response = self.client.get('/api/v1/sales-orders/?search=beta')
        self.assertEqual(response.data['count'], 1)

        due_to = self.today + timedelta(days=10)
        response = self.client.get(f'/api/v1/sales-orders/?due_to={due_to}')
        self.assertEqual([row['order_code'] for row in response.data['results']], ['SO-A'])

    def test_put_replaces_items(self):
        other = TestDataFactory.create_product()
        order = TestDataFactory.create_sales_order(items=[(self.product, 5)])
        response = self.client.patch(f'/api/v1/sales-orders/{order.id}/', {
            'items': [{'product': other.id, 'order_qty': 2}, {'product': self.product.id, 'order_qty': 3}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_qty'], 5)
        self.assertEqual(SalesOrderItem.objects.filter(sales_order=order).count(), 2)

    def test_status_change_is_audited(self):
        order = TestDataFactory.create_sales_order(items=[(self.product, 5)])
        response = self.client.patch(f'/api/v1/sales-orders/{order.id}/', {'status': 'in_progress'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(AuditLog.objects.filter(model_name='SalesOrder', action='status_change').exists())

    def test_detail_shows_material_requirements(self):
        bolt = TestDataFactory.create_part(part_code='BOLT', stock=30)
        TestDataFactory.create_bom_item(self.product, bolt, quantity_per_unit=Decimal('4'), loss_rate=Decimal('0.05'))
        order = TestDataFactory.create_sales_order(items=[(self.product, 10)])

        response = self.client.get(f'/api/v1/sales-orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        requirement = response.data['material_requirements'][0]
        # 10 * 4 * 1.05 = 42
        self.assertEqual(requirement['required_qty'], 42)
        self.assertEqual(requirement['current_qty'], 30)
        self.assertEqual(requirement['shortage'], 12)

    def test_delete(self):
        order = TestDataFactory.create_sales_order(items=[(self.product, 5)])
        response = self.client.delete(f'/api/v1/sales-orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(SalesOrder.objects.filter(id=order.id).exists())

    def test_operator_cannot_create(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='operator'))
        response = self.client.post('/api/v1/sales-orders/', {
            'items': [{'product': self.product.id, 'order_qty': 1}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
