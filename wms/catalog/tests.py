"""
Test suite for the catalog: categories, parts, products and BOM lines
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from wms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wms.catalog.models import Part, BomItem
from wms.inventory.models import Inventory
from wms.inventory.services import process_transaction


class PartModelTests(TestCase):
    def test_inventory_created_with_part(self):
        part = TestDataFactory.create_part()
        self.assertTrue(Inventory.objects.filter(part=part).exists())
        self.assertEqual(part.inventory.current_qty, 0)


class PartAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='manager')
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier()

    def test_create_part(self):
        response = self.client.post('/api/v1/parts/', {
            'part_code': 'bolt-m8',
            'part_name': 'Hex bolt M8',
            'supplier': self.supplier.id,
            'unit_price': '0.35',
            'safety_stock': 100,
            'min_order_qty': 500,
            'storage_location': 'a-01-02'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['part_code'], 'BOLT-M8')
        self.assertEqual(response.data['storage_location'], 'A-01-02')
        self.assertEqual(response.data['current_qty'], 0)
        self.assertTrue(response.data['is_low_stock'])

    def test_invalid_storage_location(self):
        response = self.client.post('/api/v1/parts/', {
            'part_code': 'X1',
            'part_name': 'Bad location',
            'storage_location': 'shelf 3'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('storage_location', response.data)

    def test_min_order_qty_must_be_positive(self):
        response = self.client.post('/api/v1/parts/', {
            'part_code': 'X2',
            'part_name': 'Zero MOQ',
            'min_order_qty': 0
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        TestDataFactory.create_part(part_code='LOW-1', safety_stock=10, stock=5)
        TestDataFactory.create_part(part_code='OK-1', safety_stock=10, stock=50, supplier=self.supplier)

        response = self.client.get('/api/v1/parts/?low_stock=true')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['part_code'] for row in response.data['results']], ['LOW-1'])

        response = self.client.get(f'/api/v1/parts/?supplier={self.supplier.id}')
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/parts/?search=ok')
        self.assertEqual(response.data['results'][0]['part_code'], 'OK-1')

    def test_update_is_audited(self):
        part = TestDataFactory.create_part(safety_stock=5)
        response = self.client.patch(f'/api/v1/parts/{part.id}/', {'safety_stock': 20}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        from wms.core.models import AuditLog
        log = AuditLog.objects.get(model_name='Part', action='update')
        self.assertEqual(log.changes['safety_stock'], {'old': '5', 'new': '20'})

    def test_delete_part_with_history_rejected(self):
        part = TestDataFactory.create_part()
        process_transaction(part, 'inbound', 10, user=self.user)
        response = self.client.delete(f'/api/v1/parts/{part.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Part.objects.filter(id=part.id).exists())

    def test_delete_unused_part(self):
        part = TestDataFactory.create_part()
        response = self.client.delete(f'/api/v1/parts/{part.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_timeline(self):
        part = TestDataFactory.create_part()
        process_transaction(part, 'inbound', 30, user=self.user)
        process_transaction(part, 'outbound', 12, user=self.user)
        process_transaction(part, 'adjustment', 20, user=self.user, reason='Recount')

        response = self.client.get(f'/api/v1/parts/{part.id}/timeline/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([e['after_qty'] for e in response.data['events']], [30, 18, 20])
        self.assertEqual(response.data['totals']['inbound'], 30)
        self.assertEqual(response.data['totals']['outbound'], 12)
        self.assertEqual(response.data['totals']['adjustment_count'], 1)


class ProductBomAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='manager'))
        self.product = TestDataFactory.create_product(product_code='BIKE')
        self.part = TestDataFactory.create_part(part_code='WHEEL')

    def test_create_bom_line(self):
        response = self.client.post('/api/v1/bom/', {
            'product': self.product.id,
            'part': self.part.id,
            'quantity_per_unit': '2',
            'loss_rate': '0.05'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['part_code'], 'WHEEL')

    def test_duplicate_bom_line_rejected(self):
        TestDataFactory.create_bom_item(self.product, self.part)
        response = self.client.post('/api/v1/bom/', {
            'product': self.product.id,
            'part': self.part.id,
            'quantity_per_unit': '1'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_loss_rate_is_a_fraction(self):
        response = self.client.post('/api/v1/bom/', {
            'product': self.product.id,
            'part': self.part.id,
            'quantity_per_unit': '1',
            'loss_rate': '5'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_product_lists_bom(self):
        TestDataFactory.create_bom_item(self.product, self.part, quantity_per_unit=Decimal('2'))
        response = self.client.get(f'/api/v1/products/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['bom_count'], 1)
        self.assertEqual(response.data['bom_items'][0]['part'], self.part.id)

    def test_filter_bom_by_product(self):
        other = TestDataFactory.create_product()
        TestDataFactory.create_bom_item(self.product, self.part)
        TestDataFactory.create_bom_item(other, self.part)
        response = self.client.get(f'/api/v1/bom/?product={self.product.id}')
        self.assertEqual(len(response.data), 1)

    def test_product_on_sales_order_cannot_be_deleted(self):
        TestDataFactory.create_sales_order(items=[(self.product, 3)])
        response = self.client.delete(f'/api/v1/products/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_deleting_product_drops_bom(self):
        TestDataFactory.create_bom_item(self.product, self.part)
        response = self.client.delete(f'/api/v1/products/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(BomItem.objects.exists())
