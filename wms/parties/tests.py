"""
Test suite for suppliers
"""
from django.test import TestCase
from rest_framework import status
from wms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wms.core.models import AuditLog
from wms.parties.models import Supplier


class SupplierAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='manager')
        self.client.authenticate_user(self.user)

    def test_create_supplier_normalises_code(self):
        response = self.client.post('/api/v1/suppliers/', {
            'code': ' acme ',
            'name': 'Acme Metals',
            'lead_time_days': 10
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'ACME')
        self.assertTrue(AuditLog.objects.filter(model_name='Supplier', action='create').exists())

    def test_duplicate_code_rejected(self):
        TestDataFactory.create_supplier(code='DUP')
        response = self.client.post('/api/v1/suppliers/', {'code': 'DUP', 'name': 'Other'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_with_part_count_and_search(self):
        supplier = TestDataFactory.create_supplier(name='Nordic Fasteners', code='NF')
        TestDataFactory.create_supplier(name='Other Co', code='OC')
        TestDataFactory.create_part(supplier=supplier)
        TestDataFactory.create_part(supplier=supplier)

        response = self.client.get('/api/v1/suppliers/?search=nordic')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['part_count'], 2)

    def test_detail_includes_parts_and_orders(self):
        supplier = TestDataFactory.create_supplier()
        part = TestDataFactory.create_part(supplier=supplier)
        TestDataFactory.create_purchase_order(supplier=supplier, items=[(part, 5)])

        response = self.client.get(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['parts']), 1)
        self.assertEqual(len(response.data['recent_orders']), 1)

    def test_delete_deactivates(self):
        supplier = TestDataFactory.create_supplier()
        response = self.client.delete(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        supplier.refresh_from_db()
        self.assertFalse(supplier.is_active)
        self.assertTrue(Supplier.objects.filter(id=supplier.id).exists())

    def test_filter_inactive(self):
        TestDataFactory.create_supplier(code='ON')
        off = TestDataFactory.create_supplier(code='OFF')
        off.is_active = False
        off.save()
        response = self.client.get('/api/v1/suppliers/?is_active=false')
        self.assertEqual([row['code'] for row in response.data], ['OFF'])
