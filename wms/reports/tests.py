"""
Test suite for dashboard and reports
"""
from datetime import timedelta
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from wms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wms.inventory.services import process_transaction
from wms.reports.views import REPORT_TYPES


class DashboardAPITests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='viewer'))
        self.part = TestDataFactory.create_part(stock=20, safety_stock=5)
        TestDataFactory.create_part(stock=0)

    def test_kpis(self):
        process_transaction(self.part, 'outbound', 2)
        cache.clear()
        response = self.client.get('/api/v1/dashboard/kpis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_parts'], 2)
        self.assertEqual(response.data['out_of_stock_count'], 1)
        self.assertEqual(response.data['low_stock_count'], 1)
        self.assertEqual(response.data['total_stock_qty'], 18)
        self.assertEqual(response.data['today_transactions'], 1)

    def test_charts(self):
        response = self.client.get('/api/v1/dashboard/charts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['transactions_7d']), 7)
        self.assertEqual([row['urgency'] for row in response.data['mrp_urgency']],
                         ['critical', 'high', 'medium', 'low'])

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/dashboard/kpis/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ReportAPITests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='manager'))
        self.today = timezone.localdate()
        self.part = TestDataFactory.create_part(part_code='BOLT', stock=10, safety_stock=3)
        process_transaction(self.part, 'inbound', 5)
        process_transaction(self.part, 'outbound', 4)

    def test_every_report_type(self):
        for report_type in REPORT_TYPES:
            response = self.client.get(f'/api/v1/reports/{report_type}/')
            self.assertEqual(response.status_code, status.HTTP_200_OK, report_type)
            self.assertEqual(response.data['report_type'], report_type)
            self.assertIn('generated_at', response.data)

    def test_inventory_status(self):
        response = self.client.get('/api/v1/reports/inventory-status/')
        self.assertEqual(response.data['summary']['ok'], 1)
        self.assertEqual(response.data['rows'][0]['current_qty'], 11)

    def test_inventory_movement(self):
        response = self.client.get('/api/v1/reports/inventory-movement/')
        summary = response.data['summary']
        self.assertEqual((summary['total_inbound'], summary['total_outbound']), (5, 4))
        self.assertEqual(response.data['by_part'][0]['part_code'], 'BOLT')

    def test_unknown_report(self):
        response = self.client.get('/api/v1/reports/profit-forecast/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('inventory-status', response.data['available'])

    def test_inverted_date_range(self):
        date_from = self.today
        date_to = self.today - timedelta(days=3)
        response = self.client.get(f'/api/v1/reports/order-status/?date_from={date_from}&date_to={date_to}')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_operator_can_view_reports(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='operator'))
        response = self.client.get('/api/v1/reports/audit-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
