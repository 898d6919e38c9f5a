"""
Test suite for MRP
Tests: requirement arithmetic, demand and supply collection, persisted runs, API endpoints and the run_mrp command
"""
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from wms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wms.core.models import AuditLog
from wms.inventory.models import Inventory
from wms.mrp import calculations
from wms.mrp.models import MrpResult
from wms.mrp.services import calculate_mrp, compute_requirements, collect_incoming


class CalculationTests(TestCase):
    def test_net_requirement(self):
        self.assertEqual(calculations.calculate_net_requirement(40, 5, 20, 10), Decimal('15'))
        self.assertEqual(calculations.calculate_net_requirement(10, 0, 30, 0), Decimal('0'))

    def test_recommended_qty_respects_minimum_order(self):
        self.assertEqual(calculations.calculate_recommended_order_qty(Decimal('12.2'), 1), 13)
        self.assertEqual(calculations.calculate_recommended_order_qty(12, 50), 50)
        self.assertEqual(calculations.calculate_recommended_order_qty(0, 50), 0)

    def test_order_date(self):
        self.assertEqual(calculations.calculate_order_date(date(2024, 3, 20), 7), date(2024, 3, 13))
        self.assertIsNone(calculations.calculate_order_date(None, 7))

    def test_urgency_thresholds(self):
        today = date(2024, 3, 1)
        due = date(2024, 3, 31)
        # slack = 30 days until due - lead time
        self.assertEqual(calculations.classify_urgency(5, 30, due, today), 'critical')
        self.assertEqual(calculations.classify_urgency(5, 35, due, today), 'critical')
        self.assertEqual(calculations.classify_urgency(5, 23, due, today), 'high')
        self.assertEqual(calculations.classify_urgency(5, 16, due, today), 'medium')
        self.assertEqual(calculations.classify_urgency(5, 15, due, today), 'low')
        self.assertEqual(calculations.classify_urgency(0, 40, due, today), 'low')
        self.assertEqual(calculations.classify_urgency(5, 40, None, today), 'low')

    def test_bom_requirement_and_rounding(self):
        self.assertEqual(calculations.bom_requirement(10, Decimal('4'), Decimal('0.05')), Decimal('42.00'))
        self.assertEqual(calculations.ceil_qty(Decimal('16.5')), 17)
        self.assertEqual(calculations.ceil_qty(Decimal('3')), 3)

    def test_summarize(self):
        summary = calculations.summarize([
            {'urgency': 'critical', 'suggested_order_qty': 20},
            {'urgency': 'low', 'suggested_order_qty': 0},
            {'urgency': 'high', 'suggested_order_qty': 5},
        ])
        self.assertEqual(summary['total_parts'], 3)
        self.assertEqual(summary['parts_needing_order'], 2)
        self.assertEqual(summary['total_suggested_qty'], 25)
        self.assertEqual((summary['critical_count'], summary['high_count'], summary['low_count']), (1, 1, 1))


class MrpServiceTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='manager')
        self.today = timezone.localdate()
        self.supplier = TestDataFactory.create_supplier(lead_time_days=10)
        self.bolt = TestDataFactory.create_part(part_code='BOLT', supplier=self.supplier, stock=20,
                                                safety_stock=5, min_order_qty=100, lead_time_days=10)
        self.spare = TestDataFactory.create_part(part_code='SPARE', stock=1, safety_stock=4)
        self.product = TestDataFactory.create_product()
        TestDataFactory.create_bom_item(self.product, self.bolt, quantity_per_unit=Decimal('4'))
        self.order = TestDataFactory.create_sales_order(items=[(self.product, 10)],
                                                        due_date=self.today + timedelta(days=12))

    def rows_by_code(self, **kwargs):
        return {row['part'].part_code: row for row in compute_requirements(today=self.today, **kwargs)}

    def test_demand_from_open_orders(self):
        TestDataFactory.create_sales_order(items=[(self.product, 99)], status='completed')
        row = self.rows_by_code()['BOLT']
        self.assertEqual(row['gross_requirement'], Decimal('40'))
        # 40 + 5 - 20 = 25, raised to the minimum order of 100
        self.assertEqual(row['net_requirement'], Decimal('25'))
        self.assertEqual(row['suggested_order_qty'], 100)
        self.assertEqual(row['required_date'], self.order.due_date)
        self.assertEqual(row['suggested_order_date'], self.today + timedelta(days=2))
        self.assertEqual(row['urgency'], 'high')
        self.assertEqual(row['sales_order_id'], self.order.id)

    def test_incoming_counts_live_purchase_orders(self):
        TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.bolt, 10)], status='approved')
        TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.bolt, 500)], status='draft')
        self.assertEqual(collect_incoming(), {self.bolt.id: 10})
        row = self.rows_by_code()['BOLT']
        self.assertEqual(row['incoming_qty'], 10)
        self.assertEqual(row['net_requirement'], Decimal('15'))

    def test_safety_stock_only_part(self):
        row = self.rows_by_code()['SPARE']
        self.assertEqual(row['gross_requirement'], Decimal('0'))
        self.assertEqual(row['suggested_order_qty'], 3)
        self.assertIsNone(row['suggested_order_date'])
        self.assertEqual(row['urgency'], 'low')

    def test_scoped_run_only_covers_consumed_parts(self):
        rows = self.rows_by_code(sales_order_ids=[self.order.id])
        self.assertEqual(list(rows), ['BOLT'])
        rows = self.rows_by_code(part_ids=[self.spare.id])
        self.assertEqual(list(rows), ['SPARE'])

    def test_calculate_persists_and_audits(self):
        results, summary = calculate_mrp(today=self.today, user=self.user)
        self.assertEqual(len(results), 2)
        self.assertEqual(MrpResult.objects.count(), 2)
        self.assertEqual(summary['parts_needing_order'], 2)
        self.assertEqual(summary['total_suggested_qty'], 103)
        self.assertIn('calculated_at', summary)
        self.assertTrue(AuditLog.objects.filter(action='mrp_run', user=self.user).exists())

    def test_rerun_replaces_pending_only(self):
        calculate_mrp(today=self.today)
        MrpResult.objects.filter(part=self.bolt).update(status='ordered')
        calculate_mrp(today=self.today)
        self.assertEqual(MrpResult.objects.filter(part=self.bolt).count(), 2)
        self.assertEqual(MrpResult.objects.filter(part=self.spare).count(), 1)

        calculate_mrp(today=self.today, clear_existing=False)
        self.assertEqual(MrpResult.objects.filter(part=self.spare).count(), 2)

    def test_run_syncs_inventory_incoming(self):
        TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.bolt, 30)], status='ordered')
        Inventory.objects.filter(part=self.bolt).update(incoming_qty=0)
        calculate_mrp(today=self.today)
        self.assertEqual(Inventory.objects.get(part=self.bolt).incoming_qty, 30)


class MrpAPITests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='manager')
        self.client.authenticate_user(self.user)
        self.today = timezone.localdate()
        self.urgent = TestDataFactory.create_part(part_code='URGENT', lead_time_days=30)
        self.relaxed = TestDataFactory.create_part(part_code='RELAXED', lead_time_days=1)
        self.stocked = TestDataFactory.create_part(part_code='STOCKED', stock=500)
        product = TestDataFactory.create_product()
        for part in (self.urgent, self.relaxed, self.stocked):
            TestDataFactory.create_bom_item(product, part, quantity_per_unit=Decimal('2'))
        TestDataFactory.create_sales_order(items=[(product, 5)], due_date=self.today + timedelta(days=20))

    def test_calculate_and_list(self):
        response = self.client.post('/api/v1/mrp/calculate/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['summary']['total_parts'], 3)

        response = self.client.get('/api/v1/mrp/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        codes = [row['part_code'] for row in response.data['results']]
        self.assertEqual(codes[0], 'URGENT')
        self.assertEqual(response.data['results'][0]['urgency'], 'critical')

        response = self.client.get('/api/v1/mrp/?needs_order=true')
        self.assertEqual(sorted(row['part_code'] for row in response.data['results']), ['RELAXED', 'URGENT'])

    def test_operator_cannot_calculate(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='operator'))
        response = self.client.post('/api/v1/mrp/calculate/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.get('/api/v1/mrp/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_patch_status(self):
        calculate_mrp(today=self.today)
        result = MrpResult.objects.get(part=self.urgent)
        response = self.client.patch(f'/api/v1/mrp/results/{result.id}/', {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertTrue(AuditLog.objects.filter(model_name='MrpResult', action='status_change').exists())

        response = self.client.patch(f'/api/v1/mrp/results/{result.id}/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_summary(self):
        calculate_mrp(today=self.today)
        response = self.client.get('/api/v1/mrp/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_parts'], 3)
        self.assertEqual(response.data['parts_needing_order'], 2)
        self.assertEqual(response.data['critical_count'], 1)
        self.assertIsNotNone(response.data['last_calculated_at'])

    def test_low_stock(self):
        TestDataFactory.create_part(part_code='SHORT', stock=2, safety_stock=3)
        response = self.client.get('/api/v1/mrp/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        codes = [row['part_code'] for row in response.data['results']]
        self.assertIn('SHORT', codes)
        self.assertNotIn('STOCKED', codes)


class RunMrpCommandTests(TestCase):
    def test_command_stores_results(self):
        part = TestDataFactory.create_part(stock=0, safety_stock=10)
        out = StringIO()
        call_command('run_mrp', stdout=out)
        self.assertIn('Stored 1 MRP results.', out.getvalue())
        self.assertEqual(MrpResult.objects.get(part=part).suggested_order_qty, 10)

    def test_command_scoped_to_parts(self):
        part = TestDataFactory.create_part(stock=0, safety_stock=2)
        TestDataFactory.create_part(stock=0, safety_stock=2)
        call_command('run_mrp', '--part-ids', str(part.id), stdout=StringIO())
        self.assertEqual(list(MrpResult.objects.values_list('part_id', flat=True)), [part.id])

    def test_command_run_is_audited(self):
        TestDataFactory.create_part(stock=0, safety_stock=5)
        call_command('run_mrp', stdout=StringIO())
        log = AuditLog.objects.get(action='mrp_run')
        self.assertIsNone(log.user)
        self.assertEqual(log.model_name, 'MrpResult')
        self.assertEqual(log.changes['summary']['parts_needing_order'], 1)
