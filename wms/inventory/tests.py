"""
Comprehensive test suite for Inventory module
Tests: stock movements, adjustments, reservations, transaction edits, bulk import and stock audits
"""
from django.test import TestCase
from rest_framework import status
from wms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wms.core.exceptions import BusinessRuleError, InsufficientStockError
from wms.core.models import AuditLog, Notification
from wms.inventory.models import Inventory, Transaction, StockAudit
from wms.inventory.services import (
    calculate_after_qty, process_transaction, reserve_inventory, release_reservation,
    update_transaction, delete_transaction
)
from wms.inventory.audits import create_stock_audit, record_count, complete_stock_audit, approve_stock_audit


def stock_of(part):
    return Inventory.objects.get(part=part).current_qty


class ProcessTransactionTests(TestCase):
    """Test the single entry point for stock movements"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.part = TestDataFactory.create_part(stock=10, safety_stock=3)

    def test_after_qty_per_type(self):
        self.assertEqual(calculate_after_qty('inbound', 10, 5), 15)
        self.assertEqual(calculate_after_qty('outbound', 10, 5), 5)
        self.assertEqual(calculate_after_qty('adjustment', 10, 4), 4)
        self.assertEqual(calculate_after_qty('transfer', 10, 4), 10)

    def test_inbound(self):
        tx, inventory = process_transaction(self.part, 'inbound', 5, user=self.user)
        self.assertEqual((tx.before_qty, tx.after_qty), (10, 15))
        self.assertEqual(inventory.current_qty, 15)
        self.assertIsNotNone(inventory.last_inbound_date)
        self.assertTrue(tx.transaction_code.startswith('IN'))
        self.assertEqual(tx.performed_by, self.user.username)

    def test_outbound_below_zero_rejected(self):
        with self.assertRaises(InsufficientStockError):
            process_transaction(self.part, 'outbound', 11, user=self.user)
        self.assertEqual(stock_of(self.part), 10)
        self.assertFalse(Transaction.objects.exists())

    def test_zero_quantity_rejected(self):
        with self.assertRaises(BusinessRuleError):
            process_transaction(self.part, 'inbound', 0)

    def test_adjustment_stores_signed_delta(self):
        tx, _ = process_transaction(self.part, 'adjustment', 4, reason='Recount')
        self.assertEqual(tx.quantity, -6)
        self.assertEqual(tx.after_qty, 4)

    def test_outbound_to_safety_stock_notifies(self):
        process_transaction(self.part, 'outbound', 8)
        self.assertTrue(Notification.objects.filter(category='inventory', title='Low stock alert').exists())

    def test_total_amount_uses_part_price(self):
        tx, _ = process_transaction(self.part, 'inbound', 3)
        self.assertEqual(tx.total_amount, self.part.unit_price * 3)


class ReservationTests(TestCase):
    def setUp(self):
        self.part = TestDataFactory.create_part(stock=10)

    def test_reserve_and_release(self):
        inventory = reserve_inventory(self.part, 6)
        self.assertEqual(inventory.reserved_qty, 6)
        self.assertEqual(inventory.available_qty, 4)
        inventory = release_reservation(self.part, 10)
        self.assertEqual(inventory.reserved_qty, 0)

    def test_reserve_more_than_available(self):
        reserve_inventory(self.part, 8)
        with self.assertRaises(InsufficientStockError):
            reserve_inventory(self.part, 3)


class TransactionEditTests(TestCase):
    def setUp(self):
        self.part = TestDataFactory.create_part(stock=0)

    def test_update_rebooks_quantity(self):
        tx, _ = process_transaction(self.part, 'inbound', 10)
        process_transaction(self.part, 'outbound', 4)
        update_transaction(tx, quantity=7)
        self.assertEqual(stock_of(self.part), 3)

    def test_update_after_consumption_records_levels(self):
        tx, _ = process_transaction(self.part, 'inbound', 10)
        process_transaction(self.part, 'outbound', 8)
        tx, inventory, old = update_transaction(tx, quantity=9)
        self.assertEqual(inventory.current_qty, 1)
        self.assertEqual((tx.before_qty, tx.after_qty, tx.quantity), (-8, 1, 9))
        self.assertEqual(old['quantity'], 10)

    def test_update_that_goes_negative_is_rejected(self):
        tx, _ = process_transaction(self.part, 'inbound', 10)
        process_transaction(self.part, 'outbound', 8)
        with self.assertRaises(InsufficientStockError):
            update_transaction(tx, quantity=5)
        self.assertEqual(stock_of(self.part), 2)

    def test_delete_reverses_stock(self):
        process_transaction(self.part, 'inbound', 10)
        tx, _ = process_transaction(self.part, 'outbound', 4)
        inventory = delete_transaction(tx)
        self.assertEqual(inventory.current_qty, 10)
        self.assertFalse(Transaction.objects.filter(id=tx.id).exists())

    def test_delete_inbound_already_consumed_rejected(self):
        tx, _ = process_transaction(self.part, 'inbound', 10)
        process_transaction(self.part, 'outbound', 6)
        with self.assertRaises(InsufficientStockError):
            delete_transaction(tx)


class InventoryAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='operator')
        self.client.authenticate_user(self.user)
        self.part = TestDataFactory.create_part(part_code='NUT-M8', stock=20, safety_stock=5)

    def test_create_transaction(self):
        response = self.client.post('/api/v1/transactions/', {
            'part': self.part.id,
            'transaction_type': 'outbound',
            'quantity': 5,
            'reason': 'Line feed'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['after_qty'], 15)
        self.assertEqual(response.data['inventory']['current_qty'], 15)
        self.assertTrue(AuditLog.objects.filter(action='stock_outbound').exists())

    def test_outbound_over_stock_returns_error(self):
        response = self.client.post('/api/v1/transactions/', {
            'part': self.part.id,
            'transaction_type': 'outbound',
            'quantity': 50
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'insufficient_stock')
        self.assertEqual(response.data['details']['current_qty'], 20)

    def test_adjust_to_absolute_quantity(self):
        response = self.client.post('/api/v1/inventory/adjust/', {
            'part': self.part.id,
            'quantity': 12,
            'reason': 'Cycle count'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['transaction']['quantity'], -8)
        self.assertEqual(response.data['inventory']['current_qty'], 12)

    def test_adjust_requires_reason(self):
        response = self.client.post('/api/v1/inventory/adjust/', {'part': self.part.id, 'quantity': 12}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        TestDataFactory.create_part(part_code='LOW', stock=1, safety_stock=5)
        response = self.client.get('/api/v1/inventory/?low_stock=true')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['part_code'] for row in response.data['results']], ['LOW'])

    def test_transaction_list_filters(self):
        process_transaction(self.part, 'inbound', 5, reference_type='ORDER', reference_id='PO2401-0001')
        process_transaction(self.part, 'outbound', 2)
        response = self.client.get('/api/v1/transactions/?reference_type=ORDER')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/transactions/?type=outbound')
        self.assertEqual(response.data['count'], 1)

    def test_bulk_transactions_report_row_errors(self):
        response = self.client.post('/api/v1/transactions/bulk/', {
            'rows': [
                {'part_code': 'nut-m8', 'transaction_type': 'inbound', 'quantity': 10},
                {'part_code': 'MISSING', 'transaction_type': 'inbound', 'quantity': 1},
                {'part_code': 'NUT-M8', 'transaction_type': 'outbound', 'quantity': 999},
            ]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['success'], 1)
        self.assertEqual(response.data['failed'], 2)
        self.assertEqual(stock_of(self.part), 30)

    def test_delete_transaction_via_api(self):
        tx, _ = process_transaction(self.part, 'outbound', 5)
        manager = TestDataFactory.create_user(role='manager')
        self.client.authenticate_user(manager)
        response = self.client.delete(f'/api/v1/transactions/{tx.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['current_qty'], 20)

    def test_low_stock_alerts(self):
        TestDataFactory.create_part(stock=0, safety_stock=2)
        response = self.client.get('/api/v1/inventory/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)


class StockAuditTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='manager')
        self.part_a = TestDataFactory.create_part(part_code='A', stock=10)
        self.part_b = TestDataFactory.create_part(part_code='B', stock=5)

    def test_full_audit_cycle(self):
        audit = create_stock_audit(user=self.user, part_ids=[self.part_a.id, self.part_b.id])
        self.assertEqual(audit.total_items, 2)
        item_a = audit.items.get(part=self.part_a)
        item_b = audit.items.get(part=self.part_b)
        record_count(item_a, 8)
        record_count(item_b, 5)

        audit.refresh_from_db()
        self.assertEqual(audit.discrepancy_count, 1)

        audit, adjustments = complete_stock_audit(audit, user=self.user)
        self.assertEqual(len(adjustments), 1)
        self.assertEqual(adjustments[0].reference_type, 'AUDIT')
        self.assertEqual(stock_of(self.part_a), 8)
        self.assertEqual(Inventory.objects.get(part=self.part_a).last_audit_qty, 8)

        audit = approve_stock_audit(audit, user=self.user)
        self.assertEqual(audit.status, 'approved')

    def test_complete_requires_all_counts(self):
        audit = create_stock_audit(user=self.user)
        with self.assertRaises(BusinessRuleError):
            complete_stock_audit(audit)
        self.assertEqual(StockAudit.objects.get(id=audit.id).status, 'in_progress')

    def test_approve_requires_manager(self):
        audit = create_stock_audit(user=self.user)
        for item in audit.items.all():
            record_count(item, item.system_qty)
        complete_stock_audit(audit)

        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user(role='operator'))
        response = client.post(f'/api/v1/stock-audits/{audit.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_count_via_api(self):
        audit = create_stock_audit(user=self.user, part_ids=[self.part_a.id])
        item = audit.items.get()
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)
        response = client.patch(f'/api/v1/stock-audits/items/{item.id}/', {'counted_qty': 12}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['discrepancy'], 2)
