"""
Comprehensive test suite for Purchasing module
Tests: order creation, status workflow, receipts, incoming quantities and conversion from MRP results
"""
from datetime import timedelta
from decimal import Decimal
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from wms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wms.core.exceptions import BusinessRuleError, InvalidStatusTransition
from wms.core.models import AuditLog, Notification
from wms.inventory.models import Inventory, Transaction
from wms.mrp.models import MrpResult
from wms.mrp.services import calculate_mrp
from wms.purchasing.models import PurchaseOrder, PurchaseOrderItem
from wms.purchasing.services import change_status, receive_items, create_orders_from_mrp


class PurchaseOrderModelTests(TestCase):
    def setUp(self):
        self.supplier = TestDataFactory.create_supplier()
        self.part = TestDataFactory.create_part(unit_price=Decimal('2.50'))

    def test_line_total_and_order_total(self):
        order = TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.part, 4)])
        item = order.items.get()
        self.assertEqual(item.total_price, Decimal('10.00'))
        self.assertEqual(item.remaining_qty, 4)
        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal('10.00'))

    def test_transitions(self):
        order = TestDataFactory.create_purchase_order(supplier=self.supplier)
        self.assertTrue(order.can_transition_to('submitted'))
        self.assertFalse(order.can_transition_to('received'))


class StatusWorkflowTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='manager')
        self.part = TestDataFactory.create_part()
        self.order = TestDataFactory.create_purchase_order(items=[(self.part, 10)])

    def test_walk_to_ordered(self):
        for new_status in ('submitted', 'approved', 'ordered'):
            change_status(self.order, new_status, user=self.user)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'ordered')
        self.assertEqual(self.order.approved_by, self.user)
        self.assertIsNotNone(self.order.approved_at)
        self.assertEqual(self.order.items.get().status, 'ordered')
        self.assertEqual(Inventory.objects.get(part=self.part).incoming_qty, 10)

    def test_invalid_transition(self):
        with self.assertRaises(InvalidStatusTransition):
            change_status(self.order, 'received', user=self.user)

    def test_cancel_clears_incoming(self):
        for new_status in ('submitted', 'approved'):
            change_status(self.order, new_status, user=self.user)
        self.assertEqual(Inventory.objects.get(part=self.part).incoming_qty, 10)
        change_status(self.order, 'cancelled', user=self.user)
        self.assertEqual(Inventory.objects.get(part=self.part).incoming_qty, 0)
        self.assertEqual(self.order.items.get().status, 'cancelled')

    def test_status_change_notifies(self):
        change_status(self.order, 'submitted', user=self.user)
        self.assertTrue(Notification.objects.filter(title='Purchase order status changed').exists())


class ReceiveTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='manager')
        self.part_a = TestDataFactory.create_part(stock=5)
        self.part_b = TestDataFactory.create_part()
        self.order = TestDataFactory.create_purchase_order(
            items=[(self.part_a, 10), (self.part_b, 4)], status='ordered'
        )
        self.item_a = self.order.items.get(part=self.part_a)
        self.item_b = self.order.items.get(part=self.part_b)

    def test_partial_then_full_receipt(self):
        order, received = receive_items(self.order, [{'item': self.item_a.id, 'quantity': 6}], user=self.user)
        self.assertEqual(order.status, 'partial')
        self.assertEqual(Inventory.objects.get(part=self.part_a).current_qty, 11)
        tx = Transaction.objects.get(part=self.part_a)
        self.assertEqual((tx.transaction_type, tx.reference_type, tx.reference_id), ('inbound', 'ORDER', order.order_code))

        order, _ = receive_items(order, [
            {'item': self.item_a.id, 'quantity': 4},
            {'item': self.item_b.id, 'quantity': 4},
        ], user=self.user)
        self.assertEqual(order.status, 'received')
        self.assertEqual(order.actual_date, timezone.localdate())
        self.assertEqual(Inventory.objects.get(part=self.part_a).incoming_qty, 0)

    def test_over_receipt_rejected(self):
        with self.assertRaises(BusinessRuleError):
            receive_items(self.order, [{'item': self.item_b.id, 'quantity': 5}])
        self.assertFalse(Transaction.objects.exists())

    def test_non_positive_quantity_rejected(self):
        with self.assertRaises(BusinessRuleError):
            receive_items(self.order, [{'item': self.item_b.id, 'quantity': 0}])

    def test_draft_cannot_be_received(self):
        draft = TestDataFactory.create_purchase_order(items=[(self.part_a, 1)])
        with self.assertRaises(BusinessRuleError):
            receive_items(draft, [{'item': draft.items.get().id, 'quantity': 1}])

    def test_foreign_item_rejected(self):
        other = TestDataFactory.create_purchase_order(items=[(self.part_a, 1)], status='ordered')
        with self.assertRaises(BusinessRuleError):
            receive_items(self.order, [{'item': other.items.get().id, 'quantity': 1}])


class CreateFromMrpTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='manager')
        self.today = timezone.localdate()
        self.supplier = TestDataFactory.create_supplier(lead_time_days=10)
        self.frame = TestDataFactory.create_part(part_code='FRAME', supplier=self.supplier, min_order_qty=1)
        self.wheel = TestDataFactory.create_part(part_code='WHEEL', supplier=self.supplier, min_order_qty=50)
        self.orphan = TestDataFactory.create_part(part_code='ORPHAN')
        product = TestDataFactory.create_product()
        for part, qty in ((self.frame, 1), (self.wheel, 2), (self.orphan, 1)):
            TestDataFactory.create_bom_item(product, part, quantity_per_unit=Decimal(qty))
        TestDataFactory.create_sales_order(items=[(product, 10)], due_date=self.today + timedelta(days=30),
                                           project='Fleet')
        results, _ = calculate_mrp(today=self.today)
        self.results = list(MrpResult.objects.select_related('part', 'part__supplier', 'sales_order')
                            .filter(suggested_order_qty__gt=0))

    def test_groups_by_supplier_and_skips_orphans(self):
        orders, skipped = create_orders_from_mrp(self.results, user=self.user)
        self.assertEqual(len(orders), 1)
        order = orders[0]
        self.assertEqual(order.status, 'draft')
        self.assertEqual(order.project, 'Fleet')
        self.assertEqual(order.expected_date, self.today + timedelta(days=10))
        quantities = {item.part.part_code: item.order_qty for item in order.items.all()}
        self.assertEqual(quantities, {'FRAME': 10, 'WHEEL': 50})
        self.assertEqual([row['part_code'] for row in skipped], ['ORPHAN'])
        self.assertEqual(
            MrpResult.objects.filter(status='ordered').count(), 2
        )

    def test_skip_draft_places_order(self):
        orders, _ = create_orders_from_mrp(self.results, skip_draft=True, user=self.user)
        self.assertEqual(orders[0].status, 'ordered')
        self.assertEqual(Inventory.objects.get(part=self.wheel).incoming_qty, 50)

    def test_api_from_mrp(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)
        response = client.post('/api/v1/purchase-orders/from-mrp/', {
            'result_ids': [r.id for r in self.results]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_orders'], 1)
        self.assertEqual(len(response.data['skipped']), 1)

    def test_api_nothing_selected(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)
        response = client.post('/api/v1/purchase-orders/from-mrp/', {'result_ids': [999999]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PurchaseOrderAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='manager')
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier()
        self.part = TestDataFactory.create_part(unit_price=Decimal('3.00'))

    def test_create_order(self):
        response = self.client.post('/api/v1/purchase-orders/', {
            'supplier': self.supplier.id,
            'items': [{'part': self.part.id, 'order_qty': 5}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['order_code'].startswith(f"PO{timezone.localdate().strftime('%y%m')}-"))
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('15.00'))
        self.assertEqual(response.data['status'], 'draft')

    def test_create_without_items(self):
        response = self.client.post('/api/v1/purchase-orders/', {'supplier': self.supplier.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_items_locked_after_draft(self):
        order = TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.part, 5)], status='ordered')
        response = self.client.patch(f'/api/v1/purchase-orders/{order.id}/', {
            'items': [{'part': self.part.id, 'order_qty': 9}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_endpoint_rejects_bad_transition(self):
        order = TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.part, 5)])
        response = self.client.post(f'/api/v1/purchase-orders/{order.id}/status/', {'status': 'received'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_status_transition')

    def test_receive_endpoint(self):
        order = TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.part, 5)], status='ordered')
        item = order.items.get()
        response = self.client.post(f'/api/v1/purchase-orders/{order.id}/receive/', {
            'items': [{'item': item.id, 'quantity': 5}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order']['status'], 'received')
        self.assertTrue(AuditLog.objects.filter(action='order_receive').exists())

    def test_delete_only_draft(self):
        order = TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.part, 5)], status='ordered')
        response = self.client.delete(f'/api/v1/purchase-orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        draft = TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.part, 5)])
        response = self.client.delete(f'/api/v1/purchase-orders/{draft.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(PurchaseOrderItem.objects.filter(order_id=draft.id).exists())

    def test_filter_by_status(self):
        TestDataFactory.create_purchase_order(supplier=self.supplier, status='draft')
        TestDataFactory.create_purchase_order(supplier=self.supplier, status='ordered')
        response = self.client.get('/api/v1/purchase-orders/?status=ordered,partial')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(PurchaseOrder.objects.count(), 2)
