"""
Comprehensive test suite for Picking module
Tests: task generation from sales orders, item actions, stock postings, completion, revert and cancel
"""
from datetime import timedelta
from decimal import Decimal
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from wms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wms.core.exceptions import BusinessRuleError, InsufficientStockError, InvalidStatusTransition
from wms.core.models import AuditLog
from wms.inventory.models import Inventory, Transaction
from wms.picking.models import PickingItem, PickingTask
from wms.picking.services import (
    active_location_summary, apply_item_action, cancel_task, complete_task, create_task,
    create_task_from_sales_order, priority_for_due_date, revert_task
)


def stock_of(part):
    return Inventory.objects.get(part=part).current_qty


class TaskGenerationTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='operator')
        self.today = timezone.localdate()
        self.product = TestDataFactory.create_product()
        self.bolt = TestDataFactory.create_part(part_code='BOLT', stock=100, storage_location='B-01-01')
        self.nut = TestDataFactory.create_part(part_code='NUT', stock=100, storage_location='A-02-03')
        self.glue = TestDataFactory.create_part(part_code='GLUE', stock=100)
        TestDataFactory.create_bom_item(self.product, self.bolt, quantity_per_unit=Decimal('3'), loss_rate=Decimal('0.1'))
        TestDataFactory.create_bom_item(self.product, self.nut, quantity_per_unit=Decimal('2'))
        TestDataFactory.create_bom_item(self.product, self.glue, quantity_per_unit=Decimal('0.25'))

    def test_items_follow_walking_order(self):
        order = TestDataFactory.create_sales_order(items=[(self.product, 5)], due_date=self.today + timedelta(days=30))
        task = create_task_from_sales_order(order, user=self.user, today=self.today)

        items = list(task.items.order_by('sequence'))
        self.assertEqual([item.part.part_code for item in items], ['NUT', 'BOLT', 'GLUE'])
        # 5 * 3 * 1.1 = 16.5 -> 17, 5 * 0.25 = 1.25 -> 2
        self.assertEqual([item.required_qty for item in items], [10, 17, 2])
        self.assertEqual(task.total_items, 3)
        self.assertEqual(task.priority, 'normal')
        self.assertTrue(task.task_code.startswith(f"PICK-{self.today.strftime('%Y%m%d')}-"))

    def test_due_soon_is_high_priority(self):
        self.assertEqual(priority_for_due_date(self.today + timedelta(days=2), self.today), 'high')
        self.assertEqual(priority_for_due_date(self.today + timedelta(days=10), self.today), 'normal')
        self.assertEqual(priority_for_due_date(None, self.today), 'normal')

    def test_duplicate_active_task_rejected(self):
        order = TestDataFactory.create_sales_order(items=[(self.product, 1)])
        create_task_from_sales_order(order)
        with self.assertRaises(BusinessRuleError):
            create_task_from_sales_order(order)

    def test_order_without_bom_rejected(self):
        order = TestDataFactory.create_sales_order(items=[(TestDataFactory.create_product(), 1)])
        with self.assertRaises(BusinessRuleError):
            create_task_from_sales_order(order)

    def test_manual_task_requires_items(self):
        with self.assertRaises(BusinessRuleError):
            create_task([])


class ItemActionTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user(role='operator')
        self.part = TestDataFactory.create_part(part_code='P1', stock=20, storage_location='A-01-01')
        self.other = TestDataFactory.create_part(part_code='P2', stock=5, storage_location='A-01-02')
        self.task = create_task([
            {'part': self.part, 'required_qty': 8},
            {'part': self.other, 'required_qty': 3},
        ], user=self.user)
        self.item = self.task.items.get(part=self.part)
        self.other_item = self.task.items.get(part=self.other)

    def test_pick_posts_outbound(self):
        item, tx = apply_item_action(self.item, 'pick', user=self.user)
        self.assertEqual(item.status, 'picked')
        self.assertEqual(item.picked_qty, 8)
        self.assertEqual(stock_of(self.part), 12)
        self.assertEqual((tx.transaction_type, tx.reference_type, tx.reference_id),
                         ('outbound', 'PICK', self.task.task_code))
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, 'in_progress')
        self.assertEqual(self.task.picked_items, 1)

    def test_partial_pick(self):
        item, _ = apply_item_action(self.item, 'pick', quantity=5)
        self.assertEqual(item.status, 'in_progress')
        self.assertEqual(item.remaining_qty, 3)
        with self.assertRaises(BusinessRuleError):
            apply_item_action(item, 'pick', quantity=4)

    def test_second_pick_through_stale_item_rejected(self):
        stale = PickingItem.objects.get(pk=self.item.pk)
        apply_item_action(self.item, 'pick', user=self.user)
        self.assertEqual(stale.status, 'pending')
        with self.assertRaises(BusinessRuleError) as ctx:
            apply_item_action(stale, 'pick', user=self.user)
        self.assertEqual(ctx.exception.get_codes(), 'item_closed')
        self.assertEqual(stock_of(self.part), 12)
        self.assertEqual(
            Transaction.objects.filter(part=self.part, reference_type='PICK').count(), 1
        )
        self.item.refresh_from_db()
        self.assertEqual(self.item.picked_qty, 8)

    def test_stale_task_cannot_pick_after_cancel(self):
        stale = PickingItem.objects.get(pk=self.item.pk)
        cancel_task(PickingTask.objects.get(pk=self.task.pk))
        with self.assertRaises(BusinessRuleError):
            apply_item_action(stale, 'pick')
        self.assertEqual(stock_of(self.part), 20)

    def test_skip_or_flag_on_picked_item_rejected(self):
        item, _ = apply_item_action(self.item, 'pick')
        for action in ('skip', 'flag'):
            with self.assertRaises(BusinessRuleError):
                apply_item_action(item, action, notes='Wrong bin')
        item.refresh_from_db()
        self.assertEqual((item.status, item.picked_qty), ('picked', 8))

    def test_pick_without_stock_rejected(self):
        Inventory.objects.filter(part=self.other).update(current_qty=1)
        with self.assertRaises(InsufficientStockError):
            apply_item_action(self.other_item, 'pick')
        self.other_item.refresh_from_db()
        self.assertEqual(self.other_item.picked_qty, 0)

    def test_flag_and_revert_skip(self):
        item, tx = apply_item_action(self.item, 'flag', notes='Bin empty', flag_type='missing')
        self.assertIsNone(tx)
        self.assertEqual(item.status, 'skipped')
        self.assertEqual(item.notes, '[FLAGGED: missing] Bin empty')
        item, _ = apply_item_action(item, 'revert_skip')
        self.assertEqual(item.status, 'pending')

    def test_revert_pick_restores_stock(self):
        item, _ = apply_item_action(self.item, 'pick')
        item, tx = apply_item_action(item, 'revert_pick')
        self.assertEqual(tx.reference_type, 'PICK_REVERT')
        self.assertEqual(item.picked_qty, 0)
        self.assertEqual(stock_of(self.part), 20)

    def test_scan(self):
        item, _ = apply_item_action(self.item, 'scan')
        self.assertIsNotNone(item.scanned_at)
        self.assertEqual(item.status, 'in_progress')

    def test_complete_requires_all_items_done(self):
        apply_item_action(self.item, 'pick')
        with self.assertRaises(BusinessRuleError):
            complete_task(self.task)
        apply_item_action(self.other_item, 'skip')
        task = complete_task(PickingTask.objects.get(pk=self.task.pk))
        self.assertEqual(task.status, 'completed')
        # Completing does not move stock again
        self.assertEqual(Transaction.objects.filter(part=self.part).count(), 1)
        with self.assertRaises(InvalidStatusTransition):
            complete_task(task)

    def test_actions_on_closed_task_rejected(self):
        apply_item_action(self.item, 'pick')
        apply_item_action(self.other_item, 'pick')
        complete_task(PickingTask.objects.get(pk=self.task.pk))
        self.item.refresh_from_db()
        with self.assertRaises(BusinessRuleError):
            apply_item_action(self.item, 'revert_pick')

    def test_revert_task(self):
        apply_item_action(self.item, 'pick')
        apply_item_action(self.other_item, 'pick', quantity=2)
        task, restored = revert_task(PickingTask.objects.get(pk=self.task.pk))
        self.assertEqual(len(restored), 2)
        self.assertEqual(task.status, 'pending')
        self.assertEqual((stock_of(self.part), stock_of(self.other)), (20, 5))
        self.assertFalse(task.items.filter(picked_qty__gt=0).exists())

    def test_cancel_restores_picks(self):
        apply_item_action(self.item, 'pick')
        task, restored = cancel_task(PickingTask.objects.get(pk=self.task.pk))
        self.assertEqual(task.status, 'cancelled')
        self.assertEqual(len(restored), 1)
        self.assertEqual(stock_of(self.part), 20)

    def test_location_summary(self):
        apply_item_action(self.item, 'pick')
        summary = active_location_summary([PickingTask.objects.get(pk=self.task.pk)])
        self.assertEqual([entry['location_code'] for entry in summary], ['A-01-01', 'A-01-02'])
        self.assertEqual(summary[0]['status'], 'completed')
        self.assertEqual(summary[1]['status'], 'pending')


class PickingAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(role='operator')
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product()
        self.part = TestDataFactory.create_part(stock=50, storage_location='A-01-01')
        TestDataFactory.create_bom_item(self.product, self.part, quantity_per_unit=Decimal('2'))
        self.order = TestDataFactory.create_sales_order(items=[(self.product, 4)])

    def test_full_flow(self):
        response = self.client.post(f'/api/v1/picking-tasks/from-sales-order/{self.order.id}/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        task_id = response.data['id']
        item_id = response.data['items'][0]['id']
        self.assertEqual(response.data['items'][0]['required_qty'], 8)

        response = self.client.post(f'/api/v1/picking-items/{item_id}/action/', {'action': 'pick'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['transaction']['quantity'], 8)
        self.assertTrue(AuditLog.objects.filter(action='picking_pick').exists())

        response = self.client.post(f'/api/v1/picking-tasks/{task_id}/complete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(stock_of(self.part), 42)

    def test_duplicate_from_sales_order(self):
        self.client.post(f'/api/v1/picking-tasks/from-sales-order/{self.order.id}/', {}, format='json')
        response = self.client.post(f'/api/v1/picking-tasks/from-sales-order/{self.order.id}/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'duplicate_task')

    def test_active_sorted_by_priority(self):
        low = create_task([{'part': self.part, 'required_qty': 1}], priority='low')
        urgent = create_task([{'part': self.part, 'required_qty': 1}], priority='urgent')
        response = self.client.get('/api/v1/picking-tasks/active/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['id'] for t in response.data['tasks']], [urgent.id, low.id])
        self.assertEqual(response.data['locations'][0]['location_code'], 'A-01-01')

    def test_manual_create(self):
        response = self.client.post('/api/v1/picking-tasks/', {
            'priority': 'high',
            'items': [{'part': self.part.id, 'required_qty': 3}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['items'][0]['storage_location'], 'A-01-01')

    def test_invalid_action(self):
        task = create_task([{'part': self.part, 'required_qty': 1}])
        item = task.items.get()
        response = self.client.post(f'/api/v1/picking-items/{item.id}/action/', {'action': 'teleport'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_with_picks_rejected(self):
        task = create_task([{'part': self.part, 'required_qty': 2}])
        apply_item_action(task.items.get(), 'pick')
        response = self.client.delete(f'/api/v1/picking-tasks/{task.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        manager = TestDataFactory.create_user(role='manager')
        self.client.authenticate_user(manager)
        response = self.client.delete(f'/api/v1/picking-tasks/{task.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
