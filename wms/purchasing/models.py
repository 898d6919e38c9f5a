from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class PurchaseOrder(models.Model):
    """Order placed with a supplier for parts"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('submitted', 'Submitted'),
        ('approved', 'Approved'),
        ('ordered', 'Ordered'),
        ('partial', 'Partially Received'),
        ('received', 'Received'),
        ('cancelled', 'Cancelled'),
    ]
    # Status workflow: current status -> statuses it may move to
    TRANSITIONS = {
        'draft': ('submitted', 'cancelled'),
        'submitted': ('approved', 'draft', 'cancelled'),
        'approved': ('ordered', 'cancelled'),
        'ordered': ('partial', 'received', 'cancelled'),
        'partial': ('received', 'cancelled'),
        'received': (),
        'cancelled': (),
    }
    RECEIVABLE_STATUSES = ('approved', 'ordered', 'partial')
    PENDING_STATUSES = ('draft', 'submitted', 'approved', 'ordered', 'partial')

    order_code = models.CharField(max_length=50, unique=True)
    supplier = models.ForeignKey('parties.Supplier', on_delete=models.PROTECT, related_name='purchase_orders')
    project = models.CharField(max_length=200, blank=True)
    order_date = models.DateField(default=timezone.localdate)
    expected_date = models.DateField(null=True, blank=True)
    actual_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_orders')
    approved_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_purchase_orders')
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.order_code

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.status, ())

    def recalculate_total(self):
        self.total_amount = sum((item.total_price for item in self.items.all()), Decimal('0.00'))
        self.save(update_fields=['total_amount', 'updated_at'])

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-order_date', '-id']
        indexes = [
            models.Index(fields=['status'], name='po_status_idx'),
            models.Index(fields=['supplier', 'status'], name='po_supplier_status_idx'),
            models.Index(fields=['expected_date'], name='po_expected_date_idx'),
        ]


class PurchaseOrderItem(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('ordered', 'Ordered'),
        ('partial', 'Partially Received'),
        ('received', 'Received'),
        ('cancelled', 'Cancelled'),
    ]

    order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='items')
    part = models.ForeignKey('catalog.Part', on_delete=models.PROTECT, related_name='purchase_order_items')
    order_qty = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    received_qty = models.PositiveIntegerField(default=0)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    # Sales order whose demand this line covers (set when created from MRP)
    sales_order = models.ForeignKey('sales.SalesOrder', on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_order_items')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    notes = models.TextField(blank=True)

    def __str__(self):
        return f"{self.order.order_code} {self.part.part_code} x{self.order_qty}"

    @property
    def remaining_qty(self):
        return max(0, self.order_qty - self.received_qty)

    def save(self, *args, **kwargs):
        self.total_price = (self.unit_price or Decimal('0')) * self.order_qty
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'purchase_order_items'
        ordering = ['id']
        indexes = [
            models.Index(fields=['order', 'part'], name='poitem_order_part_idx'),
        ]
