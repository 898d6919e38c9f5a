from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class SalesOrder(models.Model):
    """Customer order for finished products; drives MRP demand and picking"""
    STATUS_CHOICES = [
        ('received', 'Received'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]
    # Orders still generating material demand
    OPEN_STATUSES = ('received', 'in_progress')

    order_code = models.CharField(max_length=50, unique=True)
    order_date = models.DateField(default=timezone.localdate)
    division = models.CharField(max_length=100, blank=True)
    manager = models.CharField(max_length=100, blank=True)
    project = models.CharField(max_length=200, blank=True)
    due_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='received')
    total_qty = models.IntegerField(default=0)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'sales_orders'
        ordering = ['-order_date', '-id']
        indexes = [
            models.Index(fields=['status'], name='so_status_idx'),
            models.Index(fields=['due_date'], name='so_due_date_idx'),
        ]

    def __str__(self):
        return self.order_code

    def recalculate_total(self):
        self.total_qty = sum(item.order_qty for item in self.items.all())
        self.save(update_fields=['total_qty', 'updated_at'])


class SalesOrderItem(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
    ]

    sales_order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.PROTECT, related_name='sales_order_items')
    order_qty = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    produced_qty = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    notes = models.TextField(blank=True)

    class Meta:
        db_table = 'sales_order_items'
        ordering = ['id']

    def __str__(self):
        return f"{self.sales_order.order_code} {self.product.product_code} x{self.order_qty}"
