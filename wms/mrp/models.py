from decimal import Decimal

from django.db import models
from django.utils import timezone


class MrpResult(models.Model):
    """One MRP calculation row per part"""
    URGENCY_CHOICES = [
        ('critical', 'Critical'),
        ('high', 'High'),
        ('medium', 'Medium'),
        ('low', 'Low'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('ordered', 'Ordered'),
        ('completed', 'Completed'),
    ]

    part = models.ForeignKey('catalog.Part', on_delete=models.CASCADE, related_name='mrp_results')
    # Sales order with the earliest due date among those creating demand
    sales_order = models.ForeignKey('sales.SalesOrder', on_delete=models.SET_NULL, null=True, blank=True, related_name='mrp_results')
    calculation_date = models.DateTimeField(default=timezone.now)
    gross_requirement = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal('0'))
    current_stock = models.IntegerField(default=0)
    reserved_qty = models.IntegerField(default=0)
    incoming_qty = models.IntegerField(default=0)
    safety_stock = models.IntegerField(default=0)
    net_requirement = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal('0'))
    suggested_order_qty = models.IntegerField(default=0)
    required_date = models.DateField(null=True, blank=True)
    suggested_order_date = models.DateField(null=True, blank=True)
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default='low')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'mrp_results'
        ordering = ['suggested_order_date', '-suggested_order_qty']
        indexes = [
            models.Index(fields=['status', 'urgency'], name='mrp_status_urgency_idx'),
            models.Index(fields=['part', 'status'], name='mrp_part_status_idx'),
        ]

    def __str__(self):
        return f"MRP {self.part.part_code} net={self.net_requirement} ({self.urgency})"
