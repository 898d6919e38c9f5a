from django.db import models
from django.utils import timezone


class Inventory(models.Model):
    """Stock position of one part"""
    part = models.OneToOneField('catalog.Part', on_delete=models.CASCADE, related_name='inventory')
    current_qty = models.IntegerField(default=0)
    reserved_qty = models.IntegerField(default=0)
    incoming_qty = models.IntegerField(default=0)
    last_inbound_date = models.DateTimeField(null=True, blank=True)
    last_outbound_date = models.DateTimeField(null=True, blank=True)
    last_audit_date = models.DateTimeField(null=True, blank=True)
    last_audit_qty = models.IntegerField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'inventory'
        verbose_name_plural = 'inventory'

    def __str__(self):
        return f"{self.part.part_code}: {self.current_qty}"

    @property
    def available_qty(self):
        return max(0, self.current_qty - self.reserved_qty)


class Transaction(models.Model):
    """Stock movement; before/after quantities make the ledger self-describing"""
    TYPE_CHOICES = [
        ('inbound', 'Inbound'),
        ('outbound', 'Outbound'),
        ('adjustment', 'Adjustment'),
        ('transfer', 'Transfer'),
    ]
    REFERENCE_CHOICES = [
        ('ORDER', 'Purchase Order'),
        ('SALES_ORDER', 'Sales Order'),
        ('PICK', 'Picking'),
        ('PICK_REVERT', 'Picking Revert'),
        ('AUDIT', 'Stock Audit'),
        ('MANUAL', 'Manual'),
    ]

    transaction_code = models.CharField(max_length=50, unique=True)
    part = models.ForeignKey('catalog.Part', on_delete=models.PROTECT, related_name='transactions')
    transaction_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    quantity = models.IntegerField()
    before_qty = models.IntegerField()
    after_qty = models.IntegerField()
    reference_type = models.CharField(max_length=20, choices=REFERENCE_CHOICES, default='MANUAL')
    reference_id = models.CharField(max_length=50, blank=True, null=True)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    reason = models.CharField(max_length=255, blank=True)
    performed_by = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    transaction_date = models.DateTimeField(default=timezone.now)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'transactions'
        ordering = ['-transaction_date', '-id']
        indexes = [
            models.Index(fields=['part', 'transaction_date'], name='tx_part_date_idx'),
            models.Index(fields=['transaction_type'], name='tx_type_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='tx_reference_idx'),
        ]

    def __str__(self):
        return self.transaction_code


class StockAudit(models.Model):
    """Physical stock count (stocktake)"""
    TYPE_CHOICES = [
        ('monthly', 'Monthly'),
        ('quarterly', 'Quarterly'),
        ('yearly', 'Yearly'),
        ('spot', 'Spot Check'),
    ]
    STATUS_CHOICES = [
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
        ('approved', 'Approved'),
    ]

    audit_code = models.CharField(max_length=50, unique=True)
    audit_date = models.DateField(default=timezone.localdate)
    audit_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='spot')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='in_progress')
    total_items = models.IntegerField(default=0)
    checked_items = models.IntegerField(default=0)
    discrepancy_count = models.IntegerField(default=0)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='stock_audits')
    completed_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_stock_audits')
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'stock_audits'
        ordering = ['-audit_date', '-id']

    def __str__(self):
        return self.audit_code


class StockAuditItem(models.Model):
    audit = models.ForeignKey(StockAudit, on_delete=models.CASCADE, related_name='items')
    part = models.ForeignKey('catalog.Part', on_delete=models.CASCADE, related_name='audit_items')
    system_qty = models.IntegerField()
    counted_qty = models.IntegerField(null=True, blank=True)
    discrepancy = models.IntegerField(null=True, blank=True)
    notes = models.TextField(blank=True)
    counted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'stock_audit_items'
        unique_together = [['audit', 'part']]
        ordering = ['part__storage_location', 'part__part_code']

    def __str__(self):
        return f"{self.audit.audit_code} {self.part.part_code}"
