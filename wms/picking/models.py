from django.db import models


class PickingTask(models.Model):
    """Work order to pull the parts of a sales order from their shelves"""
    PRIORITY_CHOICES = [
        ('urgent', 'Urgent'),
        ('high', 'High'),
        ('normal', 'Normal'),
        ('low', 'Low'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]
    ACTIVE_STATUSES = ('pending', 'in_progress')
    PRIORITY_RANK = {'urgent': 0, 'high': 1, 'normal': 2, 'low': 3}

    task_code = models.CharField(max_length=30, unique=True)
    sales_order = models.ForeignKey('sales.SalesOrder', on_delete=models.SET_NULL, null=True, blank=True, related_name='picking_tasks')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    assigned_to = models.CharField(max_length=100, blank=True)
    total_items = models.PositiveIntegerField(default=0)
    picked_items = models.PositiveIntegerField(default=0)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='picking_tasks')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.task_code

    class Meta:
        db_table = 'picking_tasks'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'priority'], name='pick_status_priority_idx'),
        ]


class PickingItem(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('in_progress', 'In Progress'),
        ('picked', 'Picked'),
        ('skipped', 'Skipped'),
    ]
    # Items that no longer need attention
    DONE_STATUSES = ('picked', 'skipped')

    task = models.ForeignKey(PickingTask, on_delete=models.CASCADE, related_name='items')
    part = models.ForeignKey('catalog.Part', on_delete=models.PROTECT, related_name='picking_items')
    storage_location = models.CharField(max_length=50, blank=True)
    required_qty = models.PositiveIntegerField()
    picked_qty = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    sequence = models.PositiveIntegerField(default=0)
    scanned_at = models.DateTimeField(null=True, blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    picked_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)

    def __str__(self):
        return f"{self.task.task_code} #{self.sequence} {self.part.part_code}"

    @property
    def remaining_qty(self):
        return max(0, self.required_qty - self.picked_qty)

    class Meta:
        db_table = 'picking_items'
        ordering = ['sequence', 'id']
