from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .layout import MAX_SHELVES, format_location_code


class Warehouse(models.Model):
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=200)
    # Floor plan size in layout units
    width = models.FloatField(default=100)
    height = models.FloatField(default=100)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.code} - {self.name}"

    class Meta:
        db_table = 'warehouses'
        ordering = ['code']


class Zone(models.Model):
    warehouse = models.ForeignKey(Warehouse, on_delete=models.CASCADE, related_name='zones')
    code = models.CharField(max_length=10)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    color = models.CharField(max_length=20, default='#3B82F6')
    pos_x = models.FloatField(default=0)
    pos_y = models.FloatField(default=0)
    width = models.FloatField(default=20)
    height = models.FloatField(default=20)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.warehouse.code}/{self.code}"

    class Meta:
        db_table = 'zones'
        ordering = ['code']
        unique_together = ['warehouse', 'code']


class Rack(models.Model):
    zone = models.ForeignKey(Zone, on_delete=models.CASCADE, related_name='racks')
    row_number = models.CharField(max_length=10)
    pos_x = models.FloatField(default=0)
    pos_y = models.FloatField(default=0)
    shelf_count = models.PositiveSmallIntegerField(
        default=4, validators=[MinValueValidator(1), MaxValueValidator(MAX_SHELVES)]
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.zone.code}-{self.row_number}"

    class Meta:
        db_table = 'racks'
        ordering = ['zone', 'row_number']
        unique_together = ['zone', 'row_number']


class Shelf(models.Model):
    rack = models.ForeignKey(Rack, on_delete=models.CASCADE, related_name='shelves')
    shelf_number = models.CharField(max_length=10)
    capacity = models.PositiveIntegerField(default=100)

    @property
    def location_code(self):
        return format_location_code(self.rack.zone.code, self.rack.row_number, self.shelf_number)

    def __str__(self):
        return self.location_code

    class Meta:
        db_table = 'shelves'
        ordering = ['rack', 'shelf_number']
        unique_together = ['rack', 'shelf_number']
