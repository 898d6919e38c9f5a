from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from decimal import Decimal


class Category(models.Model):
    """Part categories"""
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=200, db_index=True)
    parent = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='children')
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['code']


class Part(models.Model):
    """Purchased part (raw material / component) held in stock"""
    part_code = models.CharField(max_length=50, unique=True)
    part_name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='parts')
    supplier = models.ForeignKey('parties.Supplier', on_delete=models.SET_NULL, null=True, blank=True, related_name='parts')
    unit = models.CharField(max_length=20, default='EA')
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))])
    safety_stock = models.PositiveIntegerField(default=0)
    reorder_point = models.PositiveIntegerField(default=0)
    min_order_qty = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    lead_time_days = models.PositiveIntegerField(default=7)
    # Shelf code, ZONE-ROW-SHELF (e.g. A-01-02)
    storage_location = models.CharField(max_length=50, blank=True, null=True, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.part_code} {self.part_name}"

    class Meta:
        db_table = 'parts'
        ordering = ['part_code']


class Product(models.Model):
    """Finished product built from parts according to its BOM"""
    product_code = models.CharField(max_length=50, unique=True)
    product_name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    unit = models.CharField(max_length=20, default='EA')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product_code} {self.product_name}"

    class Meta:
        db_table = 'products'
        ordering = ['product_code']


class BomItem(models.Model):
    """Single-level bill of materials line: parts per unit of product"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='bom_items')
    part = models.ForeignKey(Part, on_delete=models.CASCADE, related_name='bom_items')
    quantity_per_unit = models.DecimalField(max_digits=12, decimal_places=4, validators=[MinValueValidator(Decimal('0.0001'))])
    # Fraction of scrap, 0.05 = 5%
    loss_rate = models.DecimalField(
        max_digits=5, decimal_places=4, default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('1'))]
    )
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product.product_code} <- {self.part.part_code} x{self.quantity_per_unit}"

    class Meta:
        db_table = 'bom_items'
        unique_together = [['product', 'part']]
        ordering = ['product_id', 'part__part_code']
