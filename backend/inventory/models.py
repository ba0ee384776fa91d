from django.db import models
from backend.catalog.models import Product
from backend.locations.models import Warehouse

DEFAULT_LOT_NUMBER = 'DEFAULT'


class Inventory(models.Model):
    """Stock level of a product in one warehouse"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='inventory_rows')
    warehouse = models.ForeignKey(Warehouse, on_delete=models.CASCADE, related_name='inventory_rows')
    quantity = models.IntegerField(default=0)
    min_stock = models.IntegerField(default=0)
    max_stock = models.IntegerField(default=0)
    shelf_location = models.CharField(max_length=100, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product.name} @ {self.warehouse.code}: {self.quantity}"

    @property
    def is_low_stock(self):
        return self.quantity <= self.min_stock

    class Meta:
        db_table = 'inventory'
        unique_together = [['product', 'warehouse']]
        indexes = [
            models.Index(fields=['warehouse', 'quantity'], name='idx_inventory_wh_qty'),
        ]


class ProductLot(models.Model):
    """A received lot of a lot-managed product, tracked for expiry"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('depleted', 'Depleted'),
        ('expired', 'Expired'),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='lots')
    warehouse = models.ForeignKey(Warehouse, on_delete=models.CASCADE, related_name='lots')
    lot_number = models.CharField(max_length=100)
    expiry_date = models.DateField(null=True, blank=True)
    received_date = models.DateField(null=True, blank=True)
    quantity = models.IntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product.name} lot {self.lot_number} ({self.quantity})"

    class Meta:
        db_table = 'product_lots'
        unique_together = [['product', 'warehouse', 'lot_number']]
        ordering = ['expiry_date', 'id']


class StockAdjustment(models.Model):
    """Manual stock corrections (in/out)"""
    ADJUSTMENT_TYPE_CHOICES = [
        ('in', 'Stock In'),
        ('out', 'Stock Out'),
    ]

    REASON_CHOICES = [
        ('damaged', 'Damaged'),
        ('expired', 'Expired'),
        ('found', 'Found'),
        ('theft', 'Theft'),
        ('correction', 'Correction'),
        ('other', 'Other'),
    ]

    adjustment_type = models.CharField(max_length=10, choices=ADJUSTMENT_TYPE_CHOICES)
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='adjustments')
    warehouse = models.ForeignKey(Warehouse, on_delete=models.CASCADE, related_name='adjustments')
    lot = models.ForeignKey(ProductLot, on_delete=models.SET_NULL, related_name='adjustments', null=True, blank=True)
    quantity = models.PositiveIntegerField()
    reason = models.CharField(max_length=50, choices=REASON_CHOICES)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, related_name='stock_adjustments')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'stock_adjustments'
        ordering = ['-created_at']
