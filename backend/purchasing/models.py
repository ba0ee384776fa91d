from django.db import models
from decimal import Decimal
from backend.catalog.models import Product
from backend.parties.models import Supplier
from backend.locations.models import Warehouse
from backend.core.models import User


class PurchaseOrder(models.Model):
    """Purchase order to a supplier, received into the B2B warehouse"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('sent', 'Sent'),
        ('ordered', 'Ordered'),
        ('partially_received', 'Partially Received'),
        ('received', 'Received'),
        ('cancelled', 'Cancelled'),
    ]
    # Statuses of orders still waiting for goods
    PENDING_STATUSES = ['draft', 'sent', 'ordered', 'partially_received']
    EDITABLE_STATUSES = ['draft', 'sent']

    po_number = models.CharField(max_length=50, unique=True)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='purchase_orders')
    warehouse = models.ForeignKey(Warehouse, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_orders')
    order_date = models.DateField()
    expected_delivery_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    total_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='purchase_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.po_number

    def get_total(self):
        """Total from the line items"""
        return sum((item.get_line_total() for item in self.items.all()), Decimal('0.00'))

    @property
    def has_receipts(self):
        return self.items.filter(received_quantity__gt=0).exists()

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-order_date', '-id']
        indexes = [
            models.Index(fields=['status'], name='idx_po_status'),
            models.Index(fields=['supplier', 'status'], name='idx_po_supplier_status'),
        ]


class PurchaseOrderItem(models.Model):
    """Purchase order line"""
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='purchase_order_items')
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    received_quantity = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True)

    def get_line_total(self):
        return self.quantity * self.unit_price

    @property
    def remaining_quantity(self):
        return max(self.quantity - self.received_quantity, 0)

    @property
    def is_fully_received(self):
        return self.received_quantity >= self.quantity

    class Meta:
        db_table = 'purchase_order_items'
        ordering = ['id']


class GoodsReceipt(models.Model):
    """One receiving event for a purchase order line"""
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='receipts')
    item = models.ForeignKey(PurchaseOrderItem, on_delete=models.CASCADE, related_name='receipts')
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='goods_receipts')
    lot = models.ForeignKey('inventory.ProductLot', on_delete=models.SET_NULL, null=True, blank=True, related_name='receipts')
    quantity = models.PositiveIntegerField()
    lot_number = models.CharField(max_length=100, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    shelf_location = models.CharField(max_length=100, blank=True)
    received_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='goods_receipts')
    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'goods_receipts'
        ordering = ['-received_at', '-id']
