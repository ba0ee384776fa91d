from django.db import models
from django.utils import timezone
from decimal import Decimal
from backend.catalog.models import Product
from backend.parties.models import Patient
from backend.locations.models import Warehouse
from backend.pricing.models import Promotion, Voucher, Combo
from backend.finance.models import Fund
from backend.core.models import User


class SalesOrder(models.Model):
    """Retail (POS) sale or B2B order"""
    ORDER_TYPE_CHOICES = [
        ('pos', 'POS'),
        ('b2b', 'B2B'),
    ]

    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('bank', 'Bank Transfer'),
        ('card', 'Card'),
        ('qr', 'QR'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('unpaid', 'Unpaid'),
        ('partial', 'Partially Paid'),
        ('paid', 'Paid'),
        ('overdue', 'Overdue'),
    ]

    OPERATIONAL_STATUS_CHOICES = [
        ('pending_packaging', 'Pending Packaging'),
        ('packaged', 'Packaged'),
        ('shipping', 'Shipping'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    order_code = models.CharField(max_length=100, unique=True)
    order_type = models.CharField(max_length=10, choices=ORDER_TYPE_CHOICES, default='pos')
    patient = models.ForeignKey(Patient, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_orders')
    customer_name = models.CharField(max_length=200, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    delivery_address = models.TextField(blank=True)
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name='sales_orders')
    subtotal = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    discount_total = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    voucher = models.ForeignKey(Voucher, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_orders')
    voucher_discount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    points_redeemed = models.PositiveIntegerField(default=0)
    points_discount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    points_earned = models.PositiveIntegerField(default=0)
    total_value = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='unpaid')
    operational_status = models.CharField(max_length=30, choices=OPERATIONAL_STATUS_CHOICES, default='completed')
    fund = models.ForeignKey(Fund, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_orders')
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='sales_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.order_code

    class Meta:
        db_table = 'sales_orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['order_type', 'operational_status'], name='idx_so_type_opstatus'),
            models.Index(fields=['created_at'], name='idx_so_created'),
        ]


class SalesOrderItem(models.Model):
    """Order line with the price actually charged and the lots it was picked from"""
    order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='sales_order_items')
    quantity = models.PositiveIntegerField()
    original_price = models.DecimalField(max_digits=14, decimal_places=2)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    promotion = models.ForeignKey(Promotion, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_order_items')
    lot_allocations = models.JSONField(default=list, blank=True)  # [{lot_id, lot_number, quantity}]

    def get_line_total(self):
        return self.unit_price * self.quantity

    class Meta:
        db_table = 'sales_order_items'
        ordering = ['id']


class SalesComboItem(models.Model):
    """One component product of a combo sold on an order, with the lots it came from"""
    order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name='combo_items')
    combo = models.ForeignKey(Combo, on_delete=models.PROTECT, related_name='sales_items')
    combo_quantity = models.PositiveIntegerField()
    combo_price = models.DecimalField(max_digits=14, decimal_places=2)
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='sales_combo_items')
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)  # retail price at the time of sale
    lot_allocations = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = 'sales_combo_items'
        ordering = ['id']


class B2BQuote(models.Model):
    """Price quotation for a business customer; an accepted quote becomes a B2B order"""
    STAGE_CHOICES = [
        ('draft', 'Draft'),
        ('sent', 'Sent'),
        ('negotiating', 'Negotiating'),
        ('accepted', 'Accepted'),
        ('rejected', 'Rejected'),
        ('expired', 'Expired'),
        ('cancelled', 'Cancelled'),
    ]

    quote_number = models.CharField(max_length=30, unique=True)
    customer_name = models.CharField(max_length=200)
    customer_code = models.CharField(max_length=50, blank=True)
    contact_person = models.CharField(max_length=200, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    customer_email = models.EmailField(blank=True)
    customer_address = models.TextField(blank=True)
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, null=True, blank=True, related_name='b2b_quotes')
    stage = models.CharField(max_length=20, choices=STAGE_CHOICES, default='draft')
    subtotal = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    tax_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    total_value = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    quote_date = models.DateField(default=timezone.localdate)
    valid_until = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    terms_conditions = models.TextField(blank=True)
    sales_order = models.OneToOneField(SalesOrder, on_delete=models.SET_NULL, null=True, blank=True,
                                       related_name='b2b_quote')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='b2b_quotes')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.quote_number

    class Meta:
        db_table = 'b2b_quotes'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['stage'], name='idx_quote_stage'),
        ]


class B2BQuoteItem(models.Model):
    quote = models.ForeignKey(B2BQuote, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='b2b_quote_items')
    product_name = models.CharField(max_length=200)
    product_sku = models.CharField(max_length=100, blank=True)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    discount_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    subtotal = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)

    class Meta:
        db_table = 'b2b_quote_items'
        ordering = ['id']
