from django.db import models
from django.utils import timezone
from backend.catalog.models import Product
from backend.core.models import User


class Promotion(models.Model):
    """
    Price promotion applied per product at the POS.

    `conditions` may hold:
      - manufacturers: a manufacturer name or list of names
      - product_categories: a category name or list of names
      - min_order_value: minimum cart subtotal
    """
    TYPE_CHOICES = [
        ('percentage', 'Percentage'),
        ('fixed_amount', 'Fixed Amount'),
    ]

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    value = models.DecimalField(max_digits=14, decimal_places=2)
    conditions = models.JSONField(default=dict, blank=True)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='promotions')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def is_running(self, at=None):
        at = at or timezone.now()
        if not self.is_active:
            return False
        if self.start_date and self.start_date > at:
            return False
        if self.end_date and self.end_date < at:
            return False
        return True

    class Meta:
        db_table = 'promotions'
        ordering = ['-created_at']


class Voucher(models.Model):
    """Redeemable code bound to a promotion; usage_limit 0 means unlimited"""
    promotion = models.ForeignKey(Promotion, on_delete=models.CASCADE, related_name='vouchers')
    code = models.CharField(max_length=50, unique=True)
    usage_limit = models.PositiveIntegerField(default=1)
    times_used = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    last_used_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.code

    @property
    def remaining_uses(self):
        if not self.usage_limit:
            return None
        return max(self.usage_limit - self.times_used, 0)

    class Meta:
        db_table = 'vouchers'
        ordering = ['-created_at']


class Combo(models.Model):
    """Fixed-price bundle of products; deleting one only deactivates it"""
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    combo_price = models.DecimalField(max_digits=14, decimal_places=2)
    image_url = models.URLField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='combos')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'combos'
        ordering = ['-created_at']


class ComboItem(models.Model):
    combo = models.ForeignKey(Combo, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='combo_items')
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = 'combo_items'
        ordering = ['id']
        unique_together = [['combo', 'product']]
