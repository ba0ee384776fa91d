from django.db import models
from decimal import Decimal
from backend.parties.models import Supplier


class Product(models.Model):
    """Product master shared by the pharmacy counter, the clinic and the B2B warehouse"""
    name = models.CharField(max_length=200, db_index=True)
    sku = models.CharField(max_length=100, unique=True, blank=True, null=True, db_index=True)
    barcode = models.CharField(max_length=100, blank=True, db_index=True)
    category = models.CharField(max_length=100, blank=True, db_index=True)
    manufacturer = models.CharField(max_length=200, blank=True, db_index=True)
    unit = models.CharField(max_length=50, blank=True)  # e.g. box, strip, bottle
    cost_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    wholesale_price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    retail_price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    supplier = models.ForeignKey(Supplier, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    tags = models.JSONField(default=list, blank=True)
    description = models.TextField(blank=True)
    image_url = models.URLField(blank=True)
    enable_lot_management = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.sku or 'NO-SKU'})"

    def get_purchase_price(self):
        """Unit price used when ordering from the supplier"""
        if self.wholesale_price:
            return self.wholesale_price
        return self.cost_price or Decimal('0.00')

    class Meta:
        db_table = 'products'
        ordering = ['name']
