from django.db import models


class Warehouse(models.Model):
    """Warehouses and pharmacy/clinic branches holding stock"""
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50, unique=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    # The central B2B warehouse receives every purchase order
    is_b2b = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @classmethod
    def get_b2b_warehouse(cls):
        return cls.objects.filter(is_b2b=True, is_active=True).order_by('id').first()

    class Meta:
        db_table = 'warehouses'
        ordering = ['name']
