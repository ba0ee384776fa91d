from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'category', 'manufacturer', 'retail_price', 'supplier', 'enable_lot_management', 'is_active', 'created_at']
    list_filter = ['is_active', 'enable_lot_management', 'category', 'created_at']
    search_fields = ['name', 'sku', 'barcode', 'manufacturer', 'description']
    ordering = ['name']
    readonly_fields = ['created_at', 'updated_at']
