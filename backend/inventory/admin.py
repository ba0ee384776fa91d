from django.contrib import admin
from .models import Inventory, ProductLot, StockAdjustment


@admin.register(Inventory)
class InventoryAdmin(admin.ModelAdmin):
    list_display = ['product', 'warehouse', 'quantity', 'min_stock', 'max_stock', 'shelf_location', 'updated_at']
    list_filter = ['warehouse', 'updated_at']
    search_fields = ['product__name', 'product__sku']
    ordering = ['product', 'warehouse']


@admin.register(ProductLot)
class ProductLotAdmin(admin.ModelAdmin):
    list_display = ['product', 'warehouse', 'lot_number', 'expiry_date', 'quantity', 'status', 'received_date']
    list_filter = ['status', 'warehouse', 'expiry_date']
    search_fields = ['product__name', 'product__sku', 'lot_number']
    ordering = ['expiry_date']


@admin.register(StockAdjustment)
class StockAdjustmentAdmin(admin.ModelAdmin):
    list_display = ['id', 'adjustment_type', 'product', 'warehouse', 'quantity', 'reason', 'created_by', 'created_at']
    list_filter = ['adjustment_type', 'reason', 'warehouse', 'created_at']
    search_fields = ['product__name', 'product__sku', 'notes']
    readonly_fields = ['created_at']
    ordering = ['-created_at']
