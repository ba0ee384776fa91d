from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderItem, GoodsReceipt


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    readonly_fields = ['received_quantity']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['po_number', 'supplier', 'warehouse', 'order_date', 'status', 'total_amount', 'created_by', 'created_at']
    list_filter = ['status', 'order_date', 'supplier']
    search_fields = ['po_number', 'supplier__name', 'notes']
    ordering = ['-order_date', '-id']
    inlines = [PurchaseOrderItemInline]


@admin.register(GoodsReceipt)
class GoodsReceiptAdmin(admin.ModelAdmin):
    list_display = ['purchase_order', 'item', 'warehouse', 'quantity', 'lot_number', 'expiry_date', 'received_by', 'received_at']
    list_filter = ['warehouse', 'received_at']
    search_fields = ['purchase_order__po_number', 'lot_number', 'item__product__name']
    readonly_fields = ['received_at']
