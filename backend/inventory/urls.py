from django.urls import path
from .views import (
    inventory_list, inventory_settings_upsert, stock_adjustment_list_create,
    lot_list_create, lot_detail, expiring_lots, product_lot_sync, product_lot_management,
)

urlpatterns = [
    # Inventory endpoints
    path('inventory/', inventory_list, name='inventory-list'),
    path('inventory/settings/', inventory_settings_upsert, name='inventory-settings-upsert'),
    path('stock-adjustments/', stock_adjustment_list_create, name='stock-adjustment-list-create'),

    # Lot endpoints
    path('lots/', lot_list_create, name='lot-list-create'),
    path('lots/expiring/', expiring_lots, name='lot-expiring'),
    path('lots/<int:pk>/', lot_detail, name='lot-detail'),
    path('products/<int:product_id>/sync-lots/', product_lot_sync, name='product-lot-sync'),
    path('products/<int:product_id>/lot-management/', product_lot_management, name='product-lot-management'),
]
