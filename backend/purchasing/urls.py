from django.urls import path
from .views import (
    purchase_order_list_create, purchase_order_detail, purchase_order_status, purchase_order_cancel,
    purchase_order_receive, purchase_order_receipts, direct_import,
    reorder_analysis, reorder_create_orders, auto_generate,
)

urlpatterns = [
    path('purchase-orders/', purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/direct-import/', direct_import, name='purchase-order-direct-import'),
    path('purchase-orders/reorder-analysis/', reorder_analysis, name='purchase-order-reorder-analysis'),
    path('purchase-orders/reorder/', reorder_create_orders, name='purchase-order-reorder'),
    path('purchase-orders/auto-generate/', auto_generate, name='purchase-order-auto-generate'),
    path('purchase-orders/<int:pk>/', purchase_order_detail, name='purchase-order-detail'),
    path('purchase-orders/<int:pk>/status/', purchase_order_status, name='purchase-order-status'),
    path('purchase-orders/<int:pk>/cancel/', purchase_order_cancel, name='purchase-order-cancel'),
    path('purchase-orders/<int:pk>/receive/', purchase_order_receive, name='purchase-order-receive'),
    path('purchase-orders/<int:pk>/receipts/', purchase_order_receipts, name='purchase-order-receipts'),
]
