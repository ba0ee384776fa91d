from django.urls import path
from .views import (
    pos_product_search, pos_price_preview, pos_checkout,
    sales_order_list_create, sales_order_detail, sales_order_picking_status, sales_order_payment,
    b2b_quote_list_create, b2b_quote_stats, b2b_quote_detail, b2b_quote_stage,
)

urlpatterns = [
    # POS endpoints
    path('pos/products/', pos_product_search, name='pos-product-search'),
    path('pos/preview/', pos_price_preview, name='pos-price-preview'),
    path('pos/checkout/', pos_checkout, name='pos-checkout'),

    # Sales order endpoints
    path('sales-orders/', sales_order_list_create, name='sales-order-list-create'),
    path('sales-orders/<int:pk>/', sales_order_detail, name='sales-order-detail'),
    path('sales-orders/<int:pk>/picking-status/', sales_order_picking_status, name='sales-order-picking-status'),
    path('sales-orders/<int:pk>/payment/', sales_order_payment, name='sales-order-payment'),

    # B2B quote endpoints
    path('b2b-quotes/', b2b_quote_list_create, name='b2b-quote-list-create'),
    path('b2b-quotes/stats/', b2b_quote_stats, name='b2b-quote-stats'),
    path('b2b-quotes/<int:pk>/', b2b_quote_detail, name='b2b-quote-detail'),
    path('b2b-quotes/<int:pk>/stage/', b2b_quote_stage, name='b2b-quote-stage'),
]
