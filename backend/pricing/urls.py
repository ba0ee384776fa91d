from django.urls import path
from .views import (
    promotion_list_create, promotion_detail, active_promotions, promotion_filter_options, price_quote,
    voucher_list_create, voucher_detail, voucher_batch_generate, voucher_redeem,
    combo_list_create, combo_detail, combo_detect,
)

urlpatterns = [
    # Promotion endpoints
    path('promotions/', promotion_list_create, name='promotion-list-create'),
    path('promotions/active/', active_promotions, name='promotion-active'),
    path('promotions/filter-options/', promotion_filter_options, name='promotion-filter-options'),
    path('promotions/<int:pk>/', promotion_detail, name='promotion-detail'),
    path('quote/', price_quote, name='price-quote'),

    # Voucher endpoints
    path('vouchers/', voucher_list_create, name='voucher-list-create'),
    path('vouchers/generate/', voucher_batch_generate, name='voucher-batch-generate'),
    path('vouchers/redeem/', voucher_redeem, name='voucher-redeem'),
    path('vouchers/<int:pk>/', voucher_detail, name='voucher-detail'),

    # Combo endpoints
    path('combos/', combo_list_create, name='combo-list-create'),
    path('combos/detect/', combo_detect, name='combo-detect'),
    path('combos/<int:pk>/', combo_detail, name='combo-detail'),
]
