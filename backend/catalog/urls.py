from django.urls import path
from .views import (
    product_list_create, product_detail, product_filter_options,
    product_enrich, product_extract_from_pdf,
)

urlpatterns = [
    path('products/', product_list_create, name='product-list-create'),
    path('products/filter-options/', product_filter_options, name='product-filter-options'),
    path('products/extract-from-pdf/', product_extract_from_pdf, name='product-extract-from-pdf'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/enrich/', product_enrich, name='product-enrich'),
]
