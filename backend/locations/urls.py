from django.urls import path
from .views import warehouse_list_create, warehouse_detail, b2b_warehouse

urlpatterns = [
    path('warehouses/', warehouse_list_create, name='warehouse-list-create'),
    path('warehouses/b2b/', b2b_warehouse, name='warehouse-b2b'),
    path('warehouses/<int:pk>/', warehouse_detail, name='warehouse-detail'),
]
