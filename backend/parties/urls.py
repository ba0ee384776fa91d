from django.urls import path
from .views import (
    supplier_list_create, supplier_detail,
    patient_list_create, patient_detail, patient_points_history, patient_points_adjust,
)

urlpatterns = [
    # Supplier endpoints
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
    path('suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),

    # Patient endpoints
    path('patients/', patient_list_create, name='patient-list-create'),
    path('patients/<int:pk>/', patient_detail, name='patient-detail'),
    path('patients/<int:pk>/points/', patient_points_history, name='patient-points-history'),
    path('patients/<int:pk>/points/adjust/', patient_points_adjust, name='patient-points-adjust'),
]
