from django.urls import path
from .views import (
    medical_record_list_create, medical_record_detail, medical_record_sign_off, medical_record_stats,
    patient_medical_history, lab_order_list_create, lab_order_detail, lab_order_execute, lab_order_result,
    lab_order_stats,
)

urlpatterns = [
    path('medical-records/', medical_record_list_create, name='medical-record-list-create'),
    path('medical-records/stats/', medical_record_stats, name='medical-record-stats'),
    path('medical-records/<int:pk>/', medical_record_detail, name='medical-record-detail'),
    path('medical-records/<int:pk>/sign-off/', medical_record_sign_off, name='medical-record-sign-off'),
    path('patients/<int:patient_id>/medical-history/', patient_medical_history, name='patient-medical-history'),

    # Lab order endpoints
    path('lab-orders/', lab_order_list_create, name='lab-order-list-create'),
    path('lab-orders/stats/', lab_order_stats, name='lab-order-stats'),
    path('lab-orders/<int:pk>/', lab_order_detail, name='lab-order-detail'),
    path('lab-orders/<int:pk>/execute/', lab_order_execute, name='lab-order-execute'),
    path('lab-orders/<int:pk>/result/', lab_order_result, name='lab-order-result'),
]
