from django.urls import path
from .views import (
    room_list_create, room_detail, appointment_list_create, appointment_detail, appointment_change_status,
    appointment_status_list_create, appointment_status_detail, appointment_status_stats,
    appointment_status_initialize,
)

urlpatterns = [
    path('rooms/', room_list_create, name='room-list-create'),
    path('rooms/<int:pk>/', room_detail, name='room-detail'),

    # Appointment endpoints
    path('appointments/', appointment_list_create, name='appointment-list-create'),
    path('appointments/<int:pk>/', appointment_detail, name='appointment-detail'),
    path('appointments/<int:pk>/status/', appointment_change_status, name='appointment-change-status'),

    # Status definitions
    path('appointment-statuses/', appointment_status_list_create, name='appointment-status-list-create'),
    path('appointment-statuses/stats/', appointment_status_stats, name='appointment-status-stats'),
    path('appointment-statuses/initialize/', appointment_status_initialize, name='appointment-status-initialize'),
    path('appointment-statuses/<str:code>/', appointment_status_detail, name='appointment-status-detail'),
]
