from django.contrib import admin
from .models import Room, AppointmentStatus, Appointment


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'is_active']
    search_fields = ['name', 'code']


@admin.register(AppointmentStatus)
class AppointmentStatusAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'color']


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['patient', 'doctor', 'room', 'appointment_time', 'duration_minutes', 'current_status']
    list_filter = ['current_status', 'room']
    search_fields = ['patient__full_name', 'patient__phone', 'service_type']
    date_hierarchy = 'appointment_time'
