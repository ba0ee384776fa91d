from django.contrib import admin
from .models import Supplier, Patient, PointsHistory


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'contact_person', 'phone', 'email', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'code', 'email', 'contact_person']
    ordering = ['name']


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'phone', 'email', 'gender', 'loyalty_points', 'is_active', 'created_at']
    list_filter = ['is_active', 'gender', 'created_at']
    search_fields = ['full_name', 'phone', 'email', 'citizen_id']
    ordering = ['full_name']


@admin.register(PointsHistory)
class PointsHistoryAdmin(admin.ModelAdmin):
    list_display = ['id', 'patient', 'transaction_type', 'points_amount', 'balance_after', 'reference_type', 'created_by', 'created_at']
    list_filter = ['transaction_type', 'created_at']
    search_fields = ['patient__full_name', 'patient__phone', 'reference_id', 'description']
    readonly_fields = ['created_at']
    ordering = ['-created_at']
    date_hierarchy = 'created_at'
