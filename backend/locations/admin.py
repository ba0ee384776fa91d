from django.contrib import admin
from .models import Warehouse


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'phone', 'is_b2b', 'is_active', 'created_at']
    list_filter = ['is_b2b', 'is_active', 'created_at']
    search_fields = ['name', 'code', 'email']
    ordering = ['name']
