from django.contrib import admin
from .models import Promotion, Voucher, Combo, ComboItem


@admin.register(Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'value', 'start_date', 'end_date', 'is_active', 'created_at']
    list_filter = ['type', 'is_active', 'start_date', 'end_date']
    search_fields = ['name', 'description']
    ordering = ['-created_at']


@admin.register(Voucher)
class VoucherAdmin(admin.ModelAdmin):
    list_display = ['code', 'promotion', 'usage_limit', 'times_used', 'is_active', 'last_used_at', 'created_at']
    list_filter = ['is_active', 'promotion']
    search_fields = ['code', 'promotion__name']
    ordering = ['-created_at']


class ComboItemInline(admin.TabularInline):
    model = ComboItem
    extra = 0


@admin.register(Combo)
class ComboAdmin(admin.ModelAdmin):
    list_display = ['name', 'combo_price', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'description']
    inlines = [ComboItemInline]
