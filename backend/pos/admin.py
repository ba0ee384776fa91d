from django.contrib import admin
from .models import SalesOrder, SalesOrderItem, SalesComboItem, B2BQuote, B2BQuoteItem


class SalesOrderItemInline(admin.TabularInline):
    model = SalesOrderItem
    extra = 0
    readonly_fields = ['lot_allocations']


class SalesComboItemInline(admin.TabularInline):
    model = SalesComboItem
    extra = 0
    readonly_fields = ['lot_allocations']


@admin.register(SalesOrder)
class SalesOrderAdmin(admin.ModelAdmin):
    list_display = ['order_code', 'order_type', 'warehouse', 'patient', 'total_value',
                    'payment_status', 'operational_status', 'created_at']
    list_filter = ['order_type', 'payment_status', 'operational_status', 'warehouse']
    search_fields = ['order_code', 'customer_name', 'patient__full_name', 'patient__phone']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [SalesOrderItemInline, SalesComboItemInline]


class B2BQuoteItemInline(admin.TabularInline):
    model = B2BQuoteItem
    extra = 0


@admin.register(B2BQuote)
class B2BQuoteAdmin(admin.ModelAdmin):
    list_display = ['quote_number', 'customer_name', 'stage', 'total_value', 'quote_date', 'valid_until']
    list_filter = ['stage', 'quote_date']
    search_fields = ['quote_number', 'customer_name', 'customer_code']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [B2BQuoteItemInline]
