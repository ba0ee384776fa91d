from django.contrib import admin
from .models import Bank, Fund, Transaction


@admin.register(Bank)
class BankAdmin(admin.ModelAdmin):
    list_display = ['short_name', 'name', 'code', 'bin']
    search_fields = ['short_name', 'name', 'code', 'bin']
    ordering = ['short_name']


@admin.register(Fund)
class FundAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'initial_balance', 'bank', 'account_number', 'is_active', 'created_at']
    list_filter = ['type', 'is_active']
    search_fields = ['name', 'account_number', 'account_holder_name']


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['id', 'type', 'amount', 'status', 'fund', 'payment_method', 'transaction_date', 'created_by', 'created_at']
    list_filter = ['type', 'status', 'payment_method', 'fund', 'transaction_date']
    search_fields = ['description', 'recipient_name', 'recipient_account', 'reference_id']
    readonly_fields = ['transfer_pair_id', 'created_at', 'updated_at']
    ordering = ['-created_at']
    date_hierarchy = 'transaction_date'
