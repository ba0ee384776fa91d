from django.urls import path
from .views import (
    bank_list, fund_list_create, fund_detail, fund_balances, expense_report,
    transaction_list_create, transaction_detail, transaction_approve, transaction_reject,
    transaction_execute, transaction_attachment_upload, internal_transfer, cash_count,
)

urlpatterns = [
    path('banks/', bank_list, name='bank-list'),

    # Fund endpoints
    path('funds/', fund_list_create, name='fund-list-create'),
    path('funds/balances/', fund_balances, name='fund-balances'),
    path('funds/expense-report/', expense_report, name='fund-expense-report'),
    path('funds/transfer/', internal_transfer, name='fund-internal-transfer'),
    path('funds/<int:pk>/', fund_detail, name='fund-detail'),

    # Transaction endpoints
    path('transactions/', transaction_list_create, name='transaction-list-create'),
    path('transactions/attachments/', transaction_attachment_upload, name='transaction-attachment-upload'),
    path('transactions/<int:pk>/', transaction_detail, name='transaction-detail'),
    path('transactions/<int:pk>/approve/', transaction_approve, name='transaction-approve'),
    path('transactions/<int:pk>/reject/', transaction_reject, name='transaction-reject'),
    path('transactions/<int:pk>/execute/', transaction_execute, name='transaction-execute'),

    path('cash-count/', cash_count, name='cash-count'),
]
