from django.db import models
from decimal import Decimal
from backend.core.models import User


class Bank(models.Model):
    """Bank directory used for fund accounts and VietQR payment codes"""
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=20, blank=True)
    bin = models.CharField(max_length=20, blank=True)  # NAPAS bank identification number
    short_name = models.CharField(max_length=50, unique=True)
    logo = models.URLField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.short_name} - {self.name}"

    class Meta:
        db_table = 'banks'
        ordering = ['short_name']


class Fund(models.Model):
    """Cash drawer or bank account money moves in and out of"""
    TYPE_CHOICES = [
        ('cash', 'Cash'),
        ('bank', 'Bank'),
    ]

    name = models.CharField(max_length=200)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='cash')
    initial_balance = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal('0.00'))
    bank = models.ForeignKey(Bank, on_delete=models.SET_NULL, null=True, blank=True, related_name='funds')
    account_number = models.CharField(max_length=50, blank=True)
    account_holder_name = models.CharField(max_length=200, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'funds'
        ordering = ['created_at', 'id']


class Transaction(models.Model):
    """
    Income or expense voucher.

    Income: pending_collection -> collected.
    Expense: pending_approval -> approved -> paid_out, or rejected.
    Only collected and paid_out transactions count toward fund balances.
    """
    TYPE_CHOICES = [
        ('income', 'Income'),
        ('expense', 'Expense'),
    ]

    STATUS_CHOICES = [
        ('pending_collection', 'Pending Collection'),
        ('collected', 'Collected'),
        ('pending_approval', 'Pending Approval'),
        ('approved', 'Approved'),
        ('paid_out', 'Paid Out'),
        ('rejected', 'Rejected'),
    ]
    EXECUTED_STATUSES = ['collected', 'paid_out']
    PENDING_STATUSES = ['pending_collection', 'pending_approval']

    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('bank', 'Bank Transfer'),
        ('card', 'Card'),
        ('qr', 'QR Code'),
    ]

    fund = models.ForeignKey(Fund, on_delete=models.PROTECT, null=True, blank=True, related_name='transactions')
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=16, decimal_places=2)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    transaction_date = models.DateField()
    status = models.CharField(max_length=30, choices=STATUS_CHOICES)
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, default='cash')
    recipient_bank = models.CharField(max_length=50, blank=True)
    recipient_account = models.CharField(max_length=50, blank=True)
    recipient_name = models.CharField(max_length=200, blank=True)
    qr_code_url = models.URLField(max_length=500, blank=True)
    attachments = models.JSONField(default=list, blank=True)
    transfer_pair_id = models.UUIDField(null=True, blank=True, db_index=True)
    initial_denomination_counts = models.JSONField(null=True, blank=True)
    executed_denomination_counts = models.JSONField(null=True, blank=True)
    reference_type = models.CharField(max_length=50, blank=True)
    reference_id = models.CharField(max_length=100, blank=True)
    rejection_reason = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='transactions_created')
    approved_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions_approved')
    executed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions_executed')
    approved_at = models.DateTimeField(null=True, blank=True)
    executed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_type_display()} {self.amount} ({self.status})"

    @property
    def is_executed(self):
        return self.status in self.EXECUTED_STATUSES

    class Meta:
        db_table = 'transactions'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['fund', 'status'], name='idx_tx_fund_status'),
            models.Index(fields=['type', 'transaction_date'], name='idx_tx_type_date'),
        ]
