from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with profile and approval fields"""
    full_name = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    avatar_url = models.URLField(blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    citizen_id = models.CharField(max_length=30, blank=True)
    # Warehouse a POS/warehouse staff member works from
    warehouse = models.ForeignKey('locations.Warehouse', on_delete=models.SET_NULL, null=True, blank=True, related_name='staff')
    is_approved = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def get_display_name(self):
        return self.full_name or self.get_full_name() or self.username

    class Meta:
        db_table = 'users'


class Setting(models.Model):
    """System settings"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    @classmethod
    def get_value(cls, key, default=None):
        setting = cls.objects.filter(key=key).first()
        return setting.value if setting else default

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('user_approve', 'User Approved'),
        ('user_roles', 'User Roles Changed'),
        ('user_invite', 'User Invited'),
        ('stock_adjust', 'Stock Adjustment'),
        ('lot_sync', 'Lots Synced'),
        ('po_status', 'Purchase Order Status Changed'),
        ('po_receive', 'Purchase Order Received'),
        ('sale_checkout', 'POS Checkout'),
        ('order_status', 'Sales Order Status Changed'),
        ('order_payment', 'Sales Order Paid'),
        ('points_adjust', 'Loyalty Points Adjusted'),
        ('transaction_approve', 'Transaction Approved'),
        ('transaction_reject', 'Transaction Rejected'),
        ('transaction_execute', 'Transaction Executed'),
        ('internal_transfer', 'Internal Transfer'),
        ('appointment_status', 'Appointment Status Changed'),
        ('post_moderate', 'Post Moderated'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, PO number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., order code, PO number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model'),
            models.Index(fields=['object_reference'], name='idx_audit_reference'),
        ]
