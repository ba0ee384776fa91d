from django.db import models
from backend.core.models import User


class Supplier(models.Model):
    """Suppliers of products"""
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50, unique=True, blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    contact_person = models.CharField(max_length=200, blank=True)
    tax_code = models.CharField(max_length=50, blank=True)
    payment_terms = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'suppliers'
        ordering = ['name']


class Patient(models.Model):
    """Patients of the clinic; also the customers of the POS"""
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]

    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, unique=True, blank=True, null=True)
    email = models.EmailField(blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    address = models.TextField(blank=True)
    citizen_id = models.CharField(max_length=30, blank=True)
    allergies = models.TextField(blank=True)
    loyalty_points = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.full_name

    class Meta:
        db_table = 'patients'
        ordering = ['full_name']


class PointsHistory(models.Model):
    """Loyalty point movements of a patient"""
    TRANSACTION_TYPE_CHOICES = [
        ('earn', 'Earn'),
        ('redeem', 'Redeem'),
        ('adjust', 'Adjust'),
    ]

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='points_history')
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPE_CHOICES)
    points_amount = models.IntegerField()  # Negative for redemptions
    balance_before = models.IntegerField()
    balance_after = models.IntegerField()
    reference_type = models.CharField(max_length=50, blank=True)  # e.g. sales_order, manual
    reference_id = models.CharField(max_length=100, blank=True)
    description = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='points_entries')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.patient} {self.transaction_type} {self.points_amount}"

    class Meta:
        db_table = 'patient_points_history'
        ordering = ['-created_at', '-id']
