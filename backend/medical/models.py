from django.db import models
from django.utils import timezone
from backend.catalog.models import Product
from backend.core.models import User
from backend.parties.models import Patient
from backend.scheduling.models import Appointment


class MedicalRecord(models.Model):
    """
    One clinical visit, written as SOAP notes.

    Once signed off the record is final and its appointment is completed.
    """
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='medical_records')
    doctor = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='medical_records')
    appointment = models.ForeignKey(Appointment, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='medical_records')
    visit_date = models.DateTimeField(default=timezone.now)
    symptoms = models.TextField(blank=True, help_text='Subjective: what the patient reports')
    examination = models.TextField(blank=True, help_text='Objective: findings of the examination')
    diagnosis = models.CharField(max_length=255, blank=True, help_text='Assessment, ICD-10 code or text')
    treatment_plan = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    vital_signs = models.JSONField(default=dict, blank=True)
    is_signed_off = models.BooleanField(default=False)
    signed_off_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.patient} - {self.visit_date:%Y-%m-%d}"

    class Meta:
        db_table = 'medical_records'
        ordering = ['-visit_date', '-id']


class Prescription(models.Model):
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='prescriptions')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='prescriptions')
    medicine_name = models.CharField(max_length=255, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    dosage = models.CharField(max_length=255, blank=True)
    instructions = models.TextField(blank=True)

    def __str__(self):
        return self.medicine_name or str(self.product)

    class Meta:
        db_table = 'prescriptions'
        ordering = ['id']


class LabOrder(models.Model):
    """Paraclinical service ordered during a visit: lab test, imaging and the like"""
    record = models.ForeignKey(MedicalRecord, on_delete=models.CASCADE, related_name='lab_orders')
    service_name = models.CharField(max_length=255)
    preliminary_diagnosis = models.TextField(blank=True)
    is_executed = models.BooleanField(default=False)
    executed_at = models.DateTimeField(null=True, blank=True)
    result_received_at = models.DateTimeField(null=True, blank=True)
    result_notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='lab_orders')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.service_name

    class Meta:
        db_table = 'lab_orders'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['is_executed', 'result_received_at'], name='idx_lab_exec_result'),
        ]
