from django.contrib import admin
from .models import MedicalRecord, Prescription, LabOrder


class PrescriptionInline(admin.TabularInline):
    model = Prescription
    extra = 0


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ['patient', 'doctor', 'visit_date', 'diagnosis', 'is_signed_off']
    list_filter = ['is_signed_off']
    search_fields = ['patient__full_name', 'patient__phone', 'diagnosis']
    inlines = [PrescriptionInline]


@admin.register(LabOrder)
class LabOrderAdmin(admin.ModelAdmin):
    list_display = ['service_name', 'record', 'is_executed', 'result_received_at', 'created_at']
    list_filter = ['is_executed']
    search_fields = ['service_name', 'record__patient__full_name']
