from rest_framework import serializers
from backend.catalog.models import Product
from .models import MedicalRecord, Prescription, LabOrder


class PrescriptionSerializer(serializers.ModelSerializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), required=False, allow_null=True)
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = Prescription
        fields = ['id', 'product', 'product_name', 'medicine_name', 'quantity', 'dosage', 'instructions']

    def validate(self, attrs):
        if not attrs.get('product') and not attrs.get('medicine_name'):
            raise serializers.ValidationError('Either product or medicine_name is required')
        return attrs


class MedicalRecordSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    doctor_name = serializers.CharField(source='doctor.full_name', read_only=True)
    prescriptions = PrescriptionSerializer(many=True, required=False)

    class Meta:
        model = MedicalRecord
        fields = [
            'id', 'patient', 'patient_name', 'doctor', 'doctor_name', 'appointment', 'visit_date',
            'symptoms', 'examination', 'diagnosis', 'treatment_plan', 'notes', 'vital_signs',
            'is_signed_off', 'signed_off_at', 'prescriptions', 'created_at', 'updated_at'
        ]
        read_only_fields = ['doctor', 'is_signed_off', 'signed_off_at', 'created_at', 'updated_at']

    def validate_vital_signs(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('vital_signs must be an object')
        return value


class MedicalRecordListSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    doctor_name = serializers.CharField(source='doctor.full_name', read_only=True)

    class Meta:
        model = MedicalRecord
        fields = ['id', 'patient', 'patient_name', 'doctor', 'doctor_name', 'appointment',
                  'visit_date', 'diagnosis', 'is_signed_off']


class LabOrderSerializer(serializers.ModelSerializer):
    patient = serializers.IntegerField(source='record.patient_id', read_only=True)
    patient_name = serializers.CharField(source='record.patient.full_name', read_only=True)

    class Meta:
        model = LabOrder
        fields = [
            'id', 'record', 'patient', 'patient_name', 'service_name', 'preliminary_diagnosis',
            'is_executed', 'executed_at', 'result_received_at', 'result_notes', 'created_by', 'created_at'
        ]
        read_only_fields = [
            'is_executed', 'executed_at', 'result_received_at', 'result_notes', 'created_by', 'created_at'
        ]


class LabOrderEntrySerializer(serializers.Serializer):
    service_name = serializers.CharField(max_length=255)
    preliminary_diagnosis = serializers.CharField(required=False, allow_blank=True, default='')


class LabOrderBatchSerializer(serializers.Serializer):
    """Several services ordered on one visit at once"""
    record = serializers.PrimaryKeyRelatedField(queryset=MedicalRecord.objects.all())
    orders = LabOrderEntrySerializer(many=True)


class LabResultSerializer(serializers.Serializer):
    result_notes = serializers.CharField(required=False, allow_blank=True, default='')
