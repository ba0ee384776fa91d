from rest_framework import serializers
from .models import Supplier, Patient, PointsHistory


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = [
            'id', 'name', 'code', 'phone', 'email', 'address', 'contact_person',
            'tax_code', 'payment_terms', 'notes', 'is_active', 'created_at', 'updated_at'
        ]


class PatientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Patient
        fields = [
            'id', 'full_name', 'phone', 'email', 'date_of_birth', 'gender', 'address',
            'citizen_id', 'allergies', 'loyalty_points', 'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['loyalty_points', 'created_at', 'updated_at']

    def validate_phone(self, value):
        # Blank phones are stored as NULL so the unique constraint ignores them
        return value or None


class PointsHistorySerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)

    class Meta:
        model = PointsHistory
        fields = [
            'id', 'patient', 'transaction_type', 'points_amount', 'balance_before', 'balance_after',
            'reference_type', 'reference_id', 'description', 'created_by', 'created_by_username', 'created_at'
        ]


class PointsAdjustSerializer(serializers.Serializer):
    transaction_type = serializers.ChoiceField(choices=['earn', 'redeem', 'adjust'])
    points = serializers.IntegerField()
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
