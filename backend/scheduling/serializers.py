import re
from rest_framework import serializers
from backend.core.permissions import has_any_role, ROLE_DOCTOR
from .models import Room, AppointmentStatus, Appointment
from .services import MAX_DURATION_MINUTES


class RoomSerializer(serializers.ModelSerializer):
    class Meta:
        model = Room
        fields = ['id', 'name', 'code', 'description', 'is_active', 'created_at']
        read_only_fields = ['created_at']


class AppointmentStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = AppointmentStatus
        fields = ['code', 'name', 'color']

    def validate_code(self, value):
        value = value.strip().upper()
        if self.instance and value != self.instance.code:
            raise serializers.ValidationError('Status code cannot be changed')
        return value

    def validate_color(self, value):
        if not re.fullmatch(r'#[0-9a-fA-F]{6}', value):
            raise serializers.ValidationError('Color must be a hex code such as #1890ff')
        return value


class AppointmentSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    patient_phone = serializers.CharField(source='patient.phone', read_only=True)
    doctor_name = serializers.CharField(source='doctor.full_name', read_only=True)
    room_name = serializers.CharField(source='room.name', read_only=True)
    current_status = serializers.PrimaryKeyRelatedField(queryset=AppointmentStatus.objects.all(), required=False)
    status_name = serializers.CharField(source='current_status.name', read_only=True)
    status_color = serializers.CharField(source='current_status.color', read_only=True)
    end_time = serializers.DateTimeField(read_only=True)
    duration_minutes = serializers.IntegerField(min_value=5, max_value=MAX_DURATION_MINUTES, required=False)

    class Meta:
        model = Appointment
        fields = [
            'id', 'patient', 'patient_name', 'patient_phone', 'doctor', 'doctor_name', 'room', 'room_name',
            'appointment_time', 'duration_minutes', 'end_time', 'service_type', 'reason', 'note',
            'current_status', 'status_name', 'status_color', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def validate_doctor(self, value):
        if value is not None and not has_any_role(value, ROLE_DOCTOR):
            raise serializers.ValidationError(f'{value.username} is not a doctor')
        return value


class AppointmentStatusChangeSerializer(serializers.Serializer):
    status = serializers.CharField()
