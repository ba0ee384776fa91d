from datetime import timedelta
from django.db import models
from backend.core.models import User
from backend.parties.models import Patient

DEFAULT_STATUSES = [
    ('SCHEDULED', 'Đã đặt lịch', '#1890ff'),
    ('CONFIRMED', 'Đã xác nhận', '#52c41a'),
    ('CHECKED_IN', 'Đã check-in', '#faad14'),
    ('IN_PROGRESS', 'Đang khám', '#722ed1'),
    ('COMPLETED', 'Hoàn thành', '#52c41a'),
    ('CANCELLED', 'Đã hủy', '#ff4d4f'),
    ('NO_SHOW', 'Không đến', '#8c8c8c'),
]

# Appointments in these statuses no longer hold their room or doctor
INACTIVE_STATUSES = ['CANCELLED', 'NO_SHOW']


class Room(models.Model):
    """Examination room; one column of the scheduling board"""
    name = models.CharField(max_length=100)
    code = models.CharField(max_length=50, unique=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'rooms'
        ordering = ['name']


class AppointmentStatus(models.Model):
    code = models.CharField(max_length=30, primary_key=True)
    name = models.CharField(max_length=100)
    color = models.CharField(max_length=20, default='#1890ff')

    def __str__(self):
        return self.code

    class Meta:
        db_table = 'appointment_statuses'
        ordering = ['code']
        verbose_name_plural = 'appointment statuses'


class Appointment(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='appointments')
    room = models.ForeignKey(Room, on_delete=models.SET_NULL, null=True, blank=True, related_name='appointments')
    appointment_time = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField(default=30)
    service_type = models.CharField(max_length=200, blank=True)
    reason = models.TextField(blank=True)
    note = models.TextField(blank=True)
    current_status = models.ForeignKey(
        AppointmentStatus, on_delete=models.PROTECT, related_name='appointments',
        db_column='current_status', default='SCHEDULED',
    )
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='created_appointments')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.patient} @ {self.appointment_time:%Y-%m-%d %H:%M}"

    @property
    def end_time(self):
        return self.appointment_time + timedelta(minutes=self.duration_minutes)

    class Meta:
        db_table = 'appointments'
        ordering = ['appointment_time']
        indexes = [
            models.Index(fields=['appointment_time'], name='idx_appt_time'),
            models.Index(fields=['room', 'appointment_time'], name='idx_appt_room_time'),
        ]
