"""Appointment booking rules"""
import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Count, Q

from backend.core.exceptions import BusinessRuleError
from .models import Appointment, AppointmentStatus, Room, DEFAULT_STATUSES, INACTIVE_STATUSES

logger = logging.getLogger(__name__)

MAX_DURATION_MINUTES = 480


def find_conflicts(start, duration_minutes, room=None, doctor=None, exclude_id=None):
    """Active appointments of the same room or doctor whose time range overlaps [start, start + duration)"""
    if room is None and doctor is None:
        return []
    end = start + timedelta(minutes=duration_minutes)
    owner = Q()
    if room is not None:
        owner |= Q(room=room)
    if doctor is not None:
        owner |= Q(doctor=doctor)

    candidates = (
        Appointment.objects.select_related('patient', 'room', 'doctor')
        .filter(owner)
        .filter(appointment_time__lt=end, appointment_time__gt=start - timedelta(minutes=MAX_DURATION_MINUTES))
        .exclude(current_status__in=INACTIVE_STATUSES)
    )
    if exclude_id:
        candidates = candidates.exclude(pk=exclude_id)
    return [a for a in candidates if a.end_time > start]


def ensure_available(start, duration_minutes, room=None, doctor=None, exclude_id=None):
    conflicts = find_conflicts(start, duration_minutes, room, doctor, exclude_id)
    if conflicts:
        clash = conflicts[0]
        who = 'Room' if room is not None and clash.room_id == getattr(room, 'id', None) else 'Doctor'
        raise BusinessRuleError(
            f'{who} is already booked from {clash.appointment_time:%Y-%m-%d %H:%M} '
            f'to {clash.end_time:%H:%M} ({clash.patient.full_name})',
            details={'conflicting_appointments': [a.id for a in conflicts]},
        )


def _lock_room(room):
    # concurrent bookings of the same room wait on this lock
    if room is not None:
        Room.objects.select_for_update().get(pk=room.pk)


@transaction.atomic
def create_appointment(data, user=None):
    """`data` holds validated Appointment fields"""
    room = data.get('room')
    if room is not None and not room.is_active:
        raise BusinessRuleError(f'Room {room.name} is not active')
    status_code = data.get('current_status') or 'SCHEDULED'
    if isinstance(status_code, AppointmentStatus):
        status_code = status_code.code
    if not AppointmentStatus.objects.filter(code=status_code).exists():
        raise BusinessRuleError(f'Appointment status {status_code} is not defined')

    _lock_room(room)
    if status_code not in INACTIVE_STATUSES:
        ensure_available(data['appointment_time'], data.get('duration_minutes', 30), room, data.get('doctor'))

    fields = {k: v for k, v in data.items() if k != 'current_status'}
    appointment = Appointment.objects.create(current_status_id=status_code, created_by=user, **fields)
    logger.info(f"Appointment {appointment.id} booked for patient {appointment.patient_id} at {appointment.appointment_time}")
    return appointment


@transaction.atomic
def update_appointment(appointment, data):
    """Status changes go through change_status, never through an edit"""
    new_status = data.get('current_status')
    if new_status is not None and getattr(new_status, 'pk', new_status) != appointment.current_status_id:
        raise BusinessRuleError('Change the status through the status endpoint')
    room = data.get('room')
    if room is not None and room.id != appointment.room_id and not room.is_active:
        raise BusinessRuleError(f'Room {room.name} is not active')
    for field, value in data.items():
        if field != 'current_status':
            setattr(appointment, field, value)
    _lock_room(appointment.room)
    if appointment.current_status_id not in INACTIVE_STATUSES:
        ensure_available(appointment.appointment_time, appointment.duration_minutes,
                         appointment.room, appointment.doctor, exclude_id=appointment.id)
    appointment.save()
    return appointment


@transaction.atomic
def change_status(appointment, status_code):
    """Returns (appointment, old_status_code)"""
    try:
        new_status = AppointmentStatus.objects.get(code=status_code)
    except AppointmentStatus.DoesNotExist:
        raise BusinessRuleError(f'Appointment status {status_code} is not defined')

    old_status = appointment.current_status_id
    if old_status == new_status.code:
        raise BusinessRuleError(f'Appointment is already {old_status}')
    if old_status in INACTIVE_STATUSES and new_status.code not in INACTIVE_STATUSES:
        _lock_room(appointment.room)
        ensure_available(appointment.appointment_time, appointment.duration_minutes,
                         appointment.room, appointment.doctor, exclude_id=appointment.id)

    appointment.current_status = new_status
    appointment.save(update_fields=['current_status', 'updated_at'])
    return appointment, old_status


def status_stats(start=None, end=None):
    """Appointment count per status, including statuses nobody uses yet"""
    appointments = Appointment.objects.all()
    if start:
        appointments = appointments.filter(appointment_time__date__gte=start)
    if end:
        appointments = appointments.filter(appointment_time__date__lte=end)
    counts = dict(appointments.order_by().values_list('current_status').annotate(total=Count('id')))
    return [
        {'code': s.code, 'name': s.name, 'color': s.color, 'count': counts.get(s.code, 0)}
        for s in AppointmentStatus.objects.all()
    ]


def initialize_default_statuses():
    """Create or reset the built-in statuses; custom ones are left alone"""
    statuses = []
    for code, name, color in DEFAULT_STATUSES:
        status, _ = AppointmentStatus.objects.update_or_create(code=code, defaults={'name': name, 'color': color})
        statuses.append(status)
    return statuses
