"""Medical record writes; prescriptions are always replaced as a whole"""
import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from backend.core.exceptions import BusinessRuleError
from backend.scheduling.models import AppointmentStatus
from .models import MedicalRecord, Prescription, LabOrder

logger = logging.getLogger(__name__)


def _write_prescriptions(record, items):
    record.prescriptions.all().delete()
    for item in items:
        product = item.get('product')
        Prescription.objects.create(
            record=record,
            product=product,
            medicine_name=item.get('medicine_name') or (product.name if product else ''),
            quantity=item.get('quantity', 1),
            dosage=item.get('dosage', ''),
            instructions=item.get('instructions', ''),
        )


@transaction.atomic
def create_record(data, prescriptions=None, doctor=None):
    appointment = data.get('appointment')
    if appointment is not None and appointment.patient_id != data['patient'].id:
        raise BusinessRuleError('Appointment belongs to a different patient')
    record = MedicalRecord.objects.create(doctor=doctor, **data)
    _write_prescriptions(record, prescriptions or [])
    return record


@transaction.atomic
def update_record(record, data, prescriptions=None):
    if record.is_signed_off:
        raise BusinessRuleError('Signed-off records cannot be changed')
    for field, value in data.items():
        setattr(record, field, value)
    record.save()
    if prescriptions is not None:
        _write_prescriptions(record, prescriptions)
    return record


def delete_record(record):
    if record.is_signed_off:
        raise BusinessRuleError('Signed-off records cannot be deleted')
    record.delete()


@transaction.atomic
def sign_off(record):
    """Finalize a record and complete its appointment"""
    record = MedicalRecord.objects.select_for_update().get(pk=record.pk)
    if record.is_signed_off:
        raise BusinessRuleError('Record is already signed off')
    record.is_signed_off = True
    record.signed_off_at = timezone.now()
    record.save(update_fields=['is_signed_off', 'signed_off_at', 'updated_at'])

    if record.appointment_id and AppointmentStatus.objects.filter(code='COMPLETED').exists():
        appointment = record.appointment
        appointment.current_status_id = 'COMPLETED'
        appointment.save(update_fields=['current_status', 'updated_at'])
    logger.info(f"Medical record {record.id} signed off")
    return record


def record_stats(doctor_id=None, start=None, end=None):
    records = MedicalRecord.objects.all()
    if doctor_id:
        records = records.filter(doctor_id=doctor_id)
    if start:
        records = records.filter(visit_date__date__gte=start)
    if end:
        records = records.filter(visit_date__date__lte=end)
    return records.aggregate(
        total=Count('id'),
        signed_off=Count('id', filter=Q(is_signed_off=True)),
        pending=Count('id', filter=Q(is_signed_off=False)),
        with_diagnosis=Count('id', filter=~Q(diagnosis='')),
    )


@transaction.atomic
def create_lab_orders(record, orders, user=None):
    """Order one or more services for a visit"""
    if not orders:
        raise BusinessRuleError('At least one service is required')
    created = [
        LabOrder.objects.create(
            record=record,
            service_name=order['service_name'],
            preliminary_diagnosis=order.get('preliminary_diagnosis', ''),
            created_by=user,
        )
        for order in orders
    ]
    logger.info(f"{len(created)} lab orders placed on record {record.id}")
    return created


def update_lab_order(lab_order, data):
    if lab_order.is_executed:
        raise BusinessRuleError('Executed lab orders cannot be changed')
    for field, value in data.items():
        setattr(lab_order, field, value)
    lab_order.save()
    return lab_order


def delete_lab_order(lab_order):
    if lab_order.is_executed:
        raise BusinessRuleError('Executed lab orders cannot be deleted')
    lab_order.delete()


@transaction.atomic
def execute_lab_order(lab_order):
    lab_order = LabOrder.objects.select_for_update().get(pk=lab_order.pk)
    if lab_order.is_executed:
        raise BusinessRuleError(f'Lab order {lab_order.id} is already executed')
    lab_order.is_executed = True
    lab_order.executed_at = timezone.now()
    lab_order.save(update_fields=['is_executed', 'executed_at'])
    return lab_order


@transaction.atomic
def receive_lab_result(lab_order, result_notes=''):
    """Results can only come back for a service that was carried out, and only once"""
    lab_order = LabOrder.objects.select_for_update().get(pk=lab_order.pk)
    if not lab_order.is_executed:
        raise BusinessRuleError(f'Lab order {lab_order.id} has not been executed yet')
    if lab_order.result_received_at:
        raise BusinessRuleError(f'Result of lab order {lab_order.id} was already received')
    lab_order.result_received_at = timezone.now()
    lab_order.result_notes = result_notes
    lab_order.save(update_fields=['result_received_at', 'result_notes'])
    return lab_order


def lab_order_stats(start=None, end=None):
    orders = LabOrder.objects.all()
    if start:
        orders = orders.filter(created_at__date__gte=start)
    if end:
        orders = orders.filter(created_at__date__lte=end)
    stats = orders.aggregate(
        total=Count('id'),
        executed=Count('id', filter=Q(is_executed=True)),
        pending=Count('id', filter=Q(is_executed=False)),
        results_received=Count('id', filter=Q(result_received_at__isnull=False)),
    )
    stats['by_service'] = {
        row['service_name']: row['count']
        for row in orders.order_by().values('service_name').annotate(count=Count('id'))
    }
    return stats
