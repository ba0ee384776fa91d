"""Loyalty point bookkeeping for patients"""
from django.db import transaction

from backend.core.exceptions import BusinessRuleError
from backend.core.models import Setting
from .models import Patient, PointsHistory

DEFAULT_AMOUNT_PER_POINT = 10000  # 1 point per 10,000 VND spent
DEFAULT_VALUE_PER_POINT = 1000  # 1 point redeems 1,000 VND


def get_amount_per_point():
    try:
        value = int(Setting.get_value('loyalty_amount_per_point', DEFAULT_AMOUNT_PER_POINT))
    except (TypeError, ValueError):
        return DEFAULT_AMOUNT_PER_POINT
    return value if value > 0 else DEFAULT_AMOUNT_PER_POINT


def calculate_points_to_earn(order_value, amount_per_point=None):
    """Whole points earned for an order value; partial points are dropped"""
    amount_per_point = amount_per_point or get_amount_per_point()
    if order_value is None or order_value <= 0:
        return 0
    return int(order_value // amount_per_point)


def calculate_discount_from_points(points, value_per_point=DEFAULT_VALUE_PER_POINT):
    return points * value_per_point


def _record(patient, transaction_type, points, reference_type='', reference_id='', description='', user=None):
    balance_before = patient.loyalty_points
    balance_after = balance_before + points
    if balance_after < 0:
        raise BusinessRuleError(
            f'Insufficient points. Available: {balance_before}, Required: {-points}'
        )
    entry = PointsHistory.objects.create(
        patient=patient,
        transaction_type=transaction_type,
        points_amount=points,
        balance_before=balance_before,
        balance_after=balance_after,
        reference_type=reference_type,
        reference_id=str(reference_id or ''),
        description=description,
        created_by=user,
    )
    patient.loyalty_points = balance_after
    patient.save(update_fields=['loyalty_points', 'updated_at'])
    return entry


@transaction.atomic
def add_points(patient_id, points, reference_type='', reference_id='', description='Points earned', user=None):
    if points <= 0:
        raise BusinessRuleError('Points to add must be positive')
    patient = Patient.objects.select_for_update().get(pk=patient_id)
    return _record(patient, 'earn', points, reference_type, reference_id, description, user)


@transaction.atomic
def redeem_points(patient_id, points, reference_type='', reference_id='', description='Points redeemed', user=None):
    if points <= 0:
        raise BusinessRuleError('Points to redeem must be positive')
    patient = Patient.objects.select_for_update().get(pk=patient_id)
    return _record(patient, 'redeem', -points, reference_type, reference_id, description, user)


@transaction.atomic
def adjust_points(patient_id, adjustment, description, user=None):
    if adjustment == 0:
        raise BusinessRuleError('Adjustment cannot be zero')
    patient = Patient.objects.select_for_update().get(pk=patient_id)
    return _record(patient, 'adjust', adjustment, 'manual', '', description, user)
