import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from backend.core.exceptions import BusinessRuleError, business_error_response
from backend.core.permissions import IsClinicalStaff
from backend.core.utils import create_audit_log, paginate_queryset
from .models import MedicalRecord, LabOrder
from .serializers import (
    MedicalRecordSerializer, MedicalRecordListSerializer, LabOrderSerializer, LabOrderBatchSerializer,
    LabResultSerializer,
)
from . import services

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def medical_record_list_create(request):
    """Visits filtered by patient, doctor, appointment, sign-off and date; or record a visit"""
    if request.method == 'GET':
        queryset = MedicalRecord.objects.select_related('patient', 'doctor')
        for param, field in (('patient_id', 'patient_id'), ('doctor_id', 'doctor_id'),
                             ('appointment_id', 'appointment_id')):
            value = request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{field: value})
        signed_off = request.query_params.get('is_signed_off')
        if signed_off in ('true', 'false'):
            queryset = queryset.filter(is_signed_off=(signed_off == 'true'))
        diagnosis = request.query_params.get('diagnosis', '').strip()
        if diagnosis:
            queryset = queryset.filter(diagnosis__icontains=diagnosis)
        start_date = request.query_params.get('start_date')
        end_date = request.query_params.get('end_date')
        if start_date:
            queryset = queryset.filter(visit_date__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(visit_date__date__lte=end_date)
        return Response(paginate_queryset(queryset, request, MedicalRecordListSerializer))

    serializer = MedicalRecordSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = dict(serializer.validated_data)
    prescriptions = data.pop('prescriptions', [])
    try:
        record = services.create_record(data, prescriptions, doctor=request.user)
    except BusinessRuleError as e:
        return business_error_response(e)
    logger.info(f"User {request.user.username} recorded visit {record.id} for patient {record.patient_id}")
    return Response(MedicalRecordSerializer(record).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def medical_record_detail(request, pk):
    record = get_object_or_404(
        MedicalRecord.objects.select_related('patient', 'doctor').prefetch_related('prescriptions__product'), pk=pk
    )

    if request.method == 'GET':
        return Response(MedicalRecordSerializer(record).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = MedicalRecordSerializer(record, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = dict(serializer.validated_data)
        prescriptions = data.pop('prescriptions', None)
        try:
            record = services.update_record(record, data, prescriptions)
        except BusinessRuleError as e:
            return business_error_response(e)
        return Response(MedicalRecordSerializer(record).data)
    else:  # DELETE
        try:
            services.delete_record(record)
        except BusinessRuleError as e:
            return business_error_response(e)
        create_audit_log(request=request, action='delete', model_name='MedicalRecord', object_id=pk,
                         object_name=str(record))
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def medical_record_sign_off(request, pk):
    record = get_object_or_404(MedicalRecord, pk=pk)
    try:
        record = services.sign_off(record)
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='update', model_name='MedicalRecord', object_id=record.id,
                     object_name=str(record), changes={'is_signed_off': True})
    return Response(MedicalRecordSerializer(record).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def medical_record_stats(request):
    return Response(services.record_stats(
        request.query_params.get('doctor_id'),
        request.query_params.get('start_date'),
        request.query_params.get('end_date'),
    ))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def patient_medical_history(request, patient_id):
    """Signed-off visits of a patient with their prescriptions, newest first"""
    records = (
        MedicalRecord.objects.select_related('patient', 'doctor')
        .prefetch_related('prescriptions__product')
        .filter(patient_id=patient_id, is_signed_off=True)
    )
    return Response(MedicalRecordSerializer(records, many=True).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def lab_order_list_create(request):
    """
    Lab orders filtered by visit, patient, service, execution and date.

    `awaiting_results=true` lists executed orders whose result has not come
    back. POST takes a single order, or `record` plus a list of `orders`.
    """
    if request.method == 'GET':
        queryset = LabOrder.objects.select_related('record__patient')
        for param, field in (('record_id', 'record_id'), ('patient_id', 'record__patient_id')):
            value = request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{field: value})
        service_name = request.query_params.get('service_name', '').strip()
        if service_name:
            queryset = queryset.filter(service_name__icontains=service_name)
        is_executed = request.query_params.get('is_executed')
        if is_executed in ('true', 'false'):
            queryset = queryset.filter(is_executed=(is_executed == 'true'))
        if request.query_params.get('awaiting_results') == 'true':
            queryset = queryset.filter(is_executed=True, result_received_at__isnull=True)
        start_date = request.query_params.get('start_date')
        end_date = request.query_params.get('end_date')
        if start_date:
            queryset = queryset.filter(created_at__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(created_at__date__lte=end_date)
        return Response(paginate_queryset(queryset, request, LabOrderSerializer))

    if 'orders' in request.data:
        serializer = LabOrderBatchSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        record = serializer.validated_data['record']
        orders = serializer.validated_data['orders']
    else:
        serializer = LabOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        record = serializer.validated_data['record']
        orders = [serializer.validated_data]
    try:
        created = services.create_lab_orders(record, orders, user=request.user)
    except BusinessRuleError as e:
        return business_error_response(e)
    if 'orders' in request.data:
        return Response(LabOrderSerializer(created, many=True).data, status=status.HTTP_201_CREATED)
    return Response(LabOrderSerializer(created[0]).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def lab_order_detail(request, pk):
    lab_order = get_object_or_404(LabOrder.objects.select_related('record__patient'), pk=pk)

    if request.method == 'GET':
        return Response(LabOrderSerializer(lab_order).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = LabOrderSerializer(lab_order, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            lab_order = services.update_lab_order(lab_order, serializer.validated_data)
        except BusinessRuleError as e:
            return business_error_response(e)
        return Response(LabOrderSerializer(lab_order).data)
    else:  # DELETE
        try:
            services.delete_lab_order(lab_order)
        except BusinessRuleError as e:
            return business_error_response(e)
        create_audit_log(request=request, action='delete', model_name='LabOrder', object_id=pk,
                         object_name=lab_order.service_name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def lab_order_execute(request, pk):
    lab_order = get_object_or_404(LabOrder, pk=pk)
    try:
        lab_order = services.execute_lab_order(lab_order)
    except BusinessRuleError as e:
        return business_error_response(e)
    return Response(LabOrderSerializer(lab_order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def lab_order_result(request, pk):
    """Record that the result of an executed order came back"""
    lab_order = get_object_or_404(LabOrder, pk=pk)
    serializer = LabResultSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        lab_order = services.receive_lab_result(lab_order, serializer.validated_data['result_notes'])
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='update', model_name='LabOrder', object_id=lab_order.id,
                     object_name=lab_order.service_name, changes={'result_received': True})
    return Response(LabOrderSerializer(lab_order).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def lab_order_stats(request):
    return Response(services.lab_order_stats(
        request.query_params.get('start_date'),
        request.query_params.get('end_date'),
    ))
