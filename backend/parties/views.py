import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import Q, ProtectedError
from backend.core.exceptions import BusinessRuleError, business_error_response
from backend.core.permissions import has_any_role, ROLE_MANAGER
from backend.core.utils import create_audit_log, paginate_queryset
from .models import Supplier, Patient, PointsHistory
from .serializers import (
    SupplierSerializer, PatientSerializer, PointsHistorySerializer, PointsAdjustSerializer
)
from . import services

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    if request.method == 'GET':
        queryset = Supplier.objects.all().order_by('name')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(phone__icontains=search) |
                Q(code__icontains=search) |
                Q(email__icontains=search) |
                Q(contact_person__icontains=search)
            )
        if request.query_params.get('active_only') == 'true':
            queryset = queryset.filter(is_active=True)
        serializer = SupplierSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = SupplierSerializer(data=request.data)
        if serializer.is_valid():
            supplier = serializer.save()
            create_audit_log(request, 'create', 'Supplier', supplier.id, object_name=supplier.name)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    supplier = get_object_or_404(Supplier, pk=pk)

    if request.method == 'GET':
        serializer = SupplierSerializer(supplier)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if supplier.purchase_orders.exists():
            return Response({'error': 'Supplier has purchase orders and cannot be deleted; deactivate it instead'},
                            status=status.HTTP_400_BAD_REQUEST)
        try:
            supplier.delete()
        except ProtectedError:
            return Response({'error': 'Supplier is still referenced and cannot be deleted'},
                            status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request, 'delete', 'Supplier', pk, object_name=supplier.name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def patient_list_create(request):
    """List patients (paginated, searchable) or register a new patient"""
    if request.method == 'GET':
        queryset = Patient.objects.all().order_by('full_name')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(full_name__icontains=search) |
                Q(phone__icontains=search) |
                Q(email__icontains=search) |
                Q(citizen_id__icontains=search)
            )
        is_active = request.query_params.get('is_active', None)
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')
        return Response(paginate_queryset(queryset, request, PatientSerializer))
    else:
        serializer = PatientSerializer(data=request.data)
        if serializer.is_valid():
            patient = serializer.save()
            create_audit_log(request, 'create', 'Patient', patient.id, object_name=patient.full_name)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def patient_detail(request, pk):
    """Retrieve, update or delete a patient"""
    patient = get_object_or_404(Patient, pk=pk)

    if request.method == 'GET':
        return Response(PatientSerializer(patient).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = PatientSerializer(patient, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            patient.delete()
        except ProtectedError:
            return Response({'error': 'Patient has sales orders or medical records and cannot be deleted; deactivate instead'},
                            status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request, 'delete', 'Patient', pk, object_name=patient.full_name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_points_history(request, pk):
    """Loyalty point movements of a patient, newest first"""
    patient = get_object_or_404(Patient, pk=pk)
    queryset = PointsHistory.objects.filter(patient=patient).select_related('created_by')
    transaction_type = request.query_params.get('transaction_type')
    if transaction_type:
        queryset = queryset.filter(transaction_type=transaction_type)
    payload = paginate_queryset(queryset, request, PointsHistorySerializer)
    payload['balance'] = patient.loyalty_points
    return Response(payload)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def patient_points_adjust(request, pk):
    """Manually earn, redeem or adjust points (managers only)"""
    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can adjust loyalty points'}, status=status.HTTP_403_FORBIDDEN)
    patient = get_object_or_404(Patient, pk=pk)
    serializer = PointsAdjustSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    try:
        if data['transaction_type'] == 'earn':
            entry = services.add_points(patient.id, data['points'], 'manual', '',
                                        data['description'] or 'Points earned', user=request.user)
        elif data['transaction_type'] == 'redeem':
            entry = services.redeem_points(patient.id, data['points'], 'manual', '',
                                           data['description'] or 'Points redeemed', user=request.user)
        else:
            entry = services.adjust_points(patient.id, data['points'],
                                           data['description'] or 'Manual adjustment', user=request.user)
    except BusinessRuleError as exc:
        return business_error_response(exc)

    logger.info(f"User {request.user.username} {data['transaction_type']} {data['points']} points for patient {patient.id}")
    create_audit_log(
        request, 'points_adjust', 'Patient', patient.id,
        changes={'loyalty_points': {'old': entry.balance_before, 'new': entry.balance_after}},
        object_name=patient.full_name,
    )
    return Response(PointsHistorySerializer(entry).data, status=status.HTTP_201_CREATED)
