import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q, ProtectedError
from django.shortcuts import get_object_or_404
from backend.core.exceptions import BusinessRuleError, business_error_response
from backend.core.permissions import has_any_role, ROLE_MANAGER
from backend.core.utils import create_audit_log
from .models import Room, AppointmentStatus, Appointment
from .serializers import (
    RoomSerializer, AppointmentStatusSerializer, AppointmentSerializer, AppointmentStatusChangeSerializer,
)
from . import services

logger = logging.getLogger(__name__)


# Room views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def room_list_create(request):
    if request.method == 'GET':
        rooms = Room.objects.all()
        if request.query_params.get('active_only') == 'true':
            rooms = rooms.filter(is_active=True)
        return Response(RoomSerializer(rooms, many=True).data)

    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can create rooms'}, status=status.HTTP_403_FORBIDDEN)
    serializer = RoomSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def room_detail(request, pk):
    room = get_object_or_404(Room, pk=pk)

    if request.method == 'GET':
        return Response(RoomSerializer(room).data)

    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can modify rooms'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = RoomSerializer(room, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        room.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Appointment views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointment_list_create(request):
    """Appointments for the scheduling board, or book a new one"""
    if request.method == 'GET':
        queryset = Appointment.objects.select_related('patient', 'doctor', 'room', 'current_status')
        for param, field in (('room_id', 'room_id'), ('doctor_id', 'doctor_id'), ('patient_id', 'patient_id')):
            value = request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{field: value})
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(current_status__in=status_filter.split(','))
        start_date = request.query_params.get('start_date')
        end_date = request.query_params.get('end_date')
        if start_date:
            queryset = queryset.filter(appointment_time__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(appointment_time__date__lte=end_date)
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(patient__full_name__icontains=search) |
                Q(patient__phone__icontains=search) |
                Q(service_type__icontains=search)
            )
        return Response(AppointmentSerializer(queryset, many=True).data)

    serializer = AppointmentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        appointment = services.create_appointment(serializer.validated_data, user=request.user)
    except BusinessRuleError as e:
        return business_error_response(e)
    return Response(AppointmentSerializer(appointment).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, pk):
    appointment = get_object_or_404(
        Appointment.objects.select_related('patient', 'doctor', 'room', 'current_status'), pk=pk
    )

    if request.method == 'GET':
        return Response(AppointmentSerializer(appointment).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = AppointmentSerializer(appointment, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            appointment = services.update_appointment(appointment, serializer.validated_data)
        except BusinessRuleError as e:
            return business_error_response(e)
        return Response(AppointmentSerializer(appointment).data)
    else:  # DELETE
        create_audit_log(request=request, action='delete', model_name='Appointment', object_id=appointment.id,
                         object_name=str(appointment))
        appointment.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def appointment_change_status(request, pk):
    appointment = get_object_or_404(Appointment, pk=pk)
    serializer = AppointmentStatusChangeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        appointment, old_status = services.change_status(appointment, serializer.validated_data['status'].upper())
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='appointment_status', model_name='Appointment',
                     object_id=appointment.id, object_name=str(appointment),
                     changes={'old_status': old_status, 'new_status': appointment.current_status_id})
    return Response(AppointmentSerializer(appointment).data)


# Appointment status views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointment_status_list_create(request):
    if request.method == 'GET':
        return Response(AppointmentStatusSerializer(AppointmentStatus.objects.all(), many=True).data)

    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can define statuses'}, status=status.HTTP_403_FORBIDDEN)
    serializer = AppointmentStatusSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_status_detail(request, code):
    appointment_status = get_object_or_404(AppointmentStatus, code=code.upper())

    if request.method == 'GET':
        return Response(AppointmentStatusSerializer(appointment_status).data)

    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can modify statuses'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = AppointmentStatusSerializer(appointment_status, data=request.data,
                                                 partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            appointment_status.delete()
        except ProtectedError:
            return Response({'error': f'Status {appointment_status.code} is used by appointments'},
                            status=status.HTTP_400_BAD_REQUEST)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def appointment_status_stats(request):
    """Usage count of every status, optionally within start_date/end_date"""
    return Response(services.status_stats(request.query_params.get('start_date'),
                                          request.query_params.get('end_date')))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def appointment_status_initialize(request):
    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can initialize statuses'}, status=status.HTTP_403_FORBIDDEN)
    statuses = services.initialize_default_statuses()
    logger.info(f"User {request.user.username} initialized {len(statuses)} default appointment statuses")
    return Response(AppointmentStatusSerializer(statuses, many=True).data)
