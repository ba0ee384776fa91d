import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import ProtectedError
from backend.core.permissions import has_any_role, ROLE_MANAGER
from .models import Warehouse
from .serializers import WarehouseSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def warehouse_list_create(request):
    """List warehouses or create a new warehouse (create requires manager)"""
    if request.method == 'GET':
        warehouses = Warehouse.objects.all()
        if request.query_params.get('active_only') == 'true':
            warehouses = warehouses.filter(is_active=True)
        serializer = WarehouseSerializer(warehouses, many=True)
        return Response(serializer.data)
    else:
        if not has_any_role(request.user, ROLE_MANAGER):
            return Response({'error': 'Only managers can create warehouses'}, status=status.HTTP_403_FORBIDDEN)
        serializer = WarehouseSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            logger.info(f"User {request.user.username} created warehouse {serializer.data['code']}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def warehouse_detail(request, pk):
    """Retrieve, update or delete a warehouse"""
    warehouse = get_object_or_404(Warehouse, pk=pk)

    if request.method == 'GET':
        serializer = WarehouseSerializer(warehouse)
        return Response(serializer.data)

    if not has_any_role(request.user, ROLE_MANAGER):
        logger.warning(f"User {request.user.username} attempted to modify warehouse {pk} without manager privileges")
        return Response({'error': 'Only managers can modify warehouses'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = WarehouseSerializer(warehouse, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            warehouse.delete()
        except ProtectedError:
            return Response({'error': 'Warehouse has sales orders and cannot be deleted; deactivate it instead'},
                            status=status.HTTP_400_BAD_REQUEST)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def b2b_warehouse(request):
    """The warehouse that receives purchase orders"""
    warehouse = Warehouse.get_b2b_warehouse()
    if not warehouse:
        return Response({'error': 'B2B warehouse not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(WarehouseSerializer(warehouse).data)
