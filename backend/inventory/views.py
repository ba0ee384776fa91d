import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Q, F
from django.shortcuts import get_object_or_404
from backend.catalog.models import Product
from backend.core.exceptions import BusinessRuleError, business_error_response
from backend.core.permissions import IsWarehouseStaff
from backend.core.utils import create_audit_log, paginate_queryset
from backend.locations.models import Warehouse
from .models import Inventory, ProductLot, StockAdjustment
from .serializers import (
    InventorySerializer, InventorySettingsSerializer, ProductLotSerializer,
    StockAdjustmentSerializer, LotManagementSerializer
)
from . import services

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_list(request):
    """Inventory rows filtered by warehouse/product; low_stock=true keeps rows at or below min stock"""
    queryset = Inventory.objects.select_related('product', 'warehouse').order_by('product__name', 'warehouse__name')
    warehouse_id = request.query_params.get('warehouse_id')
    product_id = request.query_params.get('product_id')
    search = request.query_params.get('search', '').strip()

    if warehouse_id:
        queryset = queryset.filter(warehouse_id=warehouse_id)
    if product_id:
        queryset = queryset.filter(product_id=product_id)
    if search:
        queryset = queryset.filter(Q(product__name__icontains=search) | Q(product__sku__icontains=search))
    if request.query_params.get('low_stock') == 'true':
        queryset = queryset.filter(quantity__lte=F('min_stock'))
    if request.query_params.get('out_of_stock') == 'true':
        queryset = queryset.filter(quantity__lte=0)

    return Response(paginate_queryset(queryset, request, InventorySerializer, default_limit=50))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsWarehouseStaff])
def inventory_settings_upsert(request):
    """Create or update min/max stock and shelf location for a product in a warehouse"""
    serializer = InventorySettingsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    product = get_object_or_404(Product, pk=data['product'])
    warehouse = get_object_or_404(Warehouse, pk=data['warehouse'])

    defaults = {k: data[k] for k in ('min_stock', 'max_stock', 'shelf_location') if k in data}
    inventory, created = Inventory.objects.update_or_create(
        product=product, warehouse=warehouse, defaults=defaults
    )
    return Response(InventorySerializer(inventory).data,
                    status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def stock_adjustment_list_create(request):
    """List stock adjustments or record a new one (warehouse staff)"""
    if request.method == 'GET':
        adjustments = StockAdjustment.objects.select_related('product', 'warehouse', 'lot', 'created_by')
        warehouse_id = request.query_params.get('warehouse_id')
        product_id = request.query_params.get('product_id')
        if warehouse_id:
            adjustments = adjustments.filter(warehouse_id=warehouse_id)
        if product_id:
            adjustments = adjustments.filter(product_id=product_id)
        return Response(paginate_queryset(adjustments, request, StockAdjustmentSerializer))

    if not IsWarehouseStaff().has_permission(request, None):
        return Response({'error': 'Only warehouse staff can adjust stock'}, status=status.HTTP_403_FORBIDDEN)
    serializer = StockAdjustmentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        with transaction.atomic():
            adjustment = serializer.save(created_by=request.user)
            inventory = services.apply_adjustment(adjustment)
    except BusinessRuleError as e:
        return business_error_response(e)

    create_audit_log(
        request=request,
        action='stock_adjust',
        model_name='Inventory',
        object_id=inventory.id,
        object_name=adjustment.product.name,
        object_reference=adjustment.warehouse.code,
        changes={
            'adjustment_type': adjustment.adjustment_type,
            'quantity': adjustment.quantity,
            'reason': adjustment.reason,
            'new_quantity': inventory.quantity,
        },
    )
    return Response(StockAdjustmentSerializer(adjustment).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def lot_list_create(request):
    """List lots or create a lot; inventory is re-synced after every lot change"""
    if request.method == 'GET':
        lots = ProductLot.objects.select_related('product', 'warehouse')
        product_id = request.query_params.get('product_id')
        warehouse_id = request.query_params.get('warehouse_id')
        lot_status = request.query_params.get('status')
        if product_id:
            lots = lots.filter(product_id=product_id)
        if warehouse_id:
            lots = lots.filter(warehouse_id=warehouse_id)
        if lot_status:
            lots = lots.filter(status=lot_status)
        if request.query_params.get('in_stock') == 'true':
            lots = lots.filter(quantity__gt=0)
        return Response(ProductLotSerializer(lots, many=True).data)

    if not IsWarehouseStaff().has_permission(request, None):
        return Response({'error': 'Only warehouse staff can create lots'}, status=status.HTTP_403_FORBIDDEN)
    serializer = ProductLotSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    with transaction.atomic():
        lot = serializer.save()
        services.sync_lots_to_inventory(lot.product, lot.warehouse)
    create_audit_log(request=request, action='create', model_name='ProductLot', object_id=lot.id,
                     object_name=lot.product.name, object_reference=lot.lot_number)
    return Response(ProductLotSerializer(lot).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def lot_detail(request, pk):
    """Retrieve, update or delete a lot"""
    lot = get_object_or_404(ProductLot.objects.select_related('product', 'warehouse'), pk=pk)

    if request.method == 'GET':
        return Response(ProductLotSerializer(lot).data)

    if not IsWarehouseStaff().has_permission(request, None):
        return Response({'error': 'Only warehouse staff can modify lots'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        old_quantity = lot.quantity
        serializer = ProductLotSerializer(lot, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        with transaction.atomic():
            lot = serializer.save()
            services.sync_lots_to_inventory(lot.product, lot.warehouse)
        if old_quantity != lot.quantity:
            create_audit_log(request=request, action='update', model_name='ProductLot', object_id=lot.id,
                             object_name=lot.product.name, object_reference=lot.lot_number,
                             changes={'quantity': {'old': old_quantity, 'new': lot.quantity}})
        lot.refresh_from_db()
        return Response(ProductLotSerializer(lot).data)
    else:  # DELETE
        product, warehouse = lot.product, lot.warehouse
        with transaction.atomic():
            lot.delete()
            services.sync_lots_to_inventory(product, warehouse)
        create_audit_log(request=request, action='delete', model_name='ProductLot', object_id=pk,
                         object_name=product.name, object_reference=lot.lot_number)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def expiring_lots(request):
    """Lots expiring within `days` (default 30), soonest first"""
    try:
        days = int(request.query_params.get('days', 30))
    except (TypeError, ValueError):
        return Response({'error': 'days must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    warehouse = None
    warehouse_id = request.query_params.get('warehouse_id')
    if warehouse_id:
        warehouse = get_object_or_404(Warehouse, pk=warehouse_id)
    lots = services.get_expiring_lots(days=days, warehouse=warehouse)
    return Response(ProductLotSerializer(lots, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsWarehouseStaff])
def product_lot_sync(request, product_id):
    """Recompute inventory quantities from lots for one product"""
    product = get_object_or_404(Product, pk=product_id)
    with transaction.atomic():
        totals = services.sync_lots_to_inventory(product)
    create_audit_log(request=request, action='lot_sync', model_name='Product', object_id=product.id,
                     object_name=product.name, changes={'totals': {str(k): v for k, v in totals.items()}})
    return Response({'product': product.id, 'warehouses': {str(k): v for k, v in totals.items()}})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsWarehouseStaff])
def product_lot_management(request, product_id):
    """Enable or disable lot management for a product"""
    product = get_object_or_404(Product, pk=product_id)
    serializer = LotManagementSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        if serializer.validated_data['enabled']:
            count = services.enable_lot_management(product)
            message = f'Lot management enabled; {count} default lots created'
        else:
            count = services.disable_lot_management(product)
            message = f'Lot management disabled; {count} lots removed'
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='update', model_name='Product', object_id=product.id,
                     object_name=product.name,
                     changes={'enable_lot_management': serializer.validated_data['enabled']})
    return Response({'message': message, 'enable_lot_management': product.enable_lot_management})
