import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q, Count
from django.shortcuts import get_object_or_404
from backend.core.exceptions import BusinessRuleError, business_error_response
from backend.core.permissions import IsWarehouseStaff
from backend.core.utils import create_audit_log, paginate_queryset
from backend.locations.models import Warehouse
from .models import PurchaseOrder
from .serializers import (
    PurchaseOrderSerializer, PurchaseOrderListSerializer, PurchaseOrderWriteSerializer,
    StatusSerializer, ReceiveSerializer, GoodsReceiptSerializer, DirectImportSerializer,
    ReorderOrderSerializer,
)
from . import services

logger = logging.getLogger(__name__)


def _detail_queryset():
    return PurchaseOrder.objects.select_related('supplier', 'warehouse', 'created_by').prefetch_related('items', 'items__product')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_order_list_create(request):
    """List purchase orders or create one with its items"""
    if request.method == 'GET':
        queryset = PurchaseOrder.objects.select_related('supplier').annotate(item_count=Count('items'))

        supplier = request.query_params.get('supplier', None)
        date_from = request.query_params.get('date_from', None)
        date_to = request.query_params.get('date_to', None)
        status_filter = request.query_params.get('status', None)
        search = request.query_params.get('search', '').strip()

        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        if date_from:
            queryset = queryset.filter(order_date__gte=date_from)
        if date_to:
            queryset = queryset.filter(order_date__lte=date_to)
        if status_filter:
            # Accepts a comma-separated list, e.g. status=ordered,partially_received
            queryset = queryset.filter(status__in=[s.strip() for s in status_filter.split(',') if s.strip()])
        if search:
            queryset = queryset.filter(Q(po_number__icontains=search) | Q(supplier__name__icontains=search))

        queryset = queryset.order_by('-order_date', '-id')
        return Response(paginate_queryset(queryset, request, PurchaseOrderListSerializer, default_limit=15))

    if not IsWarehouseStaff().has_permission(request, None):
        return Response({'error': 'Only warehouse staff can create purchase orders'}, status=status.HTTP_403_FORBIDDEN)
    serializer = PurchaseOrderWriteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        purchase_order = services.create_purchase_order(
            data['supplier'],
            data.get('items') or [],
            user=request.user,
            order_date=data.get('order_date'),
            expected_delivery_date=data.get('expected_delivery_date'),
            status=data['status'],
            notes=data['notes'],
            warehouse=data.get('warehouse'),
        )
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='create', model_name='PurchaseOrder', object_id=purchase_order.id,
                     object_name=purchase_order.supplier.name, object_reference=purchase_order.po_number,
                     changes={'total_amount': str(purchase_order.total_amount)})
    return Response(PurchaseOrderSerializer(_detail_queryset().get(pk=purchase_order.pk)).data,
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def purchase_order_detail(request, pk):
    """Retrieve, update (draft/sent only) or delete (nothing received) a purchase order"""
    purchase_order = get_object_or_404(_detail_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(PurchaseOrderSerializer(purchase_order).data)

    if not IsWarehouseStaff().has_permission(request, None):
        return Response({'error': 'Only warehouse staff can modify purchase orders'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = PurchaseOrderWriteSerializer(data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = dict(serializer.validated_data)
        items = data.pop('items', None)
        data.pop('status', None)
        try:
            services.update_purchase_order(purchase_order, data, items=items)
        except BusinessRuleError as e:
            return business_error_response(e)
        create_audit_log(request=request, action='update', model_name='PurchaseOrder', object_id=purchase_order.id,
                         object_reference=purchase_order.po_number,
                         changes={k: str(v) for k, v in data.items()})
        return Response(PurchaseOrderSerializer(_detail_queryset().get(pk=pk)).data)
    else:  # DELETE
        po_number = purchase_order.po_number
        try:
            services.delete_purchase_order(purchase_order)
        except BusinessRuleError as e:
            return business_error_response(e)
        create_audit_log(request=request, action='delete', model_name='PurchaseOrder', object_id=pk,
                         object_reference=po_number)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsWarehouseStaff])
def purchase_order_status(request, pk):
    """Move a purchase order to another status"""
    purchase_order = get_object_or_404(PurchaseOrder, pk=pk)
    serializer = StatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        purchase_order, old_status = services.change_status(purchase_order, serializer.validated_data['status'])
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='po_status', model_name='PurchaseOrder', object_id=purchase_order.id,
                     object_reference=purchase_order.po_number,
                     changes={'status': {'old': old_status, 'new': purchase_order.status}})
    return Response(PurchaseOrderSerializer(_detail_queryset().get(pk=pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsWarehouseStaff])
def purchase_order_cancel(request, pk):
    """Cancel a purchase order"""
    purchase_order = get_object_or_404(PurchaseOrder, pk=pk)
    try:
        purchase_order, old_status = services.cancel_purchase_order(purchase_order)
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='po_status', model_name='PurchaseOrder', object_id=purchase_order.id,
                     object_reference=purchase_order.po_number,
                     changes={'status': {'old': old_status, 'new': 'cancelled'}})
    return Response(PurchaseOrderSerializer(_detail_queryset().get(pk=pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsWarehouseStaff])
def purchase_order_receive(request, pk):
    """Receive goods against a purchase order"""
    purchase_order = get_object_or_404(PurchaseOrder, pk=pk)
    serializer = ReceiveSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        purchase_order, receipts = services.receive_items(
            purchase_order, data['items'], user=request.user, warehouse=data.get('warehouse')
        )
    except BusinessRuleError as e:
        return business_error_response(e)

    create_audit_log(
        request=request,
        action='po_receive',
        model_name='PurchaseOrder',
        object_id=purchase_order.id,
        object_name=purchase_order.supplier.name,
        object_reference=purchase_order.po_number,
        changes={
            'status': purchase_order.status,
            'received': [{'item': r.item_id, 'quantity': r.quantity, 'lot_number': r.lot_number} for r in receipts],
        },
    )
    return Response({
        'purchase_order': PurchaseOrderSerializer(_detail_queryset().get(pk=pk)).data,
        'receipts': GoodsReceiptSerializer(receipts, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_order_receipts(request, pk):
    """Receiving history of a purchase order"""
    purchase_order = get_object_or_404(PurchaseOrder, pk=pk)
    receipts = purchase_order.receipts.select_related('item__product', 'warehouse', 'received_by')
    return Response(GoodsReceiptSerializer(receipts, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsWarehouseStaff])
def direct_import(request):
    """Book goods received without a prior order"""
    serializer = DirectImportSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        warehouse = data.get('warehouse') or Warehouse.get_b2b_warehouse()
        if warehouse is None:
            raise BusinessRuleError('No B2B warehouse is configured to receive goods')
        purchase_order, receipts = services.create_direct_import(
            data['supplier'], data['items'], warehouse, user=request.user, notes=data['notes']
        )
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='po_receive', model_name='PurchaseOrder', object_id=purchase_order.id,
                     object_name=purchase_order.supplier.name, object_reference=purchase_order.po_number,
                     changes={'direct_import': True, 'lines': len(receipts)})
    return Response(PurchaseOrderSerializer(_detail_queryset().get(pk=purchase_order.pk)).data,
                    status=status.HTTP_201_CREATED)


def _warehouse_from_request(request, source):
    warehouse_id = source.get('warehouse_id') or source.get('warehouse')
    if warehouse_id:
        return get_object_or_404(Warehouse, pk=warehouse_id)
    return Warehouse.get_b2b_warehouse()


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsWarehouseStaff])
def reorder_analysis(request):
    """Preview of products that need restocking in a warehouse (defaults to the B2B warehouse)"""
    warehouse = _warehouse_from_request(request, request.query_params)
    if warehouse is None:
        return Response({'error': 'B2B warehouse not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(services.analyze_reorder(warehouse))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsWarehouseStaff])
def reorder_create_orders(request):
    """Create draft purchase orders, one per supplier, from an edited reorder list"""
    serializer = ReorderOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    products = [
        {
            'product': entry['product'],
            'supplier': entry['product'].supplier,
            'quantity': entry['quantity'],
            'unit_price': entry.get('unit_price'),
        }
        for entry in data['products']
    ]
    try:
        orders = services.create_orders_from_products(products, data['warehouse'], user=request.user)
    except BusinessRuleError as e:
        return business_error_response(e)
    for order in orders:
        create_audit_log(request=request, action='create', model_name='PurchaseOrder', object_id=order.id,
                         object_name=order.supplier.name, object_reference=order.po_number)
    return Response({
        'message': f'Created {len(orders)} purchase order(s) for {len(products)} product(s)',
        'purchase_orders': PurchaseOrderSerializer(orders, many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsWarehouseStaff])
def auto_generate(request):
    """Analyse a warehouse and create draft purchase orders for everything below min stock"""
    warehouse = _warehouse_from_request(request, request.data)
    if warehouse is None:
        return Response({'error': 'B2B warehouse not found'}, status=status.HTTP_404_NOT_FOUND)
    try:
        orders, analysis = services.auto_generate_purchase_orders(warehouse, user=request.user)
    except BusinessRuleError as e:
        return business_error_response(e)
    if not orders:
        return Response({'message': 'No products need restocking', 'purchase_orders': []})
    for order in orders:
        create_audit_log(request=request, action='create', model_name='PurchaseOrder', object_id=order.id,
                         object_name=order.supplier.name, object_reference=order.po_number,
                         changes={'auto_generated': True})
    return Response({
        'message': f"Created {len(orders)} purchase order(s) for {analysis['total_products']} product(s)",
        'purchase_orders': PurchaseOrderSerializer(orders, many=True).data,
        'supplier_count': analysis['supplier_count'],
        'total_value': analysis['total_value'],
    }, status=status.HTTP_201_CREATED)
