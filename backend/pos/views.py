import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q, Count
from django.shortcuts import get_object_or_404
from backend.core.exceptions import BusinessRuleError, business_error_response
from backend.core.permissions import IsSalesStaff, IsWarehouseStaff, IsAccountant
from backend.core.utils import create_audit_log, paginate_queryset
from backend.inventory.models import Inventory
from backend.pricing.engine import calculate_best_price
from backend.pricing.services import get_active_promotions, get_usable_voucher
from backend.pricing.views import serialize_quote
from .models import SalesOrder, B2BQuote
from .serializers import (
    SalesOrderSerializer, SalesOrderListSerializer, CheckoutSerializer, B2BOrderSerializer,
    PickingStatusSerializer, OrderPaymentSerializer, B2BQuoteSerializer, B2BQuoteListSerializer,
    QuoteStageSerializer,
)
from . import services

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsSalesStaff])
def pos_product_search(request):
    """In-stock products of a warehouse with their current best price"""
    try:
        warehouse = services.resolve_sale_warehouse(request.user, request.query_params.get('warehouse_id'))
    except BusinessRuleError as e:
        return business_error_response(e)

    rows = Inventory.objects.select_related('product').filter(
        warehouse=warehouse, quantity__gt=0, product__is_active=True
    )
    search = request.query_params.get('search', '').strip()
    if search:
        rows = rows.filter(
            Q(product__name__icontains=search) |
            Q(product__sku__iexact=search) |
            Q(product__barcode__iexact=search) |
            Q(product__manufacturer__icontains=search)
        )
    try:
        limit = min(max(int(request.query_params.get('limit', 50)), 1), 200)
    except (TypeError, ValueError):
        limit = 50

    promotions = get_active_promotions()
    results = []
    for row in rows.order_by('product__name')[:limit]:
        product = row.product
        price = calculate_best_price(product, promotions)
        results.append({
            'id': product.id,
            'name': product.name,
            'sku': product.sku,
            'barcode': product.barcode,
            'unit': product.unit,
            'manufacturer': product.manufacturer,
            'category': product.category,
            'enable_lot_management': product.enable_lot_management,
            'stock': row.quantity,
            'original_price': price.original_price,
            'final_price': price.final_price,
            'applied_promotion': (
                {'id': price.applied_promotion.id, 'name': price.applied_promotion.name}
                if price.applied_promotion else None
            ),
        })
    return Response({'warehouse': warehouse.id, 'results': results})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsSalesStaff])
def pos_price_preview(request):
    """Price a cart the same way checkout will, without writing anything"""
    serializer = CheckoutSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        voucher = get_usable_voucher(data['voucher_code']) if data.get('voucher_code') else None
        quote, points_discount = services.build_sale_quote(
            data['items'], voucher, data.get('patient'), data.get('points_to_redeem') or 0, data['combos']
        )
    except BusinessRuleError as e:
        return business_error_response(e)

    payload = serialize_quote(quote, voucher)
    payload['points_discount'] = points_discount
    payload['total'] = quote.total - points_discount
    return Response(payload)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsSalesStaff])
def pos_checkout(request):
    """Complete a sale"""
    serializer = CheckoutSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        warehouse = services.resolve_sale_warehouse(request.user, data.get('warehouse'))
        order = services.process_sale(
            data['items'],
            warehouse,
            user=request.user,
            patient=data.get('patient'),
            voucher_code=data.get('voucher_code') or None,
            points_to_redeem=data.get('points_to_redeem') or 0,
            payment_method=data['payment_method'],
            fund=data.get('fund'),
            notes=data.get('notes', ''),
            combos=data['combos'],
        )
    except BusinessRuleError as e:
        logger.warning(f"Checkout by {request.user.username} rejected: {e.message}")
        return business_error_response(e)

    create_audit_log(
        request=request,
        action='sale_checkout',
        model_name='SalesOrder',
        object_id=order.id,
        object_reference=order.order_code,
        changes={
            'total_value': str(order.total_value),
            'items': order.items.count(),
            'combo_items': order.combo_items.count(),
            'voucher': order.voucher.code if order.voucher else None,
            'points_redeemed': order.points_redeemed,
            'points_earned': order.points_earned,
        },
    )
    return Response(SalesOrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sales_order_list_create(request):
    """Filtered, paginated order list; POST opens a B2B order"""
    if request.method == 'GET':
        queryset = SalesOrder.objects.select_related('patient', 'warehouse').annotate(item_count=Count('items'))

        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(order_code__icontains=search) |
                Q(customer_name__icontains=search) |
                Q(customer_phone__icontains=search) |
                Q(patient__full_name__icontains=search)
            )
        for param, field in (('order_type', 'order_type'), ('payment_status', 'payment_status'),
                             ('warehouse_id', 'warehouse_id'), ('patient_id', 'patient_id')):
            value = request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{field: value})
        operational_status = request.query_params.get('operational_status')
        if operational_status:
            queryset = queryset.filter(operational_status__in=operational_status.split(','))
        date_from = request.query_params.get('date_from')
        date_to = request.query_params.get('date_to')
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)

        return Response(paginate_queryset(queryset, request, SalesOrderListSerializer))

    if not IsSalesStaff().has_permission(request, None):
        return Response({'error': 'Only sales staff can create orders'}, status=status.HTTP_403_FORBIDDEN)
    serializer = B2BOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        warehouse = services.resolve_sale_warehouse(request.user, data.get('warehouse'))
        order = services.create_b2b_order(
            data['items'], warehouse, user=request.user,
            customer_name=data['customer_name'], customer_phone=data['customer_phone'],
            delivery_address=data['delivery_address'], patient=data.get('patient'), notes=data['notes'],
        )
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='create', model_name='SalesOrder', object_id=order.id,
                     object_reference=order.order_code, changes={'total_value': str(order.total_value)})
    return Response(SalesOrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_order_detail(request, pk):
    order = get_object_or_404(
        SalesOrder.objects.select_related('patient', 'warehouse', 'fund', 'voucher', 'created_by')
        .prefetch_related('items__product', 'items__promotion', 'combo_items__combo', 'combo_items__product'),
        pk=pk,
    )
    return Response(SalesOrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsWarehouseStaff])
def sales_order_picking_status(request, pk):
    """Advance a B2B order through packaging, shipping and completion"""
    order = get_object_or_404(SalesOrder, pk=pk)
    serializer = PickingStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        order, old_status = services.update_picking_status(order, serializer.validated_data['status'], request.user)
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='order_status', model_name='SalesOrder', object_id=order.id,
                     object_reference=order.order_code,
                     changes={'old_status': old_status, 'new_status': order.operational_status})
    return Response(SalesOrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAccountant])
def sales_order_payment(request, pk):
    """Record full payment of a B2B order"""
    order = get_object_or_404(SalesOrder, pk=pk)
    serializer = OrderPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        order = services.record_order_payment(
            order, serializer.validated_data['fund'], request.user, serializer.validated_data['payment_method']
        )
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='order_payment', model_name='SalesOrder', object_id=order.id,
                     object_reference=order.order_code, changes={'amount': str(order.total_value)})
    return Response(SalesOrderSerializer(order).data)


def _filtered_quotes(request):
    quotes = B2BQuote.objects.all()
    search = request.query_params.get('search', '').strip()
    if search:
        quotes = quotes.filter(
            Q(quote_number__icontains=search) |
            Q(customer_name__icontains=search) |
            Q(customer_code__icontains=search)
        )
    stage = request.query_params.get('stage')
    if stage:
        quotes = quotes.filter(stage__in=stage.split(','))
    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')
    if date_from:
        quotes = quotes.filter(quote_date__gte=date_from)
    if date_to:
        quotes = quotes.filter(quote_date__lte=date_to)
    return quotes


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsSalesStaff])
def b2b_quote_list_create(request):
    """Filtered, paginated quote list or create a draft quote"""
    if request.method == 'GET':
        quotes = _filtered_quotes(request).annotate(item_count=Count('items'))
        return Response(paginate_queryset(quotes, request, B2BQuoteListSerializer))

    serializer = B2BQuoteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = dict(serializer.validated_data)
    items = data.pop('items')
    try:
        quote = services.create_b2b_quote(data, items, user=request.user)
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='create', model_name='B2BQuote', object_id=quote.id,
                     object_reference=quote.quote_number, changes={'total_value': str(quote.total_value)})
    return Response(B2BQuoteSerializer(quote).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsSalesStaff])
def b2b_quote_stats(request):
    """Quote count and value, overall and per stage"""
    return Response(services.quote_stats(_filtered_quotes(request)))


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsSalesStaff])
def b2b_quote_detail(request, pk):
    """Retrieve, edit (while still negotiable) or delete (drafts only) a quote"""
    quote = get_object_or_404(B2BQuote.objects.prefetch_related('items'), pk=pk)

    if request.method == 'GET':
        return Response(B2BQuoteSerializer(quote).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = B2BQuoteSerializer(quote, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = dict(serializer.validated_data)
        items = data.pop('items', None)
        try:
            quote = services.update_b2b_quote(quote, data, items)
        except BusinessRuleError as e:
            return business_error_response(e)
        create_audit_log(request=request, action='update', model_name='B2BQuote', object_id=quote.id,
                         object_reference=quote.quote_number, changes={'total_value': str(quote.total_value)})
        return Response(B2BQuoteSerializer(quote).data)
    else:  # DELETE
        try:
            services.delete_b2b_quote(quote)
        except BusinessRuleError as e:
            return business_error_response(e)
        create_audit_log(request=request, action='delete', model_name='B2BQuote', object_id=pk,
                         object_reference=quote.quote_number)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsSalesStaff])
def b2b_quote_stage(request, pk):
    """Move a quote to another stage; accepting it opens the B2B order"""
    quote = get_object_or_404(B2BQuote, pk=pk)
    serializer = QuoteStageSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        quote, old_stage = services.change_quote_stage(
            quote, serializer.validated_data['stage'], request.user, serializer.validated_data.get('warehouse')
        )
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='update', model_name='B2BQuote', object_id=quote.id,
                     object_reference=quote.quote_number,
                     changes={'old_stage': old_stage, 'new_stage': quote.stage,
                              'sales_order': quote.sales_order.order_code if quote.sales_order else None})
    return Response(B2BQuoteSerializer(quote).data)
