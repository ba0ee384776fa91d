import logging
from decimal import Decimal, InvalidOperation
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
from backend.catalog.models import Product
from backend.catalog.views import load_filter_options
from backend.core.exceptions import BusinessRuleError, business_error_response
from backend.core.permissions import has_any_role, ROLE_MANAGER
from backend.core.utils import create_audit_log, paginate_queryset
from .engine import price_cart, detect_combos
from .models import Promotion, Voucher, Combo
from .serializers import (
    PromotionSerializer, VoucherSerializer, VoucherBatchSerializer, QuoteSerializer,
    ComboSerializer, ComboDetectSerializer,
)
from . import services

logger = logging.getLogger(__name__)


def serialize_quote(quote, voucher=None):
    return {
        'items': [
            {
                'product': line.product.id,
                'product_name': line.product.name,
                'quantity': line.quantity,
                'original_price': line.price.original_price,
                'final_price': line.price.final_price,
                'line_total': line.line_total,
                'applied_promotion': (
                    {'id': line.price.applied_promotion.id, 'name': line.price.applied_promotion.name}
                    if line.price.applied_promotion else None
                ),
            }
            for line in quote.lines
        ],
        'combos': [
            {
                'combo': line.combo.id,
                'combo_name': line.combo.name,
                'quantity': line.quantity,
                'original_price': line.original_price,
                'combo_price': line.unit_price,
                'line_total': line.line_total,
            }
            for line in quote.combo_lines
        ],
        'original_total': quote.original_total,
        'item_total': quote.item_total,
        'promotion_discount': quote.promotion_discount,
        'voucher_code': voucher.code if voucher else None,
        'voucher_discount': quote.voucher_discount,
        'total': quote.total,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def promotion_list_create(request):
    """List promotions or create a new promotion (managers)"""
    if request.method == 'GET':
        promotions = Promotion.objects.all()
        search = request.query_params.get('search', '').strip()
        if search:
            promotions = promotions.filter(Q(name__icontains=search) | Q(description__icontains=search))
        is_active = request.query_params.get('is_active')
        if is_active in ('true', 'false'):
            promotions = promotions.filter(is_active=is_active == 'true')
        return Response(PromotionSerializer(promotions, many=True).data)

    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can create promotions'}, status=status.HTTP_403_FORBIDDEN)
    serializer = PromotionSerializer(data=request.data)
    if serializer.is_valid():
        promotion = serializer.save(created_by=request.user)
        create_audit_log(request=request, action='create', model_name='Promotion',
                         object_id=promotion.id, object_name=promotion.name)
        return Response(PromotionSerializer(promotion).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def promotion_detail(request, pk):
    """Retrieve, update or delete a promotion"""
    promotion = get_object_or_404(Promotion, pk=pk)

    if request.method == 'GET':
        return Response(PromotionSerializer(promotion).data)

    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can modify promotions'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = PromotionSerializer(promotion, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Promotion',
                             object_id=promotion.id, object_name=promotion.name,
                             changes={k: str(v) for k, v in serializer.validated_data.items()})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request=request, action='delete', model_name='Promotion',
                         object_id=promotion.id, object_name=promotion.name)
        promotion.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def active_promotions(request):
    """Promotions running now, in the order the POS evaluates them"""
    return Response(PromotionSerializer(services.get_active_promotions(), many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def promotion_filter_options(request):
    """Categories and manufacturers a promotion condition can target"""
    options = load_filter_options()
    return Response({
        'categories': [{'value': c, 'label': c} for c in options['categories']],
        'manufacturers': [{'value': m, 'label': m} for m in options['manufacturers']],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def price_quote(request):
    """Price a cart with the running promotions and an optional voucher"""
    serializer = QuoteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    product_ids = [item['product'] for item in data['items']]
    products = Product.objects.in_bulk(product_ids)
    missing = sorted(set(product_ids) - set(products))
    if missing:
        return Response({'error': f'Products not found: {missing}'}, status=status.HTTP_400_BAD_REQUEST)

    voucher = None
    if data.get('voucher_code'):
        try:
            voucher = services.get_usable_voucher(data['voucher_code'])
        except BusinessRuleError as e:
            return business_error_response(e)

    try:
        combos = services.resolve_cart_combos(data['combos'])
        quote = price_cart(
            [(products[item['product']], item['quantity']) for item in data['items']],
            services.get_active_promotions(),
            voucher_promotion=voucher.promotion if voucher else None,
            combos=combos,
        )
        services.check_quote(quote, voucher)
    except BusinessRuleError as e:
        return business_error_response(e)
    return Response(serialize_quote(quote, voucher))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def voucher_list_create(request):
    """List vouchers (optionally per promotion) or create one (managers)"""
    if request.method == 'GET':
        vouchers = Voucher.objects.select_related('promotion')
        promotion_id = request.query_params.get('promotion_id')
        if promotion_id:
            vouchers = vouchers.filter(promotion_id=promotion_id)
        search = request.query_params.get('search', '').strip()
        if search:
            vouchers = vouchers.filter(code__icontains=search)
        return Response(paginate_queryset(vouchers, request, VoucherSerializer, default_limit=50))

    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can create vouchers'}, status=status.HTTP_403_FORBIDDEN)
    serializer = VoucherSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def voucher_detail(request, pk):
    """Retrieve, update or delete a voucher"""
    voucher = get_object_or_404(Voucher.objects.select_related('promotion'), pk=pk)

    if request.method == 'GET':
        return Response(VoucherSerializer(voucher).data)

    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can modify vouchers'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = VoucherSerializer(voucher, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        voucher.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def voucher_batch_generate(request):
    """Generate a batch of unique voucher codes for a promotion"""
    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can generate vouchers'}, status=status.HTTP_403_FORBIDDEN)
    serializer = VoucherBatchSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        vouchers = services.generate_vouchers(data['promotion'], data['count'], data['prefix'], data['usage_limit'])
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='create', model_name='Voucher', object_id=data['promotion'].id,
                     object_name=data['promotion'].name, changes={'generated': len(vouchers)})
    return Response(VoucherSerializer(vouchers, many=True).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def voucher_redeem(request):
    """Consume one use of a voucher code; `order_amount` is checked against the minimum order"""
    code = (request.data.get('code') or '').strip()
    if not code:
        return Response({'error': 'code is required'}, status=status.HTTP_400_BAD_REQUEST)
    order_amount = request.data.get('order_amount')
    if order_amount not in (None, ''):
        try:
            order_amount = Decimal(str(order_amount))
        except InvalidOperation:
            return Response({'error': 'order_amount must be a number'}, status=status.HTTP_400_BAD_REQUEST)
    else:
        order_amount = None
    try:
        voucher = services.redeem_voucher(code, order_amount)
    except BusinessRuleError as e:
        return business_error_response(e)
    logger.info(f"User {request.user.username} redeemed voucher {voucher.code}")
    return Response(VoucherSerializer(voucher).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def combo_list_create(request):
    """List combos or create one with its products (managers)"""
    if request.method == 'GET':
        combos = Combo.objects.prefetch_related('items__product')
        search = request.query_params.get('search', '').strip()
        if search:
            combos = combos.filter(Q(name__icontains=search) | Q(description__icontains=search))
        is_active = request.query_params.get('is_active')
        if is_active in ('true', 'false'):
            combos = combos.filter(is_active=is_active == 'true')
        return Response(ComboSerializer(combos, many=True).data)

    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can create combos'}, status=status.HTTP_403_FORBIDDEN)
    serializer = ComboSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = dict(serializer.validated_data)
    items = data.pop('items')
    try:
        combo = services.create_combo(data, items, user=request.user)
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='create', model_name='Combo', object_id=combo.id, object_name=combo.name)
    return Response(ComboSerializer(combo).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def combo_detail(request, pk):
    """Retrieve or update a combo; DELETE deactivates it so past sales keep their reference"""
    combo = get_object_or_404(Combo.objects.prefetch_related('items__product'), pk=pk)

    if request.method == 'GET':
        return Response(ComboSerializer(combo).data)

    if not has_any_role(request.user, ROLE_MANAGER):
        return Response({'error': 'Only managers can modify combos'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = ComboSerializer(combo, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = dict(serializer.validated_data)
        items = data.pop('items', None)
        try:
            combo = services.update_combo(combo, data, items)
        except BusinessRuleError as e:
            return business_error_response(e)
        create_audit_log(request=request, action='update', model_name='Combo', object_id=combo.id,
                         object_name=combo.name, changes={k: str(v) for k, v in data.items()})
        return Response(ComboSerializer(Combo.objects.prefetch_related('items__product').get(pk=combo.pk)).data)
    else:  # DELETE
        services.deactivate_combo(combo)
        create_audit_log(request=request, action='delete', model_name='Combo', object_id=combo.id,
                         object_name=combo.name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def combo_detect(request):
    """Active combos the given cart items could be sold as"""
    serializer = ComboDetectSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    items = serializer.validated_data['items']
    products = Product.objects.in_bulk([item['product'] for item in items])
    cart = [(products[item['product']], item['quantity']) for item in items if item['product'] in products]

    matches = detect_combos(cart, services.active_combos())
    return Response([
        {
            'combo': ComboSerializer(match.combo).data,
            'original_price': match.original_price,
            'combo_price': match.combo_price,
            'discount_amount': match.discount_amount,
            'discount_percentage': match.discount_percentage,
        }
        for match in matches
    ])
