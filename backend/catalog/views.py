import base64
import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import Sum, ProtectedError
from django.db.models.functions import Coalesce
from backend.core.cache_utils import cached_value, PRODUCT_FILTER_OPTIONS_KEY, FILTER_OPTIONS_CACHE_TTL
from backend.core.edge_functions import invoke_edge_function
from backend.core.exceptions import EdgeFunctionError, edge_error_response
from backend.core.utils import create_audit_log, paginate_queryset
from .models import Product
from .filters import ProductFilter
from .serializers import (
    ProductSerializer, ProductListSerializer, ProductEnrichSerializer, PdfExtractSerializer
)

logger = logging.getLogger(__name__)

TRACKED_FIELDS = ('name', 'sku', 'retail_price', 'wholesale_price', 'cost_price', 'is_active')


@cached_value(PRODUCT_FILTER_OPTIONS_KEY, FILTER_OPTIONS_CACHE_TTL)
def load_filter_options():
    products = Product.objects.all()
    categories = products.exclude(category='').values_list('category', flat=True).distinct().order_by('category')
    manufacturers = products.exclude(manufacturer='').values_list('manufacturer', flat=True).distinct().order_by('manufacturer')
    units = products.exclude(unit='').values_list('unit', flat=True).distinct().order_by('unit')
    return {
        'categories': list(categories),
        'manufacturers': list(manufacturers),
        'units': list(units),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List all products or create a new product"""
    if request.method == 'GET':
        queryset = Product.objects.select_related('supplier').annotate(
            total_stock=Coalesce(Sum('inventory_rows__quantity'), 0)
        )
        filterset = ProductFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.order_by('name')
        return Response(paginate_queryset(queryset, request, ProductListSerializer))
    else:
        serializer = ProductSerializer(data=request.data)
        if serializer.is_valid():
            product = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='Product',
                object_id=product.id,
                object_name=product.name,
                object_reference=product.sku,
            )
            return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product.objects.select_related('supplier'), pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            old_data = {k: getattr(product, k) for k in TRACKED_FIELDS}
            serializer.save()
            changes = {
                k: {'old': str(old_data[k]), 'new': str(getattr(product, k))}
                for k in TRACKED_FIELDS if old_data[k] != getattr(product, k)
            }
            if changes:
                create_audit_log(
                    request=request,
                    action='update',
                    model_name='Product',
                    object_id=product.id,
                    object_name=product.name,
                    object_reference=product.sku,
                    changes=changes,
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            product.delete()
        except ProtectedError:
            return Response({'error': 'Product has sales or purchase history and cannot be deleted; deactivate it instead'},
                            status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='Product',
                         object_id=pk, object_name=product.name, object_reference=product.sku)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_filter_options(request):
    """Distinct categories, manufacturers and units for filter dropdowns"""
    return Response(load_filter_options())


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_enrich(request, pk):
    """
    Ask the enrich-product-data function for a description, tags and category.

    With apply=true the suggestions are written to the product, otherwise
    they are only returned.
    """
    product = get_object_or_404(Product, pk=pk)
    serializer = ProductEnrichSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        data = invoke_edge_function('enrich-product-data', {'productName': product.name})
    except EdgeFunctionError as e:
        return edge_error_response(e)

    suggestion = {
        'description': data.get('description') or '',
        'tags': data.get('tags') or [],
        'category': data.get('category') or '',
    }
    if serializer.validated_data['apply']:
        update_fields = []
        for field, value in suggestion.items():
            if value:
                setattr(product, field, value)
                update_fields.append(field)
        if update_fields:
            product.save(update_fields=update_fields + ['updated_at'])
            create_audit_log(request=request, action='update', model_name='Product',
                             object_id=product.id, object_name=product.name,
                             changes={'enriched_fields': update_fields})
    return Response({'suggestion': suggestion, 'product': ProductSerializer(product).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def product_extract_from_pdf(request):
    """Send an uploaded product sheet to extract-from-pdf and return the extracted fields"""
    serializer = PdfExtractSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    upload = serializer.validated_data['file']
    file_content = base64.b64encode(upload.read()).decode('ascii')
    try:
        data = invoke_edge_function('extract-from-pdf', {
            'fileContent': file_content,
            'mimeType': upload.content_type or 'application/pdf',
        })
    except EdgeFunctionError as e:
        return edge_error_response(e)
    logger.info(f"User {request.user.username} extracted product data from {upload.name}")
    return Response(data)
