import django_filters
from django.db.models import Q
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter for Product model using django-filter"""

    # Basic search across name, SKU, barcode and manufacturer
    search = django_filters.CharFilter(method='filter_search', label='Search')

    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    manufacturer = django_filters.CharFilter(field_name='manufacturer', lookup_expr='iexact')
    supplier = django_filters.NumberFilter(field_name='supplier_id', lookup_expr='exact')
    active = django_filters.CharFilter(method='filter_active', label='Active')
    lot_managed = django_filters.BooleanFilter(field_name='enable_lot_management')
    min_price = django_filters.NumberFilter(field_name='retail_price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='retail_price', lookup_expr='lte')

    class Meta:
        model = Product
        fields = ['search', 'category', 'manufacturer', 'supplier', 'active', 'lot_managed']

    def filter_search(self, queryset, name, value):
        """Multi-word search: every word must appear in one of the searchable fields"""
        if not value or not value.strip():
            return queryset

        for word in value.split():
            queryset = queryset.filter(
                Q(name__icontains=word) |
                Q(sku__icontains=word) |
                Q(barcode__icontains=word) |
                Q(manufacturer__icontains=word)
            )
        return queryset

    def filter_active(self, queryset, name, value):
        """Accepts true/false/all; anything else leaves the queryset untouched"""
        if not value:
            return queryset
        value = value.lower()
        if value in ('true', '1', 'yes'):
            return queryset.filter(is_active=True)
        if value in ('false', '0', 'no'):
            return queryset.filter(is_active=False)
        return queryset
