from rest_framework import serializers
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'sku', 'barcode', 'category', 'manufacturer', 'unit',
            'cost_price', 'wholesale_price', 'retail_price', 'supplier', 'supplier_name',
            'tags', 'description', 'image_url', 'enable_lot_management', 'is_active',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['enable_lot_management', 'created_at', 'updated_at']

    def validate_sku(self, value):
        return value or None

    def validate(self, attrs):
        for field in ('cost_price', 'wholesale_price', 'retail_price'):
            price = attrs.get(field)
            if price is not None and price < 0:
                raise serializers.ValidationError({field: 'Price cannot be negative'})
        return attrs


class ProductListSerializer(serializers.ModelSerializer):
    """Lighter representation for list screens"""
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    total_stock = serializers.IntegerField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'sku', 'category', 'manufacturer', 'unit', 'retail_price',
            'supplier', 'supplier_name', 'enable_lot_management', 'is_active', 'total_stock'
        ]


class ProductEnrichSerializer(serializers.Serializer):
    apply = serializers.BooleanField(default=False)


class PdfExtractSerializer(serializers.Serializer):
    file = serializers.FileField()
