from rest_framework import serializers
from backend.catalog.models import Product
from .engine import combo_components, combo_original_price
from .models import Promotion, Voucher, Combo, ComboItem


class PromotionSerializer(serializers.ModelSerializer):
    voucher_count = serializers.IntegerField(source='vouchers.count', read_only=True)

    class Meta:
        model = Promotion
        fields = [
            'id', 'name', 'description', 'type', 'value', 'conditions', 'start_date', 'end_date',
            'is_active', 'voucher_count', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def validate_value(self, value):
        if value < 0:
            raise serializers.ValidationError('Value cannot be negative')
        return value

    def validate_conditions(self, value):
        if value in (None, ''):
            return {}
        if not isinstance(value, dict):
            raise serializers.ValidationError('Conditions must be an object')
        for key in ('manufacturers', 'product_categories'):
            entry = value.get(key)
            if entry is not None and not isinstance(entry, (str, list)):
                raise serializers.ValidationError({key: 'Must be a string or a list of strings'})
        min_order_value = value.get('min_order_value')
        if min_order_value is not None:
            try:
                if float(min_order_value) < 0:
                    raise serializers.ValidationError({'min_order_value': 'Cannot be negative'})
            except (TypeError, ValueError):
                raise serializers.ValidationError({'min_order_value': 'Must be a number'})
        return value

    def validate(self, attrs):
        promo_type = attrs.get('type', getattr(self.instance, 'type', None))
        value = attrs.get('value', getattr(self.instance, 'value', None))
        if promo_type == 'percentage' and value is not None and value > 100:
            raise serializers.ValidationError({'value': 'Percentage cannot exceed 100'})
        start_date = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end_date = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({'end_date': 'End date must be after start date'})
        return attrs


class VoucherSerializer(serializers.ModelSerializer):
    promotion_name = serializers.CharField(source='promotion.name', read_only=True)
    remaining_uses = serializers.IntegerField(read_only=True)

    class Meta:
        model = Voucher
        fields = [
            'id', 'promotion', 'promotion_name', 'code', 'usage_limit', 'times_used',
            'remaining_uses', 'is_active', 'last_used_at', 'created_at'
        ]
        read_only_fields = ['times_used', 'last_used_at', 'created_at']

    def validate_code(self, value):
        return value.strip().upper()


class VoucherBatchSerializer(serializers.Serializer):
    promotion = serializers.PrimaryKeyRelatedField(queryset=Promotion.objects.all())
    count = serializers.IntegerField(min_value=1, max_value=1000)
    prefix = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    usage_limit = serializers.IntegerField(min_value=0, default=1)


class QuoteItemSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class CartComboSerializer(serializers.Serializer):
    combo = serializers.PrimaryKeyRelatedField(queryset=Combo.objects.all())
    quantity = serializers.IntegerField(min_value=1)


class QuoteSerializer(serializers.Serializer):
    items = QuoteItemSerializer(many=True, required=False, default=list)
    combos = CartComboSerializer(many=True, required=False, default=list)
    voucher_code = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get('items') and not attrs.get('combos'):
            raise serializers.ValidationError({'items': 'At least one item is required'})
        return attrs


class ComboItemSerializer(serializers.ModelSerializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    retail_price = serializers.DecimalField(source='product.retail_price', max_digits=14, decimal_places=2,
                                            read_only=True)
    quantity = serializers.IntegerField(min_value=1, default=1)

    class Meta:
        model = ComboItem
        fields = ['id', 'product', 'product_name', 'product_sku', 'retail_price', 'quantity']


class ComboSerializer(serializers.ModelSerializer):
    items = ComboItemSerializer(many=True, required=False)
    original_price = serializers.SerializerMethodField()

    class Meta:
        model = Combo
        fields = [
            'id', 'name', 'description', 'combo_price', 'original_price', 'image_url', 'is_active',
            'items', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_by', 'created_at', 'updated_at']

    def get_original_price(self, obj):
        return combo_original_price(combo_components(obj))

    def validate_combo_price(self, value):
        if value < 0:
            raise serializers.ValidationError('Combo price cannot be negative')
        return value

    def validate(self, attrs):
        if self.instance is None and not attrs.get('items'):
            raise serializers.ValidationError({'items': 'A combo needs at least one product'})
        return attrs


class ComboDetectSerializer(serializers.Serializer):
    items = QuoteItemSerializer(many=True)
