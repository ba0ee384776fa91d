from rest_framework import serializers
from .models import Warehouse


class WarehouseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Warehouse
        fields = ['id', 'name', 'code', 'address', 'phone', 'email', 'is_b2b', 'is_active', 'created_at', 'updated_at']

    def validate(self, attrs):
        is_b2b = attrs.get('is_b2b', getattr(self.instance, 'is_b2b', False))
        is_active = attrs.get('is_active', getattr(self.instance, 'is_active', True))
        if is_b2b and is_active:
            others = Warehouse.objects.filter(is_b2b=True, is_active=True)
            if self.instance:
                others = others.exclude(pk=self.instance.pk)
            if others.exists():
                raise serializers.ValidationError({'is_b2b': 'Another active B2B warehouse already exists'})
        return attrs
