from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from django.contrib.auth.models import Group
from .models import User, Setting, AuditLog
from .permissions import ALL_ROLES


class UserSerializer(serializers.ModelSerializer):
    groups = serializers.SlugRelatedField(many=True, read_only=True, slug_field='name')
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'first_name', 'last_name', 'full_name', 'phone',
            'avatar_url', 'date_of_birth', 'citizen_id', 'warehouse', 'warehouse_name',
            'is_active', 'is_approved', 'is_staff', 'is_superuser', 'groups',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['is_approved', 'is_superuser', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'full_name', 'phone']

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        is_approved = self.context.get('is_approved', False)
        user = User.objects.create(**validated_data, is_active=True, is_approved=is_approved)
        user.set_password(password)
        user.save()
        return user


class UserRolesSerializer(serializers.Serializer):
    roles = serializers.ListField(child=serializers.ChoiceField(choices=ALL_ROLES), allow_empty=True)

    def save(self, user):
        groups = [Group.objects.get_or_create(name=name)[0] for name in self.validated_data['roles']]
        user.groups.set(groups)
        return user


class UserInviteSerializer(serializers.Serializer):
    email = serializers.EmailField()
    full_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    roles = serializers.ListField(child=serializers.ChoiceField(choices=ALL_ROLES), required=False, default=list)
    warehouse = serializers.IntegerField(required=False, allow_null=True)


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']
