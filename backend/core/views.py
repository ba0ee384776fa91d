from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from django.db.models import Q
from .models import Setting, AuditLog
from .serializers import (
    UserSerializer, UserCreateSerializer, UserRolesSerializer, UserInviteSerializer,
    SettingSerializer, AuditLogSerializer
)
from .permissions import IsManager, user_roles, has_any_role, ROLE_MANAGER, ROLE_ACCOUNTANT, ROLE_WAREHOUSE, ROLE_DOCTOR, ROLE_PHARMACIST, ROLE_SALES
from .edge_functions import invoke_edge_function
from .exceptions import EdgeFunctionError, edge_error_response
from .utils import create_audit_log, paginate_queryset

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        if not self.user.is_approved and not self.user.is_superuser:
            raise AuthenticationFailed('User account is awaiting approval.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['groups'] = list(user.groups.values_list('name', flat=True))
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Self-registration; the account stays unapproved until a manager approves it"""
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        return Response({
            'user': UserSerializer(user).data,
            'message': 'Registration received. Your account is awaiting approval.',
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsManager])
def user_list_create(request):
    """List users (filter by approval/search) or create an approved user"""
    if request.method == 'GET':
        queryset = User.objects.all().prefetch_related('groups').select_related('warehouse').order_by('username')
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(username__icontains=search) |
                Q(full_name__icontains=search) |
                Q(email__icontains=search) |
                Q(phone__icontains=search)
            )
        approved = request.query_params.get('is_approved')
        if approved in ('true', 'false'):
            queryset = queryset.filter(is_approved=(approved == 'true'))
        return Response(paginate_queryset(queryset, request, UserSerializer, default_limit=50))
    else:
        serializer = UserCreateSerializer(data=request.data, context={'is_approved': True})
        if serializer.is_valid():
            user = serializer.save()
            create_audit_log(request=request, action='create', model_name='User',
                             object_id=user.id, object_name=user.username)
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsManager])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='User',
                         object_id=user.id, object_name=user.username)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManager])
def user_approve(request, pk):
    """Approve a pending registration"""
    user = get_object_or_404(User, pk=pk)
    if user.is_approved:
        return Response({'error': 'User is already approved'}, status=status.HTTP_400_BAD_REQUEST)
    user.is_approved = True
    user.is_active = True
    user.save(update_fields=['is_approved', 'is_active', 'updated_at'])
    create_audit_log(request=request, action='user_approve', model_name='User',
                     object_id=user.id, object_name=user.username)
    return Response(UserSerializer(user).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsManager])
def user_roles_update(request, pk):
    """Replace the role (group) membership of a user"""
    user = get_object_or_404(User, pk=pk)
    serializer = UserRolesSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    old_roles = sorted(user_roles(user))
    serializer.save(user)
    create_audit_log(request=request, action='user_roles', model_name='User',
                     object_id=user.id, object_name=user.username,
                     changes={'old_roles': old_roles, 'new_roles': sorted(serializer.validated_data['roles'])})
    return Response(UserSerializer(user).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManager])
def user_invite(request):
    """Send an invitation email through the invite-user function"""
    serializer = UserInviteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    if User.objects.filter(email__iexact=serializer.validated_data['email']).exists():
        return Response({'error': 'A user with this email already exists'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        result = invoke_edge_function('invite-user', {
            'email': serializer.validated_data['email'],
            'full_name': serializer.validated_data.get('full_name', ''),
            'roles': serializer.validated_data['roles'],
            'warehouse_id': serializer.validated_data.get('warehouse'),
            'invited_by': request.user.username,
        })
    except EdgeFunctionError as e:
        return edge_error_response(e)
    create_audit_log(request=request, action='user_invite', model_name='User',
                     object_id=serializer.validated_data['email'],
                     changes={'roles': serializer.validated_data['roles']})
    return Response({'message': 'Invitation sent', 'result': result}, status=status.HTTP_202_ACCEPTED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with roles, permissions and module access flags"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['permissions'] = sorted(user.get_all_permissions())

    is_admin = has_any_role(user)
    user_data['is_admin'] = is_admin
    user_data['can_access_pos'] = has_any_role(user, ROLE_SALES, ROLE_PHARMACIST, ROLE_MANAGER)
    user_data['can_access_finance'] = has_any_role(user, ROLE_ACCOUNTANT, ROLE_MANAGER)
    user_data['can_access_warehouse'] = has_any_role(user, ROLE_WAREHOUSE, ROLE_MANAGER)
    user_data['can_access_medical'] = has_any_role(user, ROLE_DOCTOR, ROLE_PHARMACIST, ROLE_MANAGER)
    user_data['can_manage_users'] = has_any_role(user, ROLE_MANAGER)
    return Response(user_data)


# Setting views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsManager])
def setting_list_create(request):
    """List all settings or create a new setting"""
    if request.method == 'GET':
        settings = Setting.objects.all().order_by('key')
        serializer = SettingSerializer(settings, many=True)
        return Response(serializer.data)
    else:
        serializer = SettingSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsManager])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    setting = get_object_or_404(Setting, pk=pk)

    if request.method == 'GET':
        serializer = SettingSerializer(setting)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering; non-managers only see their own entries"""
    queryset = AuditLog.objects.select_related('user')

    if not has_any_role(request.user, ROLE_MANAGER):
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    reference = request.query_params.get('reference', None)
    if reference:
        queryset = queryset.filter(object_reference__icontains=reference)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')
    return Response(paginate_queryset(queryset, request, AuditLogSerializer, default_limit=50))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if not has_any_role(request.user, ROLE_MANAGER) and audit_log.user != request.user:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)
