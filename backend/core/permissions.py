"""Role-based permission classes backed by Django auth groups"""
from rest_framework.permissions import BasePermission

ROLE_ADMIN = 'Admin'
ROLE_MANAGER = 'Manager'
ROLE_DOCTOR = 'Doctor'
ROLE_PHARMACIST = 'Pharmacist'
ROLE_SALES = 'SalesStaff'
ROLE_WAREHOUSE = 'WarehouseStaff'
ROLE_ACCOUNTANT = 'Accountant'

ALL_ROLES = [
    ROLE_ADMIN, ROLE_MANAGER, ROLE_DOCTOR, ROLE_PHARMACIST,
    ROLE_SALES, ROLE_WAREHOUSE, ROLE_ACCOUNTANT,
]


def user_roles(user):
    if not user or not user.is_authenticated:
        return set()
    return set(user.groups.values_list('name', flat=True))


def has_any_role(user, *roles):
    """Superusers and the Admin group pass every role check"""
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    names = user_roles(user)
    return ROLE_ADMIN in names or bool(names.intersection(roles))


class HasRole(BasePermission):
    """Base class; subclasses set `roles`"""
    roles = ()

    def has_permission(self, request, view):
        return has_any_role(request.user, *self.roles)


class IsManager(HasRole):
    roles = (ROLE_MANAGER,)


class IsAccountant(HasRole):
    roles = (ROLE_ACCOUNTANT, ROLE_MANAGER)


class IsWarehouseStaff(HasRole):
    roles = (ROLE_WAREHOUSE, ROLE_MANAGER)


class IsClinicalStaff(HasRole):
    roles = (ROLE_DOCTOR, ROLE_PHARMACIST, ROLE_MANAGER)


class IsSalesStaff(HasRole):
    roles = (ROLE_SALES, ROLE_PHARMACIST, ROLE_MANAGER)
