from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group, Permission

from backend.core.permissions import (
    ROLE_ADMIN, ROLE_MANAGER, ROLE_DOCTOR, ROLE_PHARMACIST,
    ROLE_SALES, ROLE_WAREHOUSE, ROLE_ACCOUNTANT,
)


class Command(BaseCommand):
    help = 'Create the role groups used for access control: Admin, Manager, Doctor, Pharmacist, SalesStaff, WarehouseStaff, Accountant'

    groups_config = [
        {
            'name': ROLE_ADMIN,
            'description': 'Full system access including the admin site',
            'apps': '*',
        },
        {
            'name': ROLE_MANAGER,
            'description': 'Branch manager - every business module, no admin site',
            'apps': ['core', 'locations', 'parties', 'catalog', 'inventory', 'pricing',
                     'purchasing', 'finance', 'pos', 'scheduling', 'medical', 'community'],
        },
        {
            'name': ROLE_DOCTOR,
            'description': 'Doctors - appointments and medical records',
            'apps': ['scheduling', 'medical', 'parties'],
        },
        {
            'name': ROLE_PHARMACIST,
            'description': 'Pharmacists - POS, prescriptions, product lots',
            'apps': ['pos', 'medical', 'catalog', 'inventory', 'parties'],
        },
        {
            'name': ROLE_SALES,
            'description': 'Sales staff - POS only',
            'apps': ['pos', 'parties'],
        },
        {
            'name': ROLE_WAREHOUSE,
            'description': 'Warehouse staff - receiving, picking, stock and lots',
            'apps': ['inventory', 'purchasing', 'catalog'],
        },
        {
            'name': ROLE_ACCOUNTANT,
            'description': 'Accountants and cashiers - funds and transactions',
            'apps': ['finance'],
        },
    ]

    def handle(self, *args, **options):
        created_count = 0
        existing_count = 0

        for group_config in self.groups_config:
            group, created = Group.objects.get_or_create(name=group_config['name'])

            if created:
                self.stdout.write(self.style.SUCCESS(f'Created group: {group_config["name"]}'))
                created_count += 1
            else:
                self.stdout.write(f'  Group already exists: {group_config["name"]}')
                existing_count += 1

            if group_config['apps'] == '*':
                permissions = Permission.objects.all()
            else:
                permissions = Permission.objects.filter(content_type__app_label__in=group_config['apps'])
            group.permissions.set(permissions)
            self.stdout.write(f'  {group_config["name"]}: {permissions.count()} permissions')

        self.stdout.write(self.style.SUCCESS(
            f'\nCompleted: {created_count} groups created, {existing_count} groups already existed'
        ))
