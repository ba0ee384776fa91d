# Seeds the built-in appointment statuses

from django.db import migrations

DEFAULT_STATUSES = [
    ('SCHEDULED', 'Đã đặt lịch', '#1890ff'),
    ('CONFIRMED', 'Đã xác nhận', '#52c41a'),
    ('CHECKED_IN', 'Đã check-in', '#faad14'),
    ('IN_PROGRESS', 'Đang khám', '#722ed1'),
    ('COMPLETED', 'Hoàn thành', '#52c41a'),
    ('CANCELLED', 'Đã hủy', '#ff4d4f'),
    ('NO_SHOW', 'Không đến', '#8c8c8c'),
]


def create_default_statuses(apps, schema_editor):
    AppointmentStatus = apps.get_model('scheduling', 'AppointmentStatus')
    for code, name, color in DEFAULT_STATUSES:
        AppointmentStatus.objects.get_or_create(code=code, defaults={'name': name, 'color': color})


class Migration(migrations.Migration):

    dependencies = [
        ('scheduling', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_default_statuses, migrations.RunPython.noop),
    ]
