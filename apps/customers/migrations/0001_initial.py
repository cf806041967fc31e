import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


LIFECYCLE_STATUS_CHOICES = [
    ('PROSPECT', 'Prospect'),
    ('ONBOARDING', 'Onboarding'),
    ('ACTIVE', 'Active'),
    ('DORMANT', 'Dormant'),
    ('OFFBOARDING', 'Offboarding'),
    ('OFFBOARDED', 'Offboarded'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Customer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('org_id', models.CharField(db_index=True, max_length=64)),
                ('_name_encrypted', models.BinaryField(default=b'')),
                ('_email_encrypted', models.BinaryField(blank=True, default=b'')),
                ('_phone_encrypted', models.BinaryField(blank=True, default=b'')),
                ('_id_number_encrypted', models.BinaryField(blank=True, default=b'')),
                ('lifecycle_status', models.CharField(choices=LIFECYCLE_STATUS_CHOICES, default='PROSPECT', max_length=20)),
                ('lifecycle_status_changed_at', models.DateTimeField(blank=True, null=True)),
                ('lifecycle_status_changed_by', models.IntegerField(blank=True, null=True)),
                ('offboarded_at', models.DateTimeField(blank=True, null=True)),
                ('custom_fields', models.JSONField(blank=True, default=dict)),
                ('last_activity_at', models.DateTimeField(blank=True, null=True)),
                ('version', models.PositiveIntegerField(default=0)),
                ('is_anonymised', models.BooleanField(default=False, help_text='True after PII has been stripped by the deletion workflow.')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'customers',
                'ordering': ['-updated_at'],
                'indexes': [models.Index(fields=['org_id', 'lifecycle_status'], name='customers_org_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='LifecycleTransition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('org_id', models.CharField(db_index=True, max_length=64)),
                ('from_status', models.CharField(choices=LIFECYCLE_STATUS_CHOICES, max_length=20)),
                ('to_status', models.CharField(choices=LIFECYCLE_STATUS_CHOICES, max_length=20)),
                ('changed_by', models.IntegerField(blank=True, null=True)),
                ('changed_by_display', models.CharField(default='', max_length=255)),
                ('changed_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('notes', models.TextField(blank=True, default='')),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lifecycle_transitions', to='customers.customer')),
            ],
            options={
                'db_table': 'customer_lifecycle_transitions',
                'ordering': ['changed_at', 'id'],
                'indexes': [models.Index(fields=['customer', 'changed_at'], name='lifecycle_customer_at_idx')],
            },
        ),
        migrations.CreateModel(
            name='PortalContact',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('org_id', models.CharField(db_index=True, max_length=64)),
                ('display_name', models.CharField(max_length=255)),
                ('_email_encrypted', models.BinaryField(blank=True, default=b'')),
                ('role', models.CharField(blank=True, default='general', max_length=50)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='portal_contacts', to='customers.customer')),
            ],
            options={
                'db_table': 'portal_contacts',
                'ordering': ['created_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='DeletionRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('org_id', models.CharField(db_index=True, max_length=64)),
                ('customer_pk', models.BigIntegerField(help_text='Original Customer PK for audit cross-reference.')),
                ('request_code', models.CharField(blank=True, default='', help_text='Auto-generated reference code, e.g. DR-2026-001.', max_length=20, unique=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('EXECUTED', 'Executed')], default='PENDING', max_length=20)),
                ('reason', models.TextField(blank=True, default='', help_text='Do not include customer names.')),
                ('requested_at', models.DateTimeField(auto_now_add=True)),
                ('requested_by', models.IntegerField(blank=True, null=True)),
                ('requested_by_display', models.CharField(default='', max_length=255)),
                ('executed_at', models.DateTimeField(blank=True, null=True)),
                ('executed_by', models.IntegerField(blank=True, null=True)),
                ('executed_by_display', models.CharField(default='', max_length=255)),
                ('summary', models.JSONField(blank=True, default=dict)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deletion_requests', to='customers.customer')),
            ],
            options={
                'db_table': 'deletion_requests',
                'ordering': ['-requested_at'],
            },
        ),
    ]
