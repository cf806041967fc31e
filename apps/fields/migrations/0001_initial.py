import django.db.models.deletion
from django.db import migrations, models


ENTITY_TYPE_CHOICES = [
    ('CUSTOMER', 'Customer'),
    ('PROJECT', 'Project'),
    ('TASK', 'Task'),
    ('INVOICE', 'Invoice'),
]

FIELD_TYPE_CHOICES = [
    ('TEXT', 'Text'),
    ('NUMBER', 'Number'),
    ('DATE', 'Date'),
    ('BOOLEAN', 'Yes / No'),
    ('DROPDOWN', 'Dropdown'),
    ('CURRENCY', 'Currency'),
    ('URL', 'Web address'),
    ('EMAIL', 'Email address'),
    ('PHONE', 'Phone number'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='FieldGroup',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('org_id', models.CharField(db_index=True, max_length=64)),
                ('entity_type', models.CharField(choices=ENTITY_TYPE_CHOICES, default='CUSTOMER', max_length=20)),
                ('name', models.CharField(max_length=255)),
                ('slug', models.SlugField(max_length=100)),
                ('sort_order', models.IntegerField(default=0)),
                ('active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'field_groups',
                'ordering': ['sort_order', 'id'],
            },
        ),
        migrations.CreateModel(
            name='FieldDefinition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('org_id', models.CharField(db_index=True, max_length=64)),
                ('entity_type', models.CharField(choices=ENTITY_TYPE_CHOICES, default='CUSTOMER', max_length=20)),
                ('name', models.CharField(max_length=255)),
                ('slug', models.CharField(max_length=100)),
                ('description', models.TextField(blank=True, default='')),
                ('field_type', models.CharField(choices=FIELD_TYPE_CHOICES, max_length=20)),
                ('required', models.BooleanField(default=False)),
                ('required_for_contexts', models.JSONField(blank=True, default=list)),
                ('options', models.JSONField(blank=True, default=list, help_text='[{value, label}] for dropdown fields.')),
                ('validation', models.JSONField(blank=True, default=dict, help_text='min, max, minLength, maxLength, pattern.')),
                ('visibility_condition', models.JSONField(blank=True, null=True)),
                ('sort_order', models.IntegerField(default=0)),
                ('active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'field_definitions',
                'ordering': ['sort_order', 'id'],
            },
        ),
        migrations.CreateModel(
            name='FieldGroupMember',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sort_order', models.IntegerField(default=0)),
                ('field', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='fields.fielddefinition')),
                ('group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='members', to='fields.fieldgroup')),
            ],
            options={
                'db_table': 'field_group_members',
                'ordering': ['sort_order', 'id'],
            },
        ),
        migrations.AddConstraint(
            model_name='fieldgroup',
            constraint=models.UniqueConstraint(fields=('org_id', 'slug'), name='uniq_field_group_slug_per_org'),
        ),
        migrations.AddConstraint(
            model_name='fielddefinition',
            constraint=models.UniqueConstraint(fields=('org_id', 'entity_type', 'slug'), name='uniq_field_slug_per_org_entity'),
        ),
        migrations.AddConstraint(
            model_name='fieldgroupmember',
            constraint=models.UniqueConstraint(fields=('group', 'field'), name='uniq_field_per_group'),
        ),
    ]
