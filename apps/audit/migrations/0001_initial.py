from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event_timestamp', models.DateTimeField()),
                ('org_id', models.CharField(blank=True, db_index=True, default='', max_length=64)),
                ('user_id', models.IntegerField(blank=True, null=True)),
                ('user_display', models.CharField(default='', max_length=255)),
                ('action', models.CharField(choices=[
                    ('create', 'Created'),
                    ('update', 'Updated'),
                    ('deactivate', 'Deactivated'),
                    ('transition', 'Lifecycle transition'),
                    ('deletion_requested', 'Deletion requested'),
                    ('deletion_executed', 'Deletion executed'),
                    ('access_denied', 'Access denied'),
                ], max_length=50)),
                ('resource_type', models.CharField(max_length=100)),
                ('resource_id', models.BigIntegerField(blank=True, null=True)),
                ('old_values', models.JSONField(blank=True, null=True)),
                ('new_values', models.JSONField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, null=True)),
            ],
            options={
                'db_table': 'audit_log',
                'ordering': ['-event_timestamp'],
            },
        ),
    ]
