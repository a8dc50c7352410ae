from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('action', models.CharField(choices=[('CREATE', 'Create'), ('UPDATE', 'Update'), ('DELETE', 'Delete'), ('START_TRACKING', 'Start Tracking'), ('STOP_TRACKING', 'Stop Tracking'), ('AUTO_BREAK_ADDED', 'Automatic Break Added'), ('MANUAL_BREAK_ADDED', 'Manual Break Added'), ('BREAK_DELETED', 'Break Deleted'), ('BREAKS_PROCESSED', 'Breaks Processed')], db_index=True, max_length=50)),
                ('entity', models.CharField(choices=[('USER', 'User'), ('TIME_ENTRY', 'Time Entry'), ('BREAK', 'Break'), ('BREAK_SETTINGS', 'Break Settings')], max_length=50)),
                ('entity_id', models.CharField(blank=True, max_length=255, null=True)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, null=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audit_log',
                'ordering': ['-timestamp'],
                'indexes': [models.Index(fields=['user', 'action'], name='audit_log_user_action_idx'), models.Index(fields=['entity', 'entity_id'], name='audit_log_entity_idx')],
            },
        ),
    ]
