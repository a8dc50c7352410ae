from django.conf import settings
from django.db import models
from django.utils import timezone as django_timezone


class LogAction(models.TextChoices):
    """Types of audit actions"""
    CREATE = 'CREATE', 'Create'
    UPDATE = 'UPDATE', 'Update'
    DELETE = 'DELETE', 'Delete'
    START_TRACKING = 'START_TRACKING', 'Start Tracking'
    STOP_TRACKING = 'STOP_TRACKING', 'Stop Tracking'
    AUTO_BREAK_ADDED = 'AUTO_BREAK_ADDED', 'Automatic Break Added'
    MANUAL_BREAK_ADDED = 'MANUAL_BREAK_ADDED', 'Manual Break Added'
    BREAK_DELETED = 'BREAK_DELETED', 'Break Deleted'
    BREAKS_PROCESSED = 'BREAKS_PROCESSED', 'Breaks Processed'


class LogEntity(models.TextChoices):
    """Entities an audit record can refer to"""
    USER = 'USER', 'User'
    TIME_ENTRY = 'TIME_ENTRY', 'Time Entry'
    BREAK = 'BREAK', 'Break'
    BREAK_SETTINGS = 'BREAK_SETTINGS', 'Break Settings'


class AuditLog(models.Model):
    """Append-only audit trail of every time tracking mutation"""

    timestamp = models.DateTimeField(default=django_timezone.now, db_index=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
    )
    action = models.CharField(max_length=50, choices=LogAction.choices, db_index=True)
    entity = models.CharField(max_length=50, choices=LogEntity.choices)
    entity_id = models.CharField(max_length=255, null=True, blank=True)
    details = models.JSONField(default=dict, blank=True)

    # Request information
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(null=True, blank=True)

    class Meta:
        db_table = 'audit_log'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['user', 'action'], name='audit_log_user_action_idx'),
            models.Index(fields=['entity', 'entity_id'], name='audit_log_entity_idx'),
        ]

    def __str__(self):
        return f"{self.timestamp} - {self.user} - {self.action} {self.entity}:{self.entity_id}"
