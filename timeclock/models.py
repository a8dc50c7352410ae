from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class TrackedTime(models.Model):
    """
    One stored interval of work (or break) time for a user.

    `end_time` is null while the session is running. For closed rows
    `duration` is always floor((end_time - start_time) / 1s), computed
    server-side.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='tracked_times',
    )
    start_time = models.DateTimeField()
    end_time = models.DateTimeField(null=True, blank=True)
    duration = models.PositiveBigIntegerField(default=0)  # seconds
    is_break = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tracked_time'
        ordering = ['start_time']
        indexes = [
            models.Index(fields=['user', 'start_time'], name='tracked_user_start_idx'),
            models.Index(fields=['user', 'is_break', 'start_time'], name='tracked_user_break_idx'),
        ]

    def __str__(self):
        kind = 'break' if self.is_break else 'work'
        return f"{self.user_id} - {kind} - {self.start_time} -> {self.end_time or 'running'}"

    @property
    def is_running(self):
        return self.end_time is None


class BreakSettings(models.Model):
    DEFAULT_BREAK_DURATION = 30

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='break_settings',
    )
    break_duration = models.PositiveIntegerField(
        default=DEFAULT_BREAK_DURATION,
        validators=[MinValueValidator(0)],
    )  # minutes
    auto_insert = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'break_settings'

    def __str__(self):
        return f"{self.user_id} - {self.break_duration}min - auto={self.auto_insert}"
