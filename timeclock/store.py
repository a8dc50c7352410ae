"""
Collaborators the break engine reads from and writes to.

TimeEntryStore wraps the tracked_time table; BreakSettingsProvider lists
users together with their automatic break configuration.
"""
from dataclasses import dataclass
from typing import List, Tuple

from django.db import transaction
from django.db.models import Q

from core.timezone_utils import get_user_timezone
from .breaks import BreakPlan
from .models import BreakSettings, TrackedTime


class StaleEntryError(Exception):
    """The row changed or vanished between being read and being split."""

    def __init__(self, entry_id):
        super().__init__(f"Tracked time {entry_id} changed before it could be split")
        self.entry_id = entry_id


@dataclass(frozen=True)
class UserBreakConfig:
    user: object
    user_id: object
    user_name: str
    timezone: str
    break_duration_minutes: int
    auto_insert_enabled: bool


class BreakSettingsProvider:
    def list_users_with_settings(self) -> List[UserBreakConfig]:
        settings_qs = (
            BreakSettings.objects
            .select_related('user')
            .filter(user__is_active=True)
            .order_by('user__email')
        )
        return [
            UserBreakConfig(
                user=bs.user,
                user_id=bs.user_id,
                user_name=bs.user.display_name,
                timezone=get_user_timezone(bs.user),
                break_duration_minutes=bs.break_duration,
                auto_insert_enabled=bs.auto_insert,
            )
            for bs in settings_qs
        ]


class TimeEntryStore:
    def find_by_user_and_range(self, user_id, start, end, *, is_break=False, include_open=False) -> List[TrackedTime]:
        """
        Rows of one user starting inside [start, end], ordered by start.

        Closed rows must also end inside the range; running rows are only
        returned with include_open.
        """
        qs = TrackedTime.objects.filter(
            user_id=user_id,
            is_break=is_break,
            start_time__gte=start,
            start_time__lte=end,
        )
        closed_inside = Q(end_time__isnull=False, end_time__lte=end)
        if include_open:
            qs = qs.filter(closed_inside | Q(end_time__isnull=True))
        else:
            qs = qs.filter(closed_inside)
        return list(qs.order_by('start_time', 'pk'))

    def has_break_in_range(self, user_id, start, end) -> bool:
        return TrackedTime.objects.filter(
            user_id=user_id,
            is_break=True,
            start_time__gte=start,
            start_time__lte=end,
        ).exists()

    def create(self, **fields) -> TrackedTime:
        return TrackedTime.objects.create(**fields)

    def delete_if_unchanged(self, entry) -> int:
        """Delete the row only if it still holds the values it was read with."""
        deleted, _ = TrackedTime.objects.filter(
            pk=entry.pk,
            user_id=entry.user_id,
            start_time=entry.start_time,
            end_time=entry.end_time,
            is_break=entry.is_break,
        ).delete()
        return deleted

    def replace_with_split(self, entry, plan: BreakPlan) -> Tuple[TrackedTime, TrackedTime, TrackedTime]:
        """
        Atomically replace `entry` with work / break / work rows.

        Delete runs first so no reader can observe the interval counted
        twice; raises StaleEntryError (and writes nothing) when the row
        no longer matches.
        """
        with transaction.atomic():
            if not self.delete_if_unchanged(entry):
                raise StaleEntryError(entry.pk)
            created = [
                self.create(
                    user_id=entry.user_id,
                    start_time=start,
                    end_time=end,
                    duration=duration,
                    is_break=is_break,
                )
                for start, end, is_break, duration in plan.segments()
            ]
        first, break_entry, second = created
        return first, break_entry, second
