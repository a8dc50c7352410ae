"""
Rules every writer of tracked time must respect.

Shared by the automatic break engine and the manual/admin endpoints so the
two can never leave the ledger in states the other would reject.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from core.exceptions import EntryOutsideEditWindow, InvalidTimeRange, OverlappingTimeEntry
from .models import TrackedTime

logger = logging.getLogger(__name__)

ONE_SECOND = timedelta(seconds=1)


def duration_seconds(start, end):
    """Whole seconds between two instants, floored."""
    return (end - start) // ONE_SECOND


def edit_window_days():
    return getattr(settings, 'TIME_ENTRY_EDIT_WINDOW_DAYS', 7)


def edit_window_start(now=None):
    now = now or timezone.now()
    return now - timedelta(days=edit_window_days())


def is_within_edit_window(instant, now=None):
    return instant >= edit_window_start(now)


def validate_time_range(start, end, *, now=None, enforce_edit_window=False):
    """
    Validate a proposed closed interval; raises InvalidTimeRange (400).

    end must be strictly after start, neither may lie in the future, and
    with enforce_edit_window the start must fall inside the trailing
    self-service window.
    """
    if start is None or end is None:
        raise InvalidTimeRange('Start time and end time are required')
    if end <= start:
        raise InvalidTimeRange('End time must be after start time')

    now = now or timezone.now()
    if start > now or end > now:
        raise InvalidTimeRange('Time entries cannot be in the future')

    if enforce_edit_window and not is_within_edit_window(start, now):
        raise InvalidTimeRange(
            f'Time entries can only be set within the last {edit_window_days()} days'
        )


def ensure_entry_editable(entry, now=None):
    """Self-service edits only reach entries that started inside the window."""
    if not is_within_edit_window(entry.start_time, now):
        raise EntryOutsideEditWindow(
            f'Time entries can only be modified within the last {edit_window_days()} days'
        )


def ensure_no_overlap(user_id, start, end, exclude_pk=None):
    """Working time of one user must not overlap; breaks are not considered."""
    clashes = TrackedTime.objects.filter(
        user_id=user_id,
        is_break=False,
        start_time__lt=end,
    ).filter(
        Q(end_time__isnull=True) | Q(end_time__gt=start)
    )
    if exclude_pk is not None:
        clashes = clashes.exclude(pk=exclude_pk)
    clash = clashes.order_by('start_time').first()
    if clash is not None:
        raise OverlappingTimeEntry(
            f'Time entry overlaps existing entry {clash.pk}'
        )


def reconcile_duration(start, end, client_duration=None):
    """
    Server-side duration for a closed interval.

    A client-supplied value is never stored; a disagreeing one is logged.
    """
    computed = duration_seconds(start, end)
    if client_duration is not None and int(client_duration) != computed:
        logger.warning(
            "Ignoring client duration %s for %s - %s, recomputed %s",
            client_duration, start.isoformat(), end.isoformat(), computed,
        )
    return computed
