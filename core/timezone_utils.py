"""
Timezone utilities for time tracking.

Every "day" in the system (today's entries, the automatic break run, manual
break dates) is the calendar day in the user's own timezone, expressed as an
inclusive window of UTC instants. Default zone: settings.DEFAULT_TIMEZONE.
"""
import zoneinfo
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone as dt_timezone

from django.conf import settings
from django.utils import timezone as dj_timezone
from django.utils.dateparse import parse_date, parse_datetime

# Smallest step the database keeps; the window end is one step before next midnight
WINDOW_RESOLUTION = timedelta(microseconds=1)


def get_default_timezone_name():
    return getattr(settings, 'DEFAULT_TIMEZONE', 'UTC') or 'UTC'


def get_user_timezone(user):
    """Get timezone string for a user, falling back to the configured default."""
    if user is not None and getattr(user, 'timezone', None):
        tz_str = str(user.timezone).strip()
        if tz_str:
            return tz_str
    return get_default_timezone_name()


def resolve_zone(tz_str=None):
    try:
        return zoneinfo.ZoneInfo(tz_str or get_default_timezone_name())
    except (zoneinfo.ZoneInfoNotFoundError, ValueError, OSError):
        return zoneinfo.ZoneInfo('UTC')


def to_utc(dt, tz_str=None):
    """
    Convert a naive wall-clock datetime in the given timezone to aware UTC.
    Aware datetimes are only normalised to UTC.
    """
    if dt is None:
        return None
    if dj_timezone.is_aware(dt):
        return dt.astimezone(dt_timezone.utc)
    return dt.replace(tzinfo=resolve_zone(tz_str)).astimezone(dt_timezone.utc)


def local_date_for(value, tz_str=None):
    """
    Resolve the calendar date a target refers to in the given timezone.

    - None: today in that zone
    - date or 'YYYY-MM-DD': used as-is, it already names a calendar day
    - datetime or ISO datetime string: converted into the zone first
      (naive values are taken as UTC)

    Raises ValueError for strings that are neither.
    """
    if value is None:
        value = dj_timezone.now()
    if isinstance(value, str):
        raw = value.strip()
        parsed_date = parse_date(raw)
        if parsed_date is not None:
            return parsed_date
        parsed = parse_datetime(raw.replace('Z', '+00:00'))
        if parsed is None:
            raise ValueError(f"Invalid date value: {value!r}")
        value = parsed
    if isinstance(value, datetime):
        if dj_timezone.is_naive(value):
            value = dj_timezone.make_aware(value, dt_timezone.utc)
        return value.astimezone(resolve_zone(tz_str)).date()
    if isinstance(value, date):
        return value
    raise ValueError(f"Unsupported date value: {value!r}")


@dataclass(frozen=True)
class DayWindow:
    """Inclusive [start, end] UTC range covering one local calendar day."""
    day: date
    timezone: str
    start: datetime
    end: datetime

    def contains(self, instant):
        return self.start <= instant <= self.end

    def next(self):
        return day_window(self.day + timedelta(days=1), self.timezone)


def day_window(target=None, tz_str=None):
    """
    Compute the UTC window of the calendar day `target` names in `tz_str`.

    The window runs from local midnight to one resolution step before the
    next local midnight, so consecutive days never overlap or leave a gap,
    including across DST transitions (23h and 25h days).
    """
    tz_str = tz_str or get_default_timezone_name()
    zone = resolve_zone(tz_str)
    day = local_date_for(target, tz_str)
    start_local = datetime.combine(day, time.min, tzinfo=zone)
    next_local = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return DayWindow(
        day=day,
        timezone=tz_str,
        start=start_local.astimezone(dt_timezone.utc),
        end=next_local.astimezone(dt_timezone.utc) - WINDOW_RESOLUTION,
    )


def user_day_window(user, target=None):
    return day_window(target, get_user_timezone(user))

