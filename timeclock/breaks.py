"""
Break window arithmetic.

Pure functions: given one closed work interval and a break length, decide
where the break goes and how long each remaining half is. No database access.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from .invariants import duration_seconds

ONE_MILLISECOND = timedelta(milliseconds=1)


def entry_midpoint(start: datetime, end: datetime) -> datetime:
    """Midpoint of [start, end] on a whole-millisecond grid relative to start."""
    span_ms = (end - start) // ONE_MILLISECOND
    return start + ONE_MILLISECOND * (span_ms // 2)


@dataclass(frozen=True)
class BreakPlan:
    entry_start: datetime
    entry_end: datetime
    break_start: datetime
    break_end: datetime
    break_minutes: int

    @property
    def first_half_duration(self) -> int:
        return duration_seconds(self.entry_start, self.break_start)

    @property
    def break_duration_seconds(self) -> int:
        return self.break_minutes * 60

    @property
    def second_half_duration(self) -> int:
        return duration_seconds(self.break_end, self.entry_end)

    @property
    def original_duration(self) -> int:
        return duration_seconds(self.entry_start, self.entry_end)

    def segments(self) -> List[Tuple[datetime, datetime, bool, int]]:
        """(start, end, is_break, duration) for the three replacement rows, in order."""
        return [
            (self.entry_start, self.break_start, False, self.first_half_duration),
            (self.break_start, self.break_end, True, self.break_duration_seconds),
            (self.break_end, self.entry_end, False, self.second_half_duration),
        ]


def plan_break(start: datetime, end: datetime, break_minutes: int) -> Optional[BreakPlan]:
    """
    Center a break of `break_minutes` on the entry's midpoint.

    Returns None when the window would reach outside the entry; the break
    is never clamped or shortened to fit.
    """
    half = timedelta(minutes=break_minutes) / 2
    midpoint = entry_midpoint(start, end)
    break_start = midpoint - half
    break_end = midpoint + half

    if break_start < start or break_end > end:
        return None

    return BreakPlan(
        entry_start=start,
        entry_end=end,
        break_start=break_start,
        break_end=break_end,
        break_minutes=break_minutes,
    )
