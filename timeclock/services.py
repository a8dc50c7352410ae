"""
Automatic break insertion.

Once per day every user with automatic breaks enabled gets a break of their
configured length centered on their single tracked work interval. The split
replaces the interval with work / break / work rows inside one transaction.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Callable, List, Optional, Union

from django.conf import settings
from django.db import transaction

from core.audit import AuditTrailService
from core.models import LogAction, LogEntity
from core.timezone_utils import day_window, local_date_for
from .breaks import plan_break
from .store import BreakSettingsProvider, StaleEntryError, TimeEntryStore, UserBreakConfig

logger = logging.getLogger(__name__)


class SkipReason(str, Enum):
    NO_BREAK_CONFIGURED = 'no_break_configured'
    NO_ENTRIES = 'no_entries'
    MULTIPLE_ENTRIES = 'multiple_entries'
    ENTRY_OPEN = 'entry_open'
    BREAK_EXISTS = 'break_exists'
    BREAK_DOES_NOT_FIT = 'break_does_not_fit'
    ENTRY_CHANGED = 'entry_changed'
    DEADLINE_EXCEEDED = 'deadline_exceeded'
    CANCELLED = 'cancelled'


@dataclass(frozen=True)
class BreakInsertionResult:
    user_id: object
    user_name: str
    break_id: int
    break_start_time: object
    break_end_time: object
    break_duration: int  # minutes

    def to_dict(self):
        return {
            'userId': str(self.user_id),
            'userName': self.user_name,
            'breakId': self.break_id,
            'breakStartTime': self.break_start_time.isoformat(),
            'breakEndTime': self.break_end_time.isoformat(),
            'breakDuration': self.break_duration,
        }


@dataclass(frozen=True)
class SkippedUser:
    user_id: object
    reason: SkipReason

    def to_dict(self):
        return {'userId': str(self.user_id), 'reason': self.reason.value}


@dataclass(frozen=True)
class FailedUser:
    user_id: object
    error: str

    def to_dict(self):
        return {'userId': str(self.user_id), 'error': self.error}


@dataclass
class BreakRunReport:
    results: List[BreakInsertionResult] = field(default_factory=list)
    skipped: List[SkippedUser] = field(default_factory=list)
    failed: List[FailedUser] = field(default_factory=list)

    @property
    def processed_count(self) -> int:
        return len(self.results)

    def to_dict(self):
        return {
            'processedUsers': self.processed_count,
            'breaks': [r.to_dict() for r in self.results],
            'skipped': [s.to_dict() for s in self.skipped],
            'failed': [f.to_dict() for f in self.failed],
        }


class BreakInsertionEngine:
    """
    Splits each eligible user's work interval around an automatic break.

    Users are processed one after another; a failure for one user is
    recorded and the run continues with the next. The deadline and the
    cancellation callback are checked between users, never mid-split.
    """

    def __init__(self, store=None, settings_provider=None, audit=None, clock=None, max_runtime=None):
        self.store = store or TimeEntryStore()
        self.settings_provider = settings_provider or BreakSettingsProvider()
        self.audit = audit or AuditTrailService
        self.clock = clock or time.monotonic
        if max_runtime is None:
            max_runtime = getattr(settings, 'AUTO_BREAKS_MAX_RUNTIME_SECONDS', 120)
        self.max_runtime = max_runtime

    def insert_automatic_breaks(
        self,
        target_date=None,
        *,
        request=None,
        should_cancel: Optional[Callable[[], bool]] = None,
        days_back: int = 0,
    ) -> BreakRunReport:
        """
        Run one batch for `target_date` (None: today in each user's zone).

        `days_back` moves each user's resolved day back in their own zone,
        so days_back=1 with no target is the day that last ended for them.

        Raises ValueError for an unparseable date before anything is read.
        """
        local_date_for(target_date)

        started = self.clock()
        report = BreakRunReport()
        configs = [c for c in self.settings_provider.list_users_with_settings() if c.auto_insert_enabled]
        logger.info(
            "Automatic break run for %s (%d days back): %d enabled users",
            target_date or 'today', days_back, len(configs),
        )

        for index, config in enumerate(configs):
            stop_reason = self._stop_reason(started, should_cancel)
            if stop_reason is not None:
                remaining = configs[index:]
                logger.warning(
                    "Automatic break run stopped (%s), %d users not processed",
                    stop_reason.value, len(remaining),
                )
                report.skipped.extend(SkippedUser(c.user_id, stop_reason) for c in remaining)
                break

            try:
                outcome = self._process_user(config, target_date, days_back, request)
            except Exception as exc:
                logger.exception("Automatic break failed for user %s", config.user_id)
                report.failed.append(FailedUser(config.user_id, str(exc)))
                continue

            if isinstance(outcome, SkippedUser):
                report.skipped.append(outcome)
            else:
                report.results.append(outcome)

        if report.results:
            self.audit.record(
                action=LogAction.BREAKS_PROCESSED,
                entity=LogEntity.BREAK,
                details={
                    'date': str(target_date) if target_date else None,
                    'daysBack': days_back,
                    'processedUsers': report.processed_count,
                    'skipped': len(report.skipped),
                    'failed': len(report.failed),
                },
                request=request,
            )

        logger.info(
            "Automatic break run finished: %d inserted, %d skipped, %d failed",
            report.processed_count, len(report.skipped), len(report.failed),
        )
        return report

    def _stop_reason(self, started, should_cancel) -> Optional[SkipReason]:
        if should_cancel is not None and should_cancel():
            return SkipReason.CANCELLED
        if self.max_runtime and self.clock() - started > self.max_runtime:
            return SkipReason.DEADLINE_EXCEEDED
        return None

    def _skip(self, config: UserBreakConfig, reason: SkipReason, **context) -> SkippedUser:
        logger.info("Skipping automatic break for user %s: %s %s", config.user_id, reason.value, context or '')
        return SkippedUser(config.user_id, reason)

    def _process_user(self, config: UserBreakConfig, target_date, days_back, request) -> Union[BreakInsertionResult, SkippedUser]:
        if config.break_duration_minutes <= 0:
            return self._skip(config, SkipReason.NO_BREAK_CONFIGURED)

        day = local_date_for(target_date, config.timezone) - timedelta(days=days_back)
        window = day_window(day, config.timezone)

        with transaction.atomic():
            entries = self.store.find_by_user_and_range(
                config.user_id, window.start, window.end, is_break=False, include_open=True,
            )
            if not entries:
                return self._skip(config, SkipReason.NO_ENTRIES, day=str(window.day))
            if len(entries) > 1:
                return self._skip(config, SkipReason.MULTIPLE_ENTRIES, count=len(entries))

            entry = entries[0]
            if entry.end_time is None:
                return self._skip(config, SkipReason.ENTRY_OPEN, entry=entry.pk)

            if self.store.has_break_in_range(config.user_id, window.start, window.end):
                return self._skip(config, SkipReason.BREAK_EXISTS, day=str(window.day))

            plan = plan_break(entry.start_time, entry.end_time, config.break_duration_minutes)
            if plan is None:
                return self._skip(
                    config, SkipReason.BREAK_DOES_NOT_FIT,
                    entry=entry.pk, minutes=config.break_duration_minutes,
                )

            try:
                _, break_entry, _ = self.store.replace_with_split(entry, plan)
            except StaleEntryError:
                return self._skip(config, SkipReason.ENTRY_CHANGED, entry=entry.pk)

            self.audit.record(
                action=LogAction.AUTO_BREAK_ADDED,
                entity=LogEntity.BREAK,
                user=config.user,
                entity_id=break_entry.pk,
                details={
                    'breakDuration': config.break_duration_minutes,
                    'breakStartTime': plan.break_start,
                    'breakEndTime': plan.break_end,
                    'originalEntryId': entry.pk,
                    'timezone': config.timezone,
                },
                request=request,
            )

        logger.info(
            "Inserted %d minute break for user %s at %s",
            config.break_duration_minutes, config.user_id, plan.break_start.isoformat(),
        )
        return BreakInsertionResult(
            user_id=config.user_id,
            user_name=config.user_name,
            break_id=break_entry.pk,
            break_start_time=plan.break_start,
            break_end_time=plan.break_end,
            break_duration=config.break_duration_minutes,
        )
