"""
Daily reset timer.

A single notification keyed ``dailyTaskReset`` fires at the daily reset
boundary, applies the configured delta to the days remaining counter and
reschedules itself for the next boundary after *now*. Resuming after a gap
therefore delivers one overdue reset, never a backlog.

How many deltas that one delivery applies is a policy:
    once  - one delta per delivery, however many boundaries were missed
    each  - one delta per boundary passed since the stale firing instant
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from .. import DAYS_REMAINING
from ..logging_config import get_logger
from ..storage import PersistentState
from .instants import DEFAULT_RESET_HOUR, Duration, compare, format_instant, next_daily_reset_after, now, shift
from .notifications import NotificationStore
from .payloads import DailyResetPayload, Notification


logger = get_logger(__name__)

DAILY_RESET_KEY = "dailyTaskReset"


class DailyResetScheduler:
    def __init__(
        self,
        store: NotificationStore,
        state: PersistentState,
        clock: Callable[[], datetime] = now,
        delta: int = -1,
        reset_hour: int = DEFAULT_RESET_HOUR,
        missed_days_policy: str = "once",
    ):
        self.store = store
        self.state = state
        self.clock = clock
        self.delta = delta
        self.reset_hour = reset_hour
        self.missed_days_policy = missed_days_policy

    def reschedule(self, from_instant: datetime | None = None) -> Notification:
        """Schedule the next reset after ``from_instant`` (default: now)."""
        base = from_instant or self.clock()
        return self.store.schedule_at(
            DAILY_RESET_KEY,
            next_daily_reset_after(base, self.reset_hour),
            DailyResetPayload(),
        )

    def ensure_scheduled(self) -> Notification:
        """Seed the timer if it is not pending, e.g. on the very first run."""
        pending = self.store.get_notification(DAILY_RESET_KEY)
        if pending is not None:
            return pending
        notification = self.reschedule()
        logger.info(f"Daily reset scheduled for {format_instant(notification.fire_at)}")
        return notification

    def boundaries_passed(self, fire_at: datetime, current: datetime) -> int:
        """Reset boundaries in [fire_at, current], counting the delivered one."""
        count = 1
        boundary = next_daily_reset_after(fire_at, self.reset_hour)
        while compare(boundary, current) <= 0:
            count += 1
            boundary = shift(boundary, Duration(days=1))
        return count

    def on_fire(self, notification: Notification) -> int:
        """Apply the delta and re-anchor to the next boundary. Returns the new counter value."""
        current = self.clock()

        times = 1
        if self.missed_days_policy == "each":
            times = self.boundaries_passed(notification.fire_at, current)

        with self.state.atomic():
            value = self.state.add_to_counter(DAYS_REMAINING, self.delta * times)
            upcoming = self.reschedule()

        logger.info(
            f"Daily reset applied {self.delta * times} ({times}x), days remaining {value}, "
            f"next reset {format_instant(upcoming.fire_at)}"
        )
        return value


__all__ = ["DAILY_RESET_KEY", "DailyResetScheduler"]
