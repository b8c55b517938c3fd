"""
Tool: Task Lifecycle Engine
Purpose: Start, observe and cancel time-driven checklist tasks

A task has no record of its own. Once started it exists only as up to two
notifications:

    <id>TaskCompletion  fires when the task completes (days are subtracted)
    <id>TaskCooldown    fires at the next daily reset (task can start again)

The phase is derived from which of the two is pending:

    neither                 idle
    completion pending      completing
    only cooldown pending   cooldown

Usage:
    from checklist.tasks.lifecycle import TaskEngine

    engine = TaskEngine(store, state)
    engine.start("stretch", subtracted_days=1, completion_duration=Duration(minutes=15), once_per_day=True)
    engine.phase("stretch")         # TaskPhase.COMPLETING
    engine.cancel_if_possible("stretch")
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any, Union

from ..automation.instants import (
    DEFAULT_RESET_HOUR,
    Duration,
    coerce_duration,
    format_instant,
    next_daily_reset_after,
    now,
    shift,
)
from ..automation.notifications import NotificationStore
from ..automation.payloads import TaskCompletionPayload, TaskCooldownPayload, TaskSnapshot
from ..errors import TaskNotIdleError
from ..logging_config import get_logger
from ..storage import PersistentState
from . import TaskPhase


logger = get_logger(__name__)

# None/False: immediately, True: at the next daily reset, otherwise after the duration
CompletionDuration = Union[Duration, dict[str, Any], bool, None]


def completion_key(task_id: str) -> str:
    return f"{task_id}TaskCompletion"


def cooldown_key(task_id: str) -> str:
    return f"{task_id}TaskCooldown"


def effective_once_per_day(completion_duration: CompletionDuration, once_per_day: bool) -> bool:
    """Only duration-based tasks may skip the cooldown."""
    if isinstance(completion_duration, (Duration, dict)):
        return bool(once_per_day)
    return True


class TaskEngine:
    """Derives task phases from notifications and schedules them."""

    def __init__(
        self,
        store: NotificationStore,
        state: PersistentState,
        clock: Callable[[], datetime] = now,
        reset_hour: int = DEFAULT_RESET_HOUR,
    ):
        self.store = store
        self.state = state
        self.clock = clock
        self.reset_hour = reset_hour

    # ── Phase predicates ─────────────────────────────────────────────────────

    def is_completing(self, task_id: str) -> bool:
        return self.store.get(completion_key(task_id)) is not None

    def is_on_cooldown(self, task_id: str) -> bool:
        return self.store.get(cooldown_key(task_id)) is not None

    def has_been_completed(self, task_id: str) -> bool:
        """Finished and waiting out its cooldown, i.e. done for today."""
        return not self.is_completing(task_id) and self.is_on_cooldown(task_id)

    def phase(self, task_id: str) -> TaskPhase:
        if self.is_completing(task_id):
            return TaskPhase.COMPLETING
        if self.is_on_cooldown(task_id):
            return TaskPhase.COOLDOWN
        return TaskPhase.IDLE

    def snapshot(self, task_id: str) -> TaskSnapshot | None:
        """The live snapshot, taken from whichever notification is pending."""
        for key in (completion_key(task_id), cooldown_key(task_id)):
            payload = self.store.get(key)
            if payload is not None:
                return payload.task
        return None

    # ── Transitions ──────────────────────────────────────────────────────────

    def start(
        self,
        task_id: str,
        subtracted_days: int,
        completion_duration: CompletionDuration = None,
        once_per_day: bool = False,
    ) -> TaskSnapshot:
        """
        Start an idle task.

        Args:
            task_id: Unique task id
            subtracted_days: Days taken off the counter once the task completes
            completion_duration: None/False to complete now, True to complete at
                the next daily reset, or a Duration (or dict) to complete after it
            once_per_day: For duration-based tasks, whether a cooldown until the
                next reset follows completion; forced on for the other forms

        Returns:
            The snapshot carried by the scheduled notifications

        Raises:
            TaskNotIdleError: the task is completing or cooling down
        """
        current = self.phase(task_id)
        if current is not TaskPhase.IDLE:
            raise TaskNotIdleError(task_id, current.value)

        if isinstance(completion_duration, dict):
            completion_duration = coerce_duration(completion_duration)

        cools_down = effective_once_per_day(completion_duration, once_per_day)
        started_at = self.clock()

        if isinstance(completion_duration, Duration):
            completion_at = shift(started_at, completion_duration)
        elif completion_duration is True:
            completion_at = next_daily_reset_after(started_at, self.reset_hour)
        else:
            completion_at = started_at

        cooldown_reset_at = (
            next_daily_reset_after(started_at, self.reset_hour) if cools_down else None
        )

        task = TaskSnapshot(
            id=task_id,
            start_at=started_at,
            subtracted_days=int(subtracted_days),
            completion_at=completion_at,
            cooldown_reset_at=cooldown_reset_at,
        )

        with self.state.atomic():
            self.store.schedule_at(completion_key(task_id), completion_at, TaskCompletionPayload(task))
            if cooldown_reset_at is not None:
                self.store.schedule_at(cooldown_key(task_id), cooldown_reset_at, TaskCooldownPayload(task))

        logger.info(
            f"Started task '{task_id}', completes at {format_instant(completion_at)}"
            + (f", cooldown until {format_instant(cooldown_reset_at)}" if cooldown_reset_at else "")
        )
        return task

    def cancel_if_possible(self, task_id: str) -> bool:
        """
        Cancel a started task.

        Days are only ever subtracted when the completion notification is
        delivered. Canceling while completing therefore leaves the counter
        where it was before the start, and canceling during the cooldown
        leaves the completed work in place.

        Returns:
            False if the task was idle, True if notifications were removed
        """
        if self.phase(task_id) is TaskPhase.IDLE:
            return False

        with self.state.atomic():
            pending_completion = self.store.cancel(completion_key(task_id))
            self.store.cancel(cooldown_key(task_id))

        if pending_completion is not None:
            logger.info(f"Canceled task '{task_id}' before completion")
        else:
            logger.info(f"Canceled cooldown of completed task '{task_id}'")
        return True


__all__ = [
    "CompletionDuration",
    "TaskEngine",
    "completion_key",
    "cooldown_key",
    "effective_once_per_day",
]
