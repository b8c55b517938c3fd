"""
Tool: Notification Dispatch Router
Purpose: Route each delivered notification to its handler

Features:
- Exhaustive routing on the payload kind
- Handler effects and consumption of the notification commit together
- Coalesced redraws through a single pending ``render`` notification
- Batch processing of everything that is due, including missed timers

Usage:
    from checklist.automation.dispatch import NotificationDispatcher

    dispatcher = NotificationDispatcher(store, state, daily_reset, rolls, presenter)
    dispatcher.process_due()
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from .. import DAYS_REMAINING
from ..logging_config import get_logger
from ..presentation import Presenter
from ..storage import PersistentState
from .daily_reset import DailyResetScheduler
from .instants import Duration, now
from .notifications import NotificationStore
from .payloads import Notification, NotificationKind, RenderPayload
from .roll import RollAnimator


logger = get_logger(__name__)

RENDER_KEY = "render"


class NotificationDispatcher:
    """Single entry point for delivered notifications."""

    def __init__(
        self,
        store: NotificationStore,
        state: PersistentState,
        daily_reset: DailyResetScheduler,
        rolls: RollAnimator,
        presenter: Presenter,
        clock: Callable[[], datetime] = now,
        max_passes: int = 100,
    ):
        self.store = store
        self.state = state
        self.daily_reset = daily_reset
        self.rolls = rolls
        self.presenter = presenter
        self.clock = clock
        self.max_passes = max_passes

        self._handlers: dict[NotificationKind, Callable[[Notification], None]] = {
            NotificationKind.DAILY_TASK_RESET: self._on_daily_reset,
            NotificationKind.TASK_COMPLETION: self._on_task_completion,
            NotificationKind.TASK_COOLDOWN: self._on_task_cooldown,
            NotificationKind.ROLL_ANIMATION: self._on_roll_animation,
            NotificationKind.RENDER: self._on_render,
        }
        missing = set(NotificationKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for notification kinds: {sorted(k.value for k in missing)}")

    def schedule_render(self) -> None:
        """Request a redraw once the current batch has been handled."""
        self.store.schedule_after(RENDER_KEY, Duration(), RenderPayload())

    # ── Handlers ─────────────────────────────────────────────────────────────

    def _on_daily_reset(self, notification: Notification) -> None:
        self.daily_reset.on_fire(notification)
        self.schedule_render()

    def _on_task_completion(self, notification: Notification) -> None:
        task = notification.payload.task
        value = self.state.add_to_counter(DAYS_REMAINING, -task.subtracted_days)
        logger.info(f"Task '{task.id}' completed, subtracted {task.subtracted_days}, days remaining {value}")
        self.schedule_render()

    def _on_task_cooldown(self, notification: Notification) -> None:
        logger.info(f"Task '{notification.payload.task.id}' cooldown over")
        self.schedule_render()

    def _on_roll_animation(self, notification: Notification) -> None:
        if self.rolls.on_step(notification) is not None:
            self.schedule_render()

    def _on_render(self, notification: Notification) -> None:
        # The redraw itself happens after the batch commits, see dispatch()
        pass

    # ── Delivery ─────────────────────────────────────────────────────────────

    def dispatch(self, notification: Notification, consume: bool = True) -> bool:
        """
        Handle one delivered notification.

        Args:
            notification: The delivered notification
            consume: Remove it from the store in the same commit as the
                handler's effects. Pass False for notifications that were
                already consumed, e.g. by ``NotificationStore.due_notifications``.

        Returns:
            False if the notification was no longer pending and was skipped
        """
        with self.state.atomic():
            if consume and not self.store.consume(notification.key, notification.fire_at):
                logger.debug(f"Skipping '{notification.key}', no longer pending")
                return False
            self._handlers[notification.kind](notification)

        if notification.kind is NotificationKind.RENDER:
            self.presenter.request_redraw()
            # The redraw may leave further state behind
            self.state.commit()

        return True

    def process_due(self) -> int:
        """Dispatch everything that is due, including work scheduled by handlers."""
        dispatched = 0

        for _ in range(self.max_passes):
            due = self.store.peek_due(self.clock())
            if not due:
                break
            for notification in due:
                if self.dispatch(notification):
                    dispatched += 1
        else:
            logger.warning(f"Stopped after {self.max_passes} dispatch passes with work still due")

        return dispatched


__all__ = ["RENDER_KEY", "NotificationDispatcher"]
