"""Tests for checklist/automation/dispatch.py

The dispatcher routes delivered notifications by kind. Key behaviors:
- Completion subtracts days, cooldown does not
- Redraws are coalesced into a single render notification
- Handler effects and consumption commit together or not at all
"""

from datetime import datetime

import pytest

from checklist import DAYS_REMAINING
from checklist.automation.daily_reset import DAILY_RESET_KEY
from checklist.automation.dispatch import RENDER_KEY
from checklist.automation.payloads import (
    NotificationKind,
    RenderPayload,
    TaskCompletionPayload,
    TaskCooldownPayload,
    TaskSnapshot,
)


def _snapshot(task_id, subtracted_days=1):
    return TaskSnapshot(
        id=task_id,
        start_at=datetime(2026, 3, 10, 11, 0),
        subtracted_days=subtracted_days,
        completion_at=datetime(2026, 3, 10, 11, 30),
        cooldown_reset_at=datetime(2026, 3, 11, 3, 0),
    )


class TestRouting:
    def test_every_kind_has_a_handler(self, dispatcher):
        assert set(dispatcher._handlers) == set(NotificationKind)

    def test_completion_subtracts_days(self, dispatcher, store, state):
        state.set_counter(DAYS_REMAINING, 10)
        store.schedule_at(
            "readingTaskCompletion",
            datetime(2026, 3, 10, 11, 30),
            TaskCompletionPayload(_snapshot("reading", 2)),
        )

        dispatcher.process_due()

        assert state.get_counter(DAYS_REMAINING) == 8
        assert store.get("readingTaskCompletion") is None

    def test_cooldown_leaves_counter(self, dispatcher, store, state, presenter):
        state.set_counter(DAYS_REMAINING, 10)
        store.schedule_at("readingTaskCooldown", datetime(2026, 3, 10, 11, 30), TaskCooldownPayload(_snapshot("reading")))

        dispatcher.process_due()

        assert state.get_counter(DAYS_REMAINING) == 10
        assert store.get("readingTaskCooldown") is None
        assert presenter.redraws == 1

    def test_daily_reset_is_routed(self, dispatcher, daily_reset, store, state, clock):
        state.set_counter(DAYS_REMAINING, 10)
        daily_reset.reschedule()
        clock.set(datetime(2026, 3, 11, 3, 0, 1))

        dispatcher.process_due()

        assert state.get_counter(DAYS_REMAINING) == 9
        assert store.get_notification(DAILY_RESET_KEY).fire_at == datetime(2026, 3, 12, 3, 0)

    def test_future_notifications_are_left_alone(self, dispatcher, store):
        store.schedule_at("readingTaskCompletion", datetime(2026, 3, 10, 12, 15), TaskCompletionPayload(_snapshot("reading")))

        assert dispatcher.process_due() == 0
        assert store.get("readingTaskCompletion") is not None


class TestRenderCoalescing:
    def test_single_pending_render(self, dispatcher, store):
        dispatcher.schedule_render()
        dispatcher.schedule_render()
        dispatcher.schedule_render()

        assert [n.key for n in store.pending()] == [RENDER_KEY]

    def test_burst_of_missed_timers_redraws_once(self, dispatcher, store, state, presenter):
        state.set_counter(DAYS_REMAINING, 10)
        for task_id in ("tidy", "stretch", "reading"):
            store.schedule_at(
                f"{task_id}TaskCompletion",
                datetime(2026, 3, 10, 11, 30),
                TaskCompletionPayload(_snapshot(task_id)),
            )

        dispatched = dispatcher.process_due()

        assert dispatched == 4  # three completions and one render
        assert presenter.redraws == 1
        assert state.get_counter(DAYS_REMAINING) == 7

    def test_render_commits_after_redraw(self, dispatcher, store, state, temp_db):
        store.schedule_at(RENDER_KEY, datetime(2026, 3, 10, 12, 0), RenderPayload())

        def redraw():
            state.set_value("lastRedraw", "2026-03-10T12:00:00.000")

        dispatcher.presenter.request_redraw = redraw
        dispatcher.process_due()

        assert state.in_batch is False
        assert state.get_value("lastRedraw") == "2026-03-10T12:00:00.000"


class TestConsistency:
    def test_stale_notification_is_skipped(self, dispatcher, store, state):
        state.set_counter(DAYS_REMAINING, 10)
        notification = store.schedule_at(
            "readingTaskCompletion",
            datetime(2026, 3, 10, 11, 30),
            TaskCompletionPayload(_snapshot("reading")),
        )
        store.cancel("readingTaskCompletion")

        assert dispatcher.dispatch(notification) is False
        assert state.get_counter(DAYS_REMAINING) == 10

    def test_failed_handler_keeps_notification_pending(self, dispatcher, daily_reset, store, state, clock, monkeypatch):
        state.set_counter(DAYS_REMAINING, 10)
        daily_reset.reschedule()
        clock.set(datetime(2026, 3, 11, 4, 0))

        def explode(notification):
            state.add_to_counter(DAYS_REMAINING, -1)
            raise RuntimeError("handler failed")

        monkeypatch.setattr(daily_reset, "on_fire", explode)

        with pytest.raises(RuntimeError):
            dispatcher.process_due()

        assert state.get_counter(DAYS_REMAINING) == 10
        assert store.get(DAILY_RESET_KEY) is not None

    def test_already_consumed_notifications(self, dispatcher, store, state):
        state.set_counter(DAYS_REMAINING, 10)
        store.schedule_at(
            "tidyTaskCompletion",
            datetime(2026, 3, 10, 11, 30),
            TaskCompletionPayload(_snapshot("tidy")),
        )

        for notification in store.due_notifications(datetime(2026, 3, 10, 12, 0)):
            assert dispatcher.dispatch(notification, consume=False) is True

        assert state.get_counter(DAYS_REMAINING) == 9
