"""
Application wiring.

Builds the engine components on one shared state database and one clock,
and offers the operations the presentation layer needs: start and cancel
catalog tasks, roll, and read the board.

Usage:
    from checklist.app import build_app

    app = build_app()
    app.start_task("stretch")
    app.dispatcher.process_due()
    app.board()
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from . import DAYS_REMAINING
from .automation.daily_reset import DailyResetScheduler
from .automation.dispatch import NotificationDispatcher
from .automation.instants import now
from .automation.notifications import NotificationStore
from .automation.payloads import TaskSnapshot
from .automation.roll import RollAnimator
from .config import load_config
from .presentation import NullPresenter, Presenter
from .storage import PersistentState
from .tasks.catalog import TaskDefinition, get_definition, load_catalog, task_status
from .tasks.lifecycle import TaskEngine


@dataclass
class ChecklistApp:
    config: dict[str, Any]
    state: PersistentState
    store: NotificationStore
    tasks: TaskEngine
    daily_reset: DailyResetScheduler
    rolls: RollAnimator
    dispatcher: NotificationDispatcher
    catalog: dict[str, TaskDefinition]
    presenter: Presenter

    def use_presenter(self, presenter: Presenter) -> None:
        self.presenter = presenter
        self.dispatcher.presenter = presenter

    def resume(self) -> int:
        """Bring state up to date after (re)starting: seed timers, deliver overdue ones."""
        self.daily_reset.ensure_scheduled()
        return self.dispatcher.process_due()

    def start_task(self, task_id: str) -> TaskSnapshot:
        definition = get_definition(self.catalog, task_id)
        snapshot = definition.start(self.tasks)
        self.dispatcher.schedule_render()
        return snapshot

    def cancel_task(self, task_id: str) -> bool:
        get_definition(self.catalog, task_id)
        canceled = self.tasks.cancel_if_possible(task_id)
        if canceled:
            self.dispatcher.schedule_render()
        return canceled

    def roll(self, roll_id: str, final_value: int | None = None) -> dict[str, Any]:
        if final_value is None:
            final_value = self.rolls.rng.randint(1, 6)
        return self.rolls.begin_roll(roll_id, final_value)

    def days_remaining(self) -> int:
        return self.state.get_counter(DAYS_REMAINING)

    def board(self) -> dict[str, Any]:
        return {
            "days_remaining": self.days_remaining(),
            "tasks": [task_status(definition, self.tasks) for definition in self.catalog.values()],
            "rolls": self.rolls.list_rolls(),
        }

    def close(self) -> None:
        self.state.close()


def build_app(
    config: dict[str, Any] | None = None,
    db_path: Path | None = None,
    clock: Callable[[], datetime] = now,
    presenter: Presenter | None = None,
    rng: random.Random | None = None,
) -> ChecklistApp:
    config = config if config is not None else load_config()
    presenter = presenter or NullPresenter()

    reset_config = config["daily_reset"]
    roll_config = config["roll"]

    state = PersistentState(db_path)
    state.ensure_counter(DAYS_REMAINING, config["counters"]["initial_days_remaining"])

    store = NotificationStore(state, clock)
    tasks = TaskEngine(store, state, clock, reset_hour=reset_config["hour"])
    daily_reset = DailyResetScheduler(
        store,
        state,
        clock,
        delta=reset_config["delta"],
        reset_hour=reset_config["hour"],
        missed_days_policy=reset_config["missed_days_policy"],
    )
    rolls = RollAnimator(
        store,
        state,
        clock,
        base_cycles=roll_config["base_cycles"],
        extra_cycles=roll_config["extra_cycles"],
        rng=rng,
    )
    dispatcher = NotificationDispatcher(
        store,
        state,
        daily_reset,
        rolls,
        presenter,
        clock,
        max_passes=config["runner"]["max_dispatch_passes"],
    )

    return ChecklistApp(
        config=config,
        state=state,
        store=store,
        tasks=tasks,
        daily_reset=daily_reset,
        rolls=rolls,
        dispatcher=dispatcher,
        catalog=load_catalog(config),
        presenter=presenter,
    )


__all__ = ["ChecklistApp", "build_app"]
