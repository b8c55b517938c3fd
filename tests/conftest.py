"""Shared test fixtures for checklist tests.

This module provides common fixtures used across all test modules:
- Database isolation with temporary files
- A controllable clock
- Engine components wired to the temporary database
- A task catalog configuration

Usage:
    def test_something(engine, clock):
        engine.start("stretch", 1, {"minutes": 15})
        clock.advance(minutes=15)
        ...
"""

import copy
import os
import random
import tempfile
from collections.abc import Generator
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from checklist.app import build_app
from checklist.automation.daily_reset import DailyResetScheduler
from checklist.automation.dispatch import NotificationDispatcher
from checklist.automation.notifications import NotificationStore
from checklist.automation.roll import RollAnimator
from checklist.config import DEFAULT_CONFIG
from checklist.presentation import NullPresenter
from checklist.storage import PersistentState
from checklist.tasks.lifecycle import TaskEngine


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent
PACKAGE_DIR = PROJECT_ROOT / "checklist"


# ─────────────────────────────────────────────────────────────────────────────
# Clock
# ─────────────────────────────────────────────────────────────────────────────


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def set(self, instant: datetime) -> datetime:
        self.current = instant
        return instant


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at noon on 2026-03-10."""
    return FakeClock(datetime(2026, 3, 10, 12, 0))


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_db() -> Generator[Path, None, None]:
    """Create a temporary database file for testing.

    The database file is automatically deleted after the test completes.

    Yields:
        Path to the temporary database file
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup
    if db_path.exists():
        os.unlink(db_path)


@pytest.fixture
def state(temp_db: Path) -> Generator[PersistentState, None, None]:
    """Persistent state on the temporary database."""
    persistent = PersistentState(temp_db)
    yield persistent
    persistent.close()


# ─────────────────────────────────────────────────────────────────────────────
# Engine Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def store(state: PersistentState, clock: FakeClock) -> NotificationStore:
    return NotificationStore(state, clock)


@pytest.fixture
def engine(store: NotificationStore, state: PersistentState, clock: FakeClock) -> TaskEngine:
    return TaskEngine(store, state, clock)


@pytest.fixture
def daily_reset(store: NotificationStore, state: PersistentState, clock: FakeClock) -> DailyResetScheduler:
    return DailyResetScheduler(store, state, clock, delta=-1)


@pytest.fixture
def rolls(store: NotificationStore, state: PersistentState, clock: FakeClock) -> RollAnimator:
    return RollAnimator(store, state, clock, rng=random.Random(42))


@pytest.fixture
def presenter() -> NullPresenter:
    return NullPresenter()


@pytest.fixture
def dispatcher(store, state, daily_reset, rolls, presenter, clock) -> NotificationDispatcher:
    return NotificationDispatcher(store, state, daily_reset, rolls, presenter, clock)


# ─────────────────────────────────────────────────────────────────────────────
# Application Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def sample_tasks() -> list[dict]:
    """Catalog entries covering every completion form.

    Returns:
        list of task definition dicts
    """
    return [
        {"id": "tidy", "title": "Tidy the desk", "subtracted_days": 1},
        {"id": "journal", "title": "Write a journal entry", "subtracted_days": 1, "completion": "reset"},
        {
            "id": "stretch",
            "title": "Stretch for 15 minutes",
            "subtracted_days": 1,
            "completion": {"minutes": 15},
            "once_per_day": True,
        },
        {
            "id": "reading",
            "title": "Read for 15 minutes",
            "subtracted_days": 2,
            "completion": {"minutes": 15},
            "once_per_day": True,
        },
        {"id": "hydrate", "title": "Keep water on the desk", "subtracted_days": 1, "completion": {"hours": 4}},
    ]


@pytest.fixture
def app_config(sample_tasks: list[dict]) -> dict:
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["counters"]["initial_days_remaining"] = 10
    config["tasks"] = sample_tasks
    return config


@pytest.fixture
def app(temp_db: Path, clock: FakeClock, app_config: dict, presenter: NullPresenter):
    """Fully wired application on the temporary database."""
    checklist_app = build_app(
        config=app_config,
        db_path=temp_db,
        clock=clock,
        presenter=presenter,
        rng=random.Random(7),
    )
    yield checklist_app
    checklist_app.close()
