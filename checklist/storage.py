"""
Persistent state for the checklist engine.

A single SQLite database holds everything the engine owns:
- notifications: pending timers keyed by a unique string
- counters: named integers such as days remaining
- kv: small JSON values such as roll animation state

Every mutation is committed before the call returns. Wrapping several
mutations in ``PersistentState.atomic()`` defers the commit to the end of
the block, so a handler's effects and the consumption of the notification
that triggered it land together or not at all.

Usage:
    from checklist.storage import PersistentState

    state = PersistentState()
    with state.atomic():
        state.add_to_counter("days_remaining", -1)
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from . import DB_PATH
from .logging_config import get_logger


logger = get_logger(__name__)


def get_connection(db_path: Path | None = None) -> sqlite3.Connection:
    """Get database connection, creating tables if needed."""
    path = db_path or DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row

    cursor = conn.cursor()

    # Pending notifications, one row per key
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            key TEXT PRIMARY KEY,
            fire_at TEXT NOT NULL,
            payload TEXT NOT NULL,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS counters (
            name TEXT PRIMARY KEY,
            value INTEGER NOT NULL,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS kv (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_notifications_fire_at ON notifications(fire_at)")

    conn.commit()
    return conn


class PersistentState:
    """Owns the database connection and the commit boundary."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH
        self.conn = get_connection(self.db_path)
        self._depth = 0

    @property
    def in_batch(self) -> bool:
        return self._depth > 0

    def commit(self) -> None:
        """Durably flush pending changes, unless an atomic batch is open."""
        if self._depth == 0:
            self.conn.commit()

    @contextmanager
    def atomic(self) -> Iterator[PersistentState]:
        """Group mutations into one commit; roll back everything on error."""
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self.conn.rollback()
                logger.warning("Rolled back state batch after error")
            raise
        else:
            self._depth -= 1
            self.commit()

    def close(self) -> None:
        self.conn.close()

    # ── Counters ─────────────────────────────────────────────────────────────

    def get_counter(self, name: str, default: int = 0) -> int:
        row = self.conn.execute("SELECT value FROM counters WHERE name = ?", (name,)).fetchone()
        if row is None:
            return default
        return int(row["value"])

    def set_counter(self, name: str, value: int) -> None:
        self.conn.execute(
            """
            INSERT INTO counters (name, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(name) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            """,
            (name, int(value)),
        )
        self.commit()

    def add_to_counter(self, name: str, delta: int, default: int = 0) -> int:
        """Add ``delta`` to a counter and return the new value."""
        value = self.get_counter(name, default) + int(delta)
        self.set_counter(name, value)
        return value

    def ensure_counter(self, name: str, initial: int) -> int:
        """Seed a counter the first time it is needed; existing values win."""
        self.conn.execute(
            "INSERT OR IGNORE INTO counters (name, value) VALUES (?, ?)",
            (name, int(initial)),
        )
        self.commit()
        return self.get_counter(name, initial)

    # ── JSON values ──────────────────────────────────────────────────────────

    def get_value(self, key: str) -> Any | None:
        row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable value for '{key}'")
            return None

    def set_value(self, key: str, value: Any) -> None:
        self.conn.execute(
            """
            INSERT INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            """,
            (key, json.dumps(value, sort_keys=True)),
        )
        self.commit()

    def values_with_prefix(self, prefix: str) -> dict[str, Any]:
        rows = self.conn.execute(
            "SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        ).fetchall()
        values = {}
        for row in rows:
            value = self.get_value(row["key"])
            if value is not None:
                values[row["key"]] = value
        return values

    def delete_value(self, key: str) -> bool:
        cursor = self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        self.commit()
        return cursor.rowcount > 0


__all__ = ["PersistentState", "get_connection"]
