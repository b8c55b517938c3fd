"""
Tool: Notification Store
Purpose: Durable keyed timers with typed payloads

Features:
- Schedule at an instant or after a duration (upsert by key)
- Cancel returning the removed payload
- Lookup of pending payloads
- Due enumeration that consumes each entry exactly once

A fired, canceled and never-scheduled key all look the same: callers only
ever see what is currently pending.

Usage:
    from checklist.automation.notifications import NotificationStore

    store = NotificationStore(state)
    store.schedule_after("render", Duration(), RenderPayload())
    for notification in store.due_notifications(now()):
        ...
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from datetime import datetime

from ..logging_config import get_logger
from ..storage import PersistentState
from .instants import Duration, format_instant, now, parse_instant, shift
from .payloads import Notification, Payload, PayloadError, decode_payload, encode_payload


logger = get_logger(__name__)


class NotificationStore:
    """Pending notifications persisted in the state database."""

    def __init__(self, state: PersistentState, clock: Callable[[], datetime] = now):
        self.state = state
        self.clock = clock

    @property
    def conn(self) -> sqlite3.Connection:
        return self.state.conn

    def _row_to_notification(self, row: sqlite3.Row) -> Notification | None:
        try:
            payload = decode_payload(row["payload"])
            fire_at = parse_instant(row["fire_at"])
        except (PayloadError, ValueError) as e:
            logger.warning(f"Ignoring corrupt notification '{row['key']}': {e}")
            return None
        return Notification(key=row["key"], fire_at=fire_at, payload=payload)

    def schedule_at(self, key: str, instant: datetime, payload: Payload) -> Notification:
        """Schedule ``key`` to fire at ``instant``, replacing any pending entry."""
        self.conn.execute(
            """
            INSERT INTO notifications (key, fire_at, payload, created_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET
                fire_at = excluded.fire_at,
                payload = excluded.payload,
                created_at = CURRENT_TIMESTAMP
            """,
            (key, format_instant(instant), encode_payload(payload)),
        )
        self.state.commit()
        logger.debug(f"Scheduled '{key}' ({payload.kind.value}) at {format_instant(instant)}")
        return Notification(key=key, fire_at=instant, payload=payload)

    def schedule_after(self, key: str, duration: Duration, payload: Payload) -> Notification:
        """Schedule ``key`` to fire ``duration`` from now."""
        return self.schedule_at(key, shift(self.clock(), duration), payload)

    def get(self, key: str) -> Payload | None:
        """Pending payload for ``key``, or None if nothing is pending."""
        notification = self.get_notification(key)
        return notification.payload if notification else None

    def get_notification(self, key: str) -> Notification | None:
        row = self.conn.execute(
            "SELECT key, fire_at, payload FROM notifications WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_notification(row)

    def cancel(self, key: str) -> Payload | None:
        """Remove ``key`` and return its payload, or None if nothing was pending."""
        notification = self.get_notification(key)
        cursor = self.conn.execute("DELETE FROM notifications WHERE key = ?", (key,))
        self.state.commit()

        if cursor.rowcount == 0:
            return None
        logger.debug(f"Canceled '{key}'")
        return notification.payload if notification else None

    def consume(self, key: str, fire_at: datetime) -> bool:
        """Remove a delivered entry if it is still the same scheduled instance."""
        cursor = self.conn.execute(
            "DELETE FROM notifications WHERE key = ? AND fire_at = ?",
            (key, format_instant(fire_at)),
        )
        self.state.commit()
        return cursor.rowcount > 0

    def due_notifications(self, instant: datetime) -> list[Notification]:
        """Consume and return every entry due at or before ``instant``."""
        with self.state.atomic():
            rows = self.conn.execute(
                """
                SELECT key, fire_at, payload FROM notifications
                WHERE fire_at <= ?
                ORDER BY fire_at, key
                """,
                (format_instant(instant),),
            ).fetchall()

            due = []
            for row in rows:
                self.conn.execute("DELETE FROM notifications WHERE key = ?", (row["key"],))
                notification = self._row_to_notification(row)
                if notification is not None:
                    due.append(notification)

        return due

    def peek_due(self, instant: datetime) -> list[Notification]:
        """Due entries without consuming them, corrupt rows are dropped."""
        rows = self.conn.execute(
            """
            SELECT key, fire_at, payload FROM notifications
            WHERE fire_at <= ?
            ORDER BY fire_at, key
            """,
            (format_instant(instant),),
        ).fetchall()

        due = []
        for row in rows:
            notification = self._row_to_notification(row)
            if notification is None:
                self.conn.execute("DELETE FROM notifications WHERE key = ?", (row["key"],))
                self.state.commit()
                continue
            due.append(notification)
        return due

    def next_fire_at(self) -> datetime | None:
        """Earliest pending firing instant."""
        row = self.conn.execute("SELECT MIN(fire_at) AS fire_at FROM notifications").fetchone()
        if row is None or row["fire_at"] is None:
            return None
        return parse_instant(row["fire_at"])

    def pending(self) -> list[Notification]:
        rows = self.conn.execute(
            "SELECT key, fire_at, payload FROM notifications ORDER BY fire_at, key"
        ).fetchall()
        return [n for n in (self._row_to_notification(row) for row in rows) if n is not None]


__all__ = ["NotificationStore"]
