"""
Instant and Duration arithmetic.

An instant is a local wall-clock ``datetime``. A Duration is a sparse set of
named integer offsets; zero fields contribute nothing. The daily reset
boundary (03:00 local by default) is the single source of truth for
"until the end of the day" deadlines.

Usage:
    from checklist.automation.instants import Duration, next_daily_reset_after, now, shift

    later = shift(now(), Duration(minutes=15))
    boundary = next_daily_reset_after(later)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from ..errors import InvalidDurationError


DEFAULT_RESET_HOUR = 3

# Ordered largest to smallest, also the display order
DURATION_FIELDS = ("days", "hours", "minutes", "seconds", "milliseconds")

INSTANT_FORMAT_TIMESPEC = "milliseconds"


@dataclass(frozen=True)
class Duration:
    """A sparse additive time offset."""

    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    milliseconds: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Duration:
        unknown = set(data) - set(DURATION_FIELDS)
        if unknown:
            raise InvalidDurationError(f"Unknown duration fields: {sorted(unknown)}")

        values = {}
        for name, value in data.items():
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidDurationError(f"Duration field '{name}' must be a number, got {value!r}")
            if isinstance(value, float) and not value.is_integer():
                raise InvalidDurationError(f"Duration field '{name}' must be a whole number, got {value!r}")
            values[name] = int(value)
        return cls(**values)

    def to_dict(self) -> dict[str, int]:
        """Sparse representation, zero fields omitted."""
        return {name: getattr(self, name) for name in DURATION_FIELDS if getattr(self, name)}

    def to_timedelta(self) -> timedelta:
        return timedelta(
            days=self.days,
            hours=self.hours,
            minutes=self.minutes,
            seconds=self.seconds,
            milliseconds=self.milliseconds,
        )

    def is_zero(self) -> bool:
        return not self.to_dict()

    def describe(self) -> str:
        """Human readable form, e.g. "1 hour, 15 minutes"."""
        if self.is_zero():
            return "0 seconds"
        parts = []
        for name, value in self.to_dict().items():
            unit = name[:-1] if value == 1 else name
            parts.append(f"{value} {unit}")
        return ", ".join(parts)


def coerce_duration(value: Duration | dict[str, Any]) -> Duration:
    if isinstance(value, Duration):
        return value
    if isinstance(value, dict):
        return Duration.from_dict(value)
    raise InvalidDurationError(f"Expected a duration, got {value!r}")


def now() -> datetime:
    """Current local instant, truncated to millisecond precision."""
    current = datetime.now()
    return current.replace(microsecond=(current.microsecond // 1000) * 1000)


def compare(a: datetime, b: datetime) -> int:
    """Return -1, 0 or 1 as ``a`` is before, equal to or after ``b``."""
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def shift(instant: datetime, duration: Duration | timedelta | dict[str, Any]) -> datetime:
    """Shift an instant, normalizing overflow across all fields."""
    if isinstance(duration, timedelta):
        return instant + duration
    return instant + coerce_duration(duration).to_timedelta()


def next_daily_reset_after(instant: datetime, reset_hour: int = DEFAULT_RESET_HOUR) -> datetime:
    """
    Next reset boundary strictly after ``instant``.

    Today's boundary when ``instant`` is before it, otherwise tomorrow's.
    An instant exactly on the boundary maps to the following day.
    """
    boundary = instant.replace(hour=reset_hour, minute=0, second=0, microsecond=0)

    if compare(boundary, instant) <= 0:
        boundary = shift(boundary, Duration(days=1))

    return boundary


def format_instant(instant: datetime) -> str:
    """ISO-8601 text whose lexicographic order matches chronological order."""
    return instant.isoformat(timespec=INSTANT_FORMAT_TIMESPEC)


def parse_instant(value: str) -> datetime:
    return datetime.fromisoformat(value)


__all__ = [
    "DEFAULT_RESET_HOUR",
    "DURATION_FIELDS",
    "Duration",
    "coerce_duration",
    "compare",
    "format_instant",
    "next_daily_reset_after",
    "now",
    "parse_instant",
    "shift",
]
