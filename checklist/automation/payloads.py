"""Notification payload models.

Every scheduled notification carries exactly one payload kind, tagged by
its ``type`` discriminant when persisted:

    dailyTaskReset  - daily counter adjustment
    taskCompletion  - a started task reaches its completion instant
    taskCooldown    - a completed task may be started again
    rollAnimation   - one step of a roll animation chain
    render          - a coalesced redraw request
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Union

from .instants import format_instant, parse_instant


class NotificationKind(str, Enum):
    """Payload discriminants."""

    DAILY_TASK_RESET = "dailyTaskReset"
    TASK_COMPLETION = "taskCompletion"
    TASK_COOLDOWN = "taskCooldown"
    ROLL_ANIMATION = "rollAnimation"
    RENDER = "render"


class PayloadError(ValueError):
    """A persisted payload could not be decoded."""


@dataclass(frozen=True)
class TaskSnapshot:
    """The state of a started task, shared by its completion and cooldown notifications."""

    id: str
    start_at: datetime
    subtracted_days: int
    completion_at: datetime
    cooldown_reset_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "startAt": format_instant(self.start_at),
            "subtractedDays": self.subtracted_days,
            "completionAt": format_instant(self.completion_at),
            "cooldownResetAt": (
                format_instant(self.cooldown_reset_at) if self.cooldown_reset_at else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskSnapshot:
        cooldown = data.get("cooldownResetAt")
        return cls(
            id=data["id"],
            start_at=parse_instant(data["startAt"]),
            subtracted_days=int(data["subtractedDays"]),
            completion_at=parse_instant(data["completionAt"]),
            cooldown_reset_at=parse_instant(cooldown) if cooldown else None,
        )


@dataclass(frozen=True)
class DailyResetPayload:
    kind = NotificationKind.DAILY_TASK_RESET

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value}


@dataclass(frozen=True)
class TaskCompletionPayload:
    task: TaskSnapshot

    kind = NotificationKind.TASK_COMPLETION

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "task": self.task.to_dict()}


@dataclass(frozen=True)
class TaskCooldownPayload:
    task: TaskSnapshot

    kind = NotificationKind.TASK_COOLDOWN

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "task": self.task.to_dict()}


@dataclass(frozen=True)
class RollAnimationPayload:
    """One step of a roll chain; ``remaining`` steps follow this one."""

    roll_id: str
    position: int
    remaining: int

    kind = NotificationKind.ROLL_ANIMATION

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "rollId": self.roll_id,
            "position": self.position,
            "remaining": self.remaining,
        }


@dataclass(frozen=True)
class RenderPayload:
    kind = NotificationKind.RENDER

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value}


Payload = Union[
    DailyResetPayload,
    TaskCompletionPayload,
    TaskCooldownPayload,
    RollAnimationPayload,
    RenderPayload,
]


@dataclass(frozen=True)
class Notification:
    """A delivered (or pending) notification."""

    key: str
    fire_at: datetime
    payload: Payload

    @property
    def kind(self) -> NotificationKind:
        return self.payload.kind

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "fire_at": format_instant(self.fire_at),
            "payload": self.payload.to_dict(),
        }


def payload_from_dict(data: dict[str, Any]) -> Payload:
    """Rebuild a payload from its tagged dict form."""
    if not isinstance(data, dict):
        raise PayloadError(f"Payload must be an object, got {type(data).__name__}")

    try:
        kind = NotificationKind(data.get("type"))
    except ValueError as e:
        raise PayloadError(f"Unknown payload type: {data.get('type')!r}") from e

    try:
        if kind is NotificationKind.DAILY_TASK_RESET:
            return DailyResetPayload()
        if kind is NotificationKind.TASK_COMPLETION:
            return TaskCompletionPayload(task=TaskSnapshot.from_dict(data["task"]))
        if kind is NotificationKind.TASK_COOLDOWN:
            return TaskCooldownPayload(task=TaskSnapshot.from_dict(data["task"]))
        if kind is NotificationKind.ROLL_ANIMATION:
            return RollAnimationPayload(
                roll_id=data["rollId"],
                position=int(data["position"]),
                remaining=int(data["remaining"]),
            )
        return RenderPayload()
    except (KeyError, TypeError, ValueError) as e:
        raise PayloadError(f"Malformed {kind.value} payload: {e}") from e


def encode_payload(payload: Payload) -> str:
    return json.dumps(payload.to_dict(), sort_keys=True)


def decode_payload(raw: str) -> Payload:
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise PayloadError(f"Payload is not valid JSON: {e}") from e
    return payload_from_dict(data)


__all__ = [
    "DailyResetPayload",
    "Notification",
    "NotificationKind",
    "Payload",
    "PayloadError",
    "RenderPayload",
    "RollAnimationPayload",
    "TaskCompletionPayload",
    "TaskCooldownPayload",
    "TaskSnapshot",
    "decode_payload",
    "encode_payload",
    "payload_from_dict",
]
