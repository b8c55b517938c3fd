"""
Task catalog.

The tasks a user can start are defined in configuration (``tasks`` in
args/checklist.yaml). Each definition fixes how many days the task takes
off the counter and how its completion and cooldown behave.

Usage:
    from checklist.tasks.catalog import load_catalog, task_status

    catalog = load_catalog(config)
    status = task_status(catalog["stretch"], engine)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..automation.instants import Duration, coerce_duration, format_instant
from ..errors import ChecklistError, InvalidDurationError, UnknownTaskError
from . import TaskPhase
from .lifecycle import CompletionDuration, TaskEngine, effective_once_per_day


COMPLETION_AT_RESET = "reset"

# Markers shown next to a task for each phase
PHASE_MARKERS = {
    TaskPhase.IDLE: " ",
    TaskPhase.COMPLETING: "⏳",
    TaskPhase.COOLDOWN: "✅",
}

PHASE_LABELS = {
    TaskPhase.IDLE: "available",
    TaskPhase.COMPLETING: "in progress",
    TaskPhase.COOLDOWN: "done",
}


@dataclass(frozen=True)
class TaskDefinition:
    """A configured checklist task."""

    id: str
    title: str
    subtracted_days: int = 1
    completion: CompletionDuration = None
    once_per_day: bool = False
    icon: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskDefinition:
        if not data.get("id"):
            raise ChecklistError(f"Task definition without an id: {data!r}")

        raw = data.get("completion")
        if raw is None or raw is False:
            completion: CompletionDuration = None
        elif raw is True or raw == COMPLETION_AT_RESET:
            completion = True
        elif isinstance(raw, dict):
            completion = coerce_duration(raw)
        else:
            raise InvalidDurationError(f"Task '{data['id']}' has an invalid completion: {raw!r}")

        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or data["id"]),
            subtracted_days=int(data.get("subtracted_days", 1)),
            completion=completion,
            once_per_day=bool(data.get("once_per_day", False)),
            icon=str(data.get("icon") or ""),
        )

    @property
    def cools_down(self) -> bool:
        return effective_once_per_day(self.completion, self.once_per_day)

    def start(self, engine: TaskEngine):
        return engine.start(self.id, self.subtracted_days, self.completion, self.once_per_day)


def load_catalog(config: dict[str, Any]) -> dict[str, TaskDefinition]:
    """Build task definitions from configuration, keyed by id, in file order."""
    catalog: dict[str, TaskDefinition] = {}
    for entry in config.get("tasks") or []:
        definition = TaskDefinition.from_dict(entry)
        if definition.id in catalog:
            raise ChecklistError(f"Duplicate task id in catalog: {definition.id}")
        catalog[definition.id] = definition
    return catalog


def get_definition(catalog: dict[str, TaskDefinition], task_id: str) -> TaskDefinition:
    try:
        return catalog[task_id]
    except KeyError:
        raise UnknownTaskError(f"Unknown task: {task_id}") from None


def describe_completion(definition: TaskDefinition) -> str:
    if isinstance(definition.completion, Duration):
        completion = f"Completion: After {definition.completion.describe()}"
    elif definition.completion is True:
        completion = "Completion: At reset"
    else:
        completion = "Completion: Immediate"

    cooldown = "Cooldown: Until reset" if definition.cools_down else "Cooldown: Immediate"
    return f"{completion}\n{cooldown}"


def task_status(definition: TaskDefinition, engine: TaskEngine) -> dict[str, Any]:
    """Display record combining a definition with its live phase."""
    phase = engine.phase(definition.id)
    snapshot = engine.snapshot(definition.id)

    return {
        "id": definition.id,
        "title": definition.title,
        "icon": definition.icon,
        "subtracted_days": definition.subtracted_days,
        "phase": phase.value,
        "label": PHASE_LABELS[phase],
        "marker": PHASE_MARKERS[phase],
        "description": describe_completion(definition),
        "completion_at": format_instant(snapshot.completion_at) if snapshot else None,
        "cooldown_reset_at": (
            format_instant(snapshot.cooldown_reset_at)
            if snapshot and snapshot.cooldown_reset_at
            else None
        ),
    }


__all__ = [
    "COMPLETION_AT_RESET",
    "TaskDefinition",
    "describe_completion",
    "get_definition",
    "load_catalog",
    "task_status",
]
