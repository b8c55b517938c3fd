"""Exceptions raised by the checklist engine."""


class ChecklistError(Exception):
    """Base class for checklist errors reported back to callers."""


class TaskNotIdleError(ChecklistError):
    """A task was started while it was still completing or cooling down."""

    def __init__(self, task_id: str, phase: str):
        self.task_id = task_id
        self.phase = phase
        super().__init__(f"Task '{task_id}' cannot be started while {phase}")


class InvalidDurationError(ChecklistError):
    """A duration could not be built from the given value."""


class RollError(ChecklistError):
    """A roll animation was requested with invalid parameters."""


class UnknownTaskError(ChecklistError):
    """A task id is not present in the configured catalog."""
