"""Task Engine - time-driven checklist tasks

Components:
    lifecycle.py: start/cancel tasks and derive their phase from pending notifications
    catalog.py: configured task definitions and their display descriptions

Usage:
    from checklist.tasks.lifecycle import TaskEngine
    from checklist.tasks.catalog import load_catalog
"""

from enum import Enum


class TaskPhase(str, Enum):
    """Derived lifecycle stage of a task."""

    IDLE = "idle"
    COMPLETING = "completing"
    COOLDOWN = "cooldown"


__all__ = ["TaskPhase"]
