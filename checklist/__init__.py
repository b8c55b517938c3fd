"""Cooldown Checklist - a wall-clock driven daily checklist

Tasks are started, complete after a delay (or at the next daily reset),
then cool down until the next reset before they can be started again.
A daily reset timer adjusts the "days remaining" counter once per day.

Components:
    automation/: instants, notification store, daily reset, roll chain,
                 dispatch router and the runner that delivers due timers
    tasks/: task lifecycle engine and the configured task catalog
    storage.py: SQLite-backed persistent state (counters, notifications)
    presentation.py: redraw collaborator and console renderer
    app.py: wires the components together
    cli.py: command line entry point

Usage:
    from checklist.app import build_app

    app = build_app()
    app.tasks.start("stretch", subtracted_days=1, completion_duration={"minutes": 15})
    app.dispatcher.process_due()
"""

from pathlib import Path

__version__ = "0.3.0"

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
DB_PATH = PROJECT_ROOT / "data" / "checklist.db"
CONFIG_PATH = PROJECT_ROOT / "args" / "checklist.yaml"

# Counter names
DAYS_REMAINING = "days_remaining"

__all__ = [
    "__version__",
    "PROJECT_ROOT",
    "DB_PATH",
    "CONFIG_PATH",
    "DAYS_REMAINING",
]
