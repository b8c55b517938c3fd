#!/usr/bin/env python3
"""
Checklist Command Line Interface

Every action first delivers whatever became due while nothing was running,
then performs its own work and prints a JSON result.

Usage:
    python -m checklist.cli --action status
    python -m checklist.cli --action start --task stretch
    python -m checklist.cli --action cancel --task stretch
    python -m checklist.cli --action roll --roll-id dailyRoll --value 4
    python -m checklist.cli --action process
    python -m checklist.cli --action notifications
    python -m checklist.cli --action board

Output:
    JSON result with success status and data
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from .app import ChecklistApp, build_app
from .automation.instants import format_instant
from .config import load_config
from .errors import ChecklistError
from .logging_config import bind_context, setup_logging
from .presentation import format_board


ACTIONS = ["status", "start", "cancel", "roll", "process", "notifications", "board"]


def cmd_status(app: ChecklistApp, args) -> dict[str, Any]:
    return {"success": True, "data": app.board()}


def cmd_start(app: ChecklistApp, args) -> dict[str, Any]:
    if not args.task:
        return {"success": False, "error": "--task required for start"}

    snapshot = app.start_task(args.task)
    app.dispatcher.process_due()
    return {
        "success": True,
        "data": {"task": snapshot.to_dict(), "phase": app.tasks.phase(args.task).value},
        "message": f"Task {args.task} started",
    }


def cmd_cancel(app: ChecklistApp, args) -> dict[str, Any]:
    if not args.task:
        return {"success": False, "error": "--task required for cancel"}

    canceled = app.cancel_task(args.task)
    app.dispatcher.process_due()
    if not canceled:
        return {"success": False, "error": f"Task {args.task} is not running"}
    return {"success": True, "message": f"Task {args.task} canceled"}


def cmd_roll(app: ChecklistApp, args) -> dict[str, Any]:
    if not args.roll_id:
        return {"success": False, "error": "--roll-id required for roll"}

    roll = app.roll(args.roll_id, args.value)
    return {"success": True, "data": roll, "message": f"Roll {args.roll_id} started"}


def cmd_process(app: ChecklistApp, args) -> dict[str, Any]:
    # resume() already ran, this only reports it
    return {"success": True, "data": {"dispatched": args.resumed, "days_remaining": app.days_remaining()}}


def cmd_notifications(app: ChecklistApp, args) -> dict[str, Any]:
    pending = app.store.pending()
    next_fire_at = app.store.next_fire_at()
    return {
        "success": True,
        "data": {
            "notifications": [n.to_dict() for n in pending],
            "next_fire_at": format_instant(next_fire_at) if next_fire_at else None,
        },
    }


def cmd_board(app: ChecklistApp, args) -> dict[str, Any]:
    print(format_board(app.board()))
    return {"success": True}


COMMANDS = {
    "status": cmd_status,
    "start": cmd_start,
    "cancel": cmd_cancel,
    "roll": cmd_roll,
    "process": cmd_process,
    "notifications": cmd_notifications,
    "board": cmd_board,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cooldown Checklist - time-driven daily tasks")
    parser.add_argument("--action", required=True, choices=ACTIONS, help="Action to perform")
    parser.add_argument("--task", help="Task ID from the catalog")
    parser.add_argument("--roll-id", help="Roll ID")
    parser.add_argument("--value", type=int, help="Final roll value (1-6), random if omitted")
    parser.add_argument("--db", type=Path, help="Database path")
    parser.add_argument("--config", type=Path, help="Configuration file")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging()
    bind_context(component="cli", action=args.action)

    app = build_app(config=load_config(args.config), db_path=args.db)
    try:
        args.resumed = app.resume()
        result = COMMANDS[args.action](app, args)
    except ChecklistError as e:
        result = {"success": False, "error": str(e)}
    finally:
        app.close()

    if args.action != "board" or not result.get("success"):
        print(json.dumps(result, indent=2, default=str))

    return 0 if result.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
