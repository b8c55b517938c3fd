"""
Presentation collaborator.

The engine never draws anything itself. After a state change it asks its
presenter to redraw; the presenter reads whatever it needs back from the
engine. ``ConsoleRenderer`` prints the board to a stream and
``NullPresenter`` is used when nothing is watching.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from typing import Any, Protocol, TextIO


class Presenter(Protocol):
    def request_redraw(self) -> None: ...


class NullPresenter:
    """Counts redraw requests without drawing."""

    def __init__(self):
        self.redraws = 0

    def request_redraw(self) -> None:
        self.redraws += 1


def format_board(board: dict[str, Any]) -> str:
    days = board["days_remaining"]
    lines = [f"Days remaining: {days} day{'' if abs(days) == 1 else 's'}", ""]

    for task in board["tasks"]:
        icon = task["icon"] or "•"
        lines.append(f"{task['marker']} {icon} {task['title']} (-{task['subtracted_days']}) [{task['label']}]")
        for detail in task["description"].splitlines():
            lines.append(f"      {detail}")

    for roll_id, roll in sorted(board.get("rolls", {}).items()):
        position = roll.get("position") or "-"
        status = "finished" if roll.get("finished") else "rolling"
        lines.append(f"🎲 {roll_id}: {position} ({status})")

    return "\n".join(lines)


class ConsoleRenderer:
    """Prints the board each time a redraw is requested."""

    def __init__(self, board: Callable[[], dict[str, Any]], stream: TextIO | None = None):
        self.board = board
        self.stream = stream or sys.stdout

    def request_redraw(self) -> None:
        print(format_board(self.board()), file=self.stream, flush=True)


__all__ = ["ConsoleRenderer", "NullPresenter", "Presenter", "format_board"]
