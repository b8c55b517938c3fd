"""
Roll animation chain.

A decelerating dice roll over six positions, driven by one self-rescheduling
notification per roll id. Each step's payload carries the position to
highlight and how many steps follow it, so a restart at any step boundary
simply continues from the persisted payload.

The roll's visible state (final value, highlighted position, finished flag)
is kept in the state database under ``roll:<id>``.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from datetime import datetime
from typing import Any

from ..errors import RollError
from ..logging_config import get_logger
from ..storage import PersistentState
from .instants import Duration, format_instant, now
from .notifications import NotificationStore
from .payloads import Notification, RollAnimationPayload


logger = get_logger(__name__)

ROLL_POSITIONS = 6
DECELERATION = 1.2


def roll_delay_millis(remaining: int) -> float:
    """Delay before a step; grows geometrically as fewer steps remain."""
    return (1.0 / DECELERATION) ** (remaining - 1) * 1000


def next_position(position: int) -> int:
    return (position % ROLL_POSITIONS) + 1


def first_position(final_value: int, total_steps: int) -> int:
    """Position to start on so that the last of ``total_steps`` lands on ``final_value``."""
    return ((final_value - total_steps) % ROLL_POSITIONS) + 1


def roll_state_key(roll_id: str) -> str:
    return f"roll:{roll_id}"


class RollAnimator:
    def __init__(
        self,
        store: NotificationStore,
        state: PersistentState,
        clock: Callable[[], datetime] = now,
        base_cycles: int = 10,
        extra_cycles: int = 3,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.state = state
        self.clock = clock
        self.base_cycles = base_cycles
        self.extra_cycles = extra_cycles
        self.rng = rng or random.Random()

    def total_steps(self) -> int:
        return ROLL_POSITIONS * self.base_cycles + self.rng.randint(1, ROLL_POSITIONS * self.extra_cycles)

    def begin_roll(self, roll_id: str, final_value: int) -> dict[str, Any]:
        """
        Start a roll that settles on ``final_value``.

        Args:
            roll_id: Key of the notification chain and of the roll state
            final_value: Position (1-6) the animation ends on

        Returns:
            The persisted roll state
        """
        if not 1 <= final_value <= ROLL_POSITIONS:
            raise RollError(f"Final value must be between 1 and {ROLL_POSITIONS}, got {final_value}")

        steps = self.total_steps()
        roll = {
            "finalValue": final_value,
            "position": None,
            "finished": False,
            "startedAt": format_instant(self.clock()),
        }

        with self.state.atomic():
            self.state.set_value(roll_state_key(roll_id), roll)
            self.store.schedule_after(
                roll_id,
                Duration(milliseconds=round(roll_delay_millis(steps))),
                RollAnimationPayload(
                    roll_id=roll_id,
                    position=first_position(final_value, steps),
                    remaining=steps - 1,
                ),
            )

        logger.info(f"Roll '{roll_id}' started with {steps} steps")
        return roll

    def get_roll(self, roll_id: str) -> dict[str, Any] | None:
        return self.state.get_value(roll_state_key(roll_id))

    def list_rolls(self) -> dict[str, dict[str, Any]]:
        prefix = roll_state_key("")
        return {key[len(prefix):]: value for key, value in self.state.values_with_prefix(prefix).items()}

    def cancel_roll(self, roll_id: str) -> bool:
        with self.state.atomic():
            had_step = self.store.cancel(roll_id) is not None
            had_state = self.state.delete_value(roll_state_key(roll_id))
        return had_step or had_state

    def on_step(self, notification: Notification) -> dict[str, Any] | None:
        """Highlight one position and schedule the next step, or finish the roll."""
        step: RollAnimationPayload = notification.payload
        key = roll_state_key(step.roll_id)
        roll = self.state.get_value(key)

        if roll is None:
            logger.debug(f"Dropping step of abandoned roll '{step.roll_id}'")
            return None

        roll["position"] = step.position

        with self.state.atomic():
            if step.remaining > 0:
                self.store.schedule_after(
                    notification.key,
                    Duration(milliseconds=round(roll_delay_millis(step.remaining))),
                    RollAnimationPayload(
                        roll_id=step.roll_id,
                        position=next_position(step.position),
                        remaining=step.remaining - 1,
                    ),
                )
            else:
                roll["finished"] = True
                logger.info(f"Roll '{step.roll_id}' finished on {step.position}")
            self.state.set_value(key, roll)

        return roll


__all__ = [
    "ROLL_POSITIONS",
    "RollAnimator",
    "first_position",
    "next_position",
    "roll_delay_millis",
    "roll_state_key",
]
