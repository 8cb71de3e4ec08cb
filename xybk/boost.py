"""
Time-scheduled boost transitions.

A schedule is nothing but stored anchors; the effective boost is recomputed
from them on every read, so there is no background task to drive it.
"""

import enum
import logging
from dataclasses import dataclass, field

import numpy as np

from xybk.errors import BOOST_ALREADY_CHANGING, INVALID_BOOST, StateMachineViolation
from xybk.fixed_point import UINT32_MAX, interpolate

logger = logging.getLogger(__name__)

IDENTITY_BOOST = (1, 1)


class BoostMode(enum.Enum):
    UNBOOSTED = "unboosted"
    TRANSITIONING = "transitioning"
    BOOSTED = "boosted"


def _boost(value) -> np.uint32:
    return np.uint32(value)


@dataclass
class BoostSchedule:
    """
    The active transition between two boost pairs.

    Attributes:
        start_boost0, start_boost1 (np.uint32): Boost at ``start_time``.
        end_boost0, end_boost1 (np.uint32): Boost from ``end_time`` onwards.
        start_time, end_time (int): Transition anchors in seconds.
    """

    start_boost0: np.uint32 = field(default_factory=lambda: _boost(1))
    start_boost1: np.uint32 = field(default_factory=lambda: _boost(1))
    end_boost0: np.uint32 = field(default_factory=lambda: _boost(1))
    end_boost1: np.uint32 = field(default_factory=lambda: _boost(1))
    start_time: int = 0
    end_time: int = 0

    def __repr__(self) -> str:
        return (
            f"BoostSchedule(({self.start_boost0}, {self.start_boost1}) -> "
            f"({self.end_boost0}, {self.end_boost1}), [{self.start_time}, {self.end_time}])"
        )

    @property
    def target(self) -> tuple[int, int]:
        return int(self.end_boost0), int(self.end_boost1)

    def effective(self, now: int) -> tuple[int, int]:
        """Effective ``(boost0, boost1)`` at ``now``."""
        if now <= self.start_time:
            return int(self.start_boost0), int(self.start_boost1)
        if now >= self.end_time:
            return int(self.end_boost0), int(self.end_boost1)
        elapsed = now - self.start_time
        duration = self.end_time - self.start_time
        return (
            interpolate(int(self.start_boost0), int(self.end_boost0), elapsed, duration),
            interpolate(int(self.start_boost1), int(self.end_boost1), elapsed, duration),
        )

    def is_changing(self, now: int) -> bool:
        return now < self.end_time

    def mode(self, now: int) -> BoostMode:
        start = (int(self.start_boost0), int(self.start_boost1))
        if self.start_time < now < self.end_time and start != self.target:
            return BoostMode.TRANSITIONING
        if self.effective(now) == IDENTITY_BOOST:
            return BoostMode.UNBOOSTED
        return BoostMode.BOOSTED

    def schedule(self, target0: int, target1: int, now: int, window: int, max_boost: int) -> None:
        """
        Starts a transition from the current effective boost to ``(target0, target1)``.

        While a transition is still open the target may only move further away
        from the constant-product curve on both sides; anything else, in
        particular collapsing to ``(1, 1)``, must wait for the window to close.

        Raises:
            StateMachineViolation: ``IF: INVALID_BOOST`` for out-of-range targets,
                ``IF: BOOST_ALREADY_CHANGING`` for a disallowed re-target.
        """
        for value in (target0, target1):
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise TypeError(f"boost must be an integer, got {type(value)}")
            if not 1 <= value <= max_boost:
                raise StateMachineViolation(INVALID_BOOST, f"boost {value} outside [1, {max_boost}]")
        if now + window > UINT32_MAX:
            raise StateMachineViolation(INVALID_BOOST, "transition end does not fit in 32 bits")

        current0, current1 = self.effective(now)
        if self.is_changing(now) and (target0 < current0 or target1 < current1):
            raise StateMachineViolation(
                BOOST_ALREADY_CHANGING,
                f"transition to {self.target} open until {self.end_time}",
            )

        self.start_boost0, self.start_boost1 = _boost(current0), _boost(current1)
        self.end_boost0, self.end_boost1 = _boost(target0), _boost(target1)
        self.start_time = now
        self.end_time = now + window
        logger.info("Scheduled boost %s -> %s over [%d, %d]",
                    (current0, current1), (target0, target1), self.start_time, self.end_time)

    def reset(self) -> None:
        """Pins the schedule to the identity boost, keeping the time anchors."""
        self.start_boost0 = self.start_boost1 = _boost(1)
        self.end_boost0 = self.end_boost1 = _boost(1)
