"""
Pressure Accumulator
====================

Turns player success into a scripted setback.

Every blocked particle adds pressure. Once pressure reaches the threshold
(and the cooldown since the previous burst has passed), the next
evaluation starts a burst: pressure drops to zero and the emitter runs at
a multiplied rate for `burst_duration` seconds.

Timing:
    All timestamps are run-clock seconds, so a paused run freezes the
    burst end and the cooldown exactly where they were.

Invariants:
    - current >= 0
    - no accumulation while bursting
    - two burst starts are never closer than `cooldown`
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum


logger = logging.getLogger(__name__)


class PressureEvent(str, Enum):
    """Result of one pressure evaluation."""

    NONE = "NONE"
    BURST_STARTED = "BURST_STARTED"
    BURST_ENDED = "BURST_ENDED"


@dataclass(slots=True)
class PressureState:
    """
    Mutable pressure state.

    Attributes:
        current: Accumulated pressure (>= 0)
        threshold: Pressure that releases a burst
        bursting: Whether a burst is in progress
        burst_ends_at: Run time at which the current burst ends
        last_burst_at: Run time of the last burst start (-inf if none)
        cooldown: Minimum run time between burst starts
    """

    current: float = 0.0
    threshold: float = 100.0
    bursting: bool = False
    burst_ends_at: float = 0.0
    last_burst_at: float = -math.inf
    cooldown: float = 12.0


class PressureAccumulator:
    """
    Pressure buildup and burst timing.

    Attributes:
        buildup_rate: Pressure added per blocked particle
        burst_duration: Length of a burst (seconds)
        enabled: When False, pressure never builds

    Example:
        acc = PressureAccumulator(buildup_rate=0.5, threshold=100.0)
        for _ in range(200):
            acc.add(1)
        acc.evaluate(now=1.0)   # PressureEvent.BURST_STARTED
    """

    def __init__(
        self,
        buildup_rate: float = 0.5,
        threshold: float = 100.0,
        cooldown: float = 12.0,
        burst_duration: float = 5.0,
        enabled: bool = True,
    ) -> None:
        if threshold <= 0:
            raise ValueError("threshold must be positive")
        if buildup_rate < 0:
            raise ValueError("buildup_rate must be non-negative")

        self.buildup_rate = buildup_rate
        self.burst_duration = burst_duration
        self.enabled = enabled
        self._state = PressureState(threshold=threshold, cooldown=cooldown)
        self._burst_count: int = 0

    @property
    def state(self) -> PressureState:
        return self._state

    @property
    def current(self) -> float:
        return self._state.current

    @property
    def threshold(self) -> float:
        return self._state.threshold

    @property
    def bursting(self) -> bool:
        return self._state.bursting

    @property
    def burst_count(self) -> int:
        return self._burst_count

    @property
    def percentage(self) -> float:
        """Pressure as a fraction of the threshold."""
        if self._state.threshold <= 0:
            return 0.0
        return self._state.current / self._state.threshold

    def add(self, count: int) -> float:
        """
        Add pressure for `count` blocked particles.

        Ignored while bursting or disabled.

        Returns:
            Current pressure after the update
        """
        if not self.enabled or self._state.bursting or count <= 0:
            return self._state.current
        self._state.current += count * self.buildup_rate
        return self._state.current

    def evaluate(self, now: float) -> PressureEvent:
        """
        Advance burst timing at run time `now`.

        Ends a finished burst, or starts a new one when pressure has
        reached the threshold and the cooldown has elapsed.
        """
        state = self._state

        if state.bursting:
            if now >= state.burst_ends_at:
                state.bursting = False
                return PressureEvent.BURST_ENDED
            return PressureEvent.NONE

        if (
            self.enabled
            and state.current >= state.threshold
            and now - state.last_burst_at >= state.cooldown
        ):
            state.bursting = True
            state.burst_ends_at = now + self.burst_duration
            state.last_burst_at = now
            state.current = 0.0
            self._burst_count += 1
            return PressureEvent.BURST_STARTED

        return PressureEvent.NONE

    def reset(self) -> None:
        """Zero pressure and burst state."""
        self._state.current = 0.0
        self._state.bursting = False
        self._state.burst_ends_at = 0.0
        self._state.last_burst_at = -math.inf
        self._burst_count = 0

    @property
    def is_clean(self) -> bool:
        return self._state.current == 0.0 and not self._state.bursting

    def get_metrics(self) -> dict:
        """Get accumulator metrics for observability."""
        return {
            "pressure": round(self._state.current, 3),
            "threshold": self._state.threshold,
            "percentage": round(self.percentage, 4),
            "bursting": self._state.bursting,
            "burst_count": self._burst_count,
        }
