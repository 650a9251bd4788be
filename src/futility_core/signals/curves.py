"""
Escalation Curves
=================

Two-keyframe interpolation curves for difficulty escalation.

A curve is a small explicit struct {t0, v0, t1, v1, easing}; no curve
editor or asset is involved.

Easing Choice (ease-in-out):
    Escalation starts slowly, accelerates through the middle of the run
    and flattens out near the end:

        u = clamp((t - t0) / (t1 - t0), 0, 1)
        s = 3u² - 2u³            (smoothstep, zero slope at both ends)
        value = v0 + (v1 - v0) * s

    Outside [t0, t1] the curve holds its endpoint values.
"""

from dataclasses import dataclass
from enum import Enum


class Easing(str, Enum):
    """Interpolation shapes."""

    LINEAR = "linear"
    EASE_IN_OUT = "ease_in_out"


def smoothstep(u: float) -> float:
    """Hermite ease-in-out on [0, 1]."""
    return u * u * (3.0 - 2.0 * u)


@dataclass(frozen=True, slots=True)
class EaseCurve:
    """
    Monotonic interpolation from (t0, v0) to (t1, v1).

    Attributes:
        t0: Start time (seconds)
        v0: Value at and before t0
        t1: End time (seconds), strictly greater than t0
        v1: Value at and after t1
        easing: Interpolation shape

    Example:
        curve = EaseCurve(0.0, 5.0, 600.0, 50.0)
        curve.evaluate(0.0)    # 5.0
        curve.evaluate(300.0)  # 27.5
        curve.evaluate(600.0)  # 50.0
    """

    t0: float
    v0: float
    t1: float
    v1: float
    easing: Easing = Easing.EASE_IN_OUT

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.t1 <= self.t0:
            raise ValueError("curve end time must be after start time")

    @property
    def duration(self) -> float:
        return self.t1 - self.t0

    def evaluate(self, t: float) -> float:
        """Evaluate the curve at time `t` (clamped to the endpoints)."""
        if t <= self.t0:
            return self.v0
        if t >= self.t1:
            return self.v1

        u = (t - self.t0) / self.duration
        if self.easing == Easing.EASE_IN_OUT:
            u = smoothstep(u)
        return self.v0 + (self.v1 - self.v0) * u
