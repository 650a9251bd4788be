"""
Run Clock and Cadence
=====================

Logically independent timers multiplexed onto one update loop.

    - RunClock: elapsed run time that excludes paused spans, so every
      timer measured on it (ticks, bursts, cooldowns, milestones) freezes
      on pause and continues on resume without being reset.
    - CadenceGate: answers "is it time to tick yet" for a fixed interval.

Nothing here blocks. Suspension is purely a timestamp compared against
the current time.
"""

import math
from typing import Optional


class RunClock:
    """
    Pausable elapsed-time clock.

    Timestamps passed in are caller clock readings (seconds, any epoch).
    `elapsed()` returns run time: seconds since `start()` minus every
    paused span.

    Example:
        clock = RunClock()
        clock.start(100.0)
        clock.pause(110.0)
        clock.elapsed(500.0)   # 10.0
        clock.resume(500.0)
        clock.elapsed(505.0)   # 15.0
    """

    def __init__(self) -> None:
        self._started_at: Optional[float] = None
        self._paused_at: Optional[float] = None
        self._paused_total: float = 0.0

    @property
    def started(self) -> bool:
        return self._started_at is not None

    @property
    def paused(self) -> bool:
        return self._paused_at is not None

    def start(self, now: float) -> None:
        """Start (or restart) the run at `now`."""
        self._started_at = now
        self._paused_at = None
        self._paused_total = 0.0

    def stop(self) -> None:
        """Forget the run entirely."""
        self._started_at = None
        self._paused_at = None
        self._paused_total = 0.0

    def pause(self, now: float) -> None:
        if self._started_at is None or self._paused_at is not None:
            return
        self._paused_at = now

    def resume(self, now: float) -> None:
        if self._paused_at is None:
            return
        self._paused_total += max(0.0, now - self._paused_at)
        self._paused_at = None

    def elapsed(self, now: float) -> float:
        """Run time at `now`. Zero before the run starts."""
        if self._started_at is None:
            return 0.0
        reference = self._paused_at if self._paused_at is not None else now
        return max(0.0, reference - self._started_at - self._paused_total)

    def shift(self, seconds: float) -> None:
        """Move the run start back by `seconds` (debug time travel)."""
        if self._started_at is not None:
            self._started_at -= seconds


class CadenceGate:
    """
    Fixed-interval gate on run time.

    `due(t)` is cheap and side-effect free; `mark(t)` records a tick and
    returns the run time elapsed since the previous one.
    """

    def __init__(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self._last: float = -math.inf

    @property
    def last(self) -> float:
        return self._last

    def due(self, run_time: float) -> bool:
        return run_time - self._last >= self.interval

    def mark(self, run_time: float) -> float:
        delta = run_time - self._last
        self._last = run_time
        return delta

    def reset(self, run_time: float = -math.inf) -> None:
        self._last = run_time
