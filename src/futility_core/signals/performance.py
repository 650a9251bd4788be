"""
Performance Window
==================

Fixed-length window of blocked/escaped counts feeding the rubber band.

    block_ratio = blocked_in_window / max(1, total_in_window)

The window is read once per roll and then cleared. An empty window
carries no information: it is never interpreted as "struggling".
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class PerformanceWindow:
    """
    Counters for the current window.

    Attributes:
        blocked_in_window: Particles blocked since window_start
        total_in_window: Particles blocked or escaped since window_start
        window_start: Run time the window opened
        window_duration: Window length (seconds)
    """

    blocked_in_window: int = 0
    total_in_window: int = 0
    window_start: float = 0.0
    window_duration: float = 10.0

    def record_blocked(self, count: int) -> None:
        self.blocked_in_window += count
        self.total_in_window += count

    def record_escaped(self, count: int) -> None:
        self.total_in_window += count

    def is_due(self, run_time: float) -> bool:
        return run_time - self.window_start >= self.window_duration

    @property
    def has_data(self) -> bool:
        return self.total_in_window > 0

    def block_ratio(self) -> Optional[float]:
        """Blocked fraction, or None for an empty window."""
        if not self.has_data:
            return None
        return self.blocked_in_window / max(1, self.total_in_window)

    def roll(self, run_time: float) -> None:
        """Clear the counters and open a new window at `run_time`."""
        self.blocked_in_window = 0
        self.total_in_window = 0
        self.window_start = run_time
