"""
Emission Budgeter
=================

Divides a total emission rate evenly across the active sources.

    per_source = total / active_count
    per_source *= burst_multiplier      (while bursting)

Without a burst, the per-source rates sum to the total. The budget is
recomputed whenever the total or the active count changes. A request
with zero active sources is a no-op: nothing is divided by zero.
"""

import logging
from dataclasses import dataclass
from typing import Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BudgetAllocation:
    """
    Result of one budget computation.

    Attributes:
        total_rate: Requested total rate (particles/second)
        active_count: Number of sources sharing the budget
        per_source_rate: Rate assigned to each source
        burst_applied: Whether the burst multiplier was applied
    """

    total_rate: float
    active_count: int
    per_source_rate: float
    burst_applied: bool

    @property
    def effective_total(self) -> float:
        """Sum of all per-source rates."""
        return self.per_source_rate * self.active_count

    def __repr__(self) -> str:
        return (
            f"BudgetAllocation(total={self.total_rate:.2f}, "
            f"n={self.active_count}, per={self.per_source_rate:.2f}, "
            f"burst={self.burst_applied})"
        )


class EmissionBudgeter:
    """
    Even split of a total rate across N sources.

    Attributes:
        burst_multiplier: Per-source boost while a burst is active
    """

    def __init__(self, burst_multiplier: float = 3.0) -> None:
        if burst_multiplier < 1.0:
            raise ValueError("burst_multiplier must be >= 1")
        self.burst_multiplier = burst_multiplier
        self._last: Optional[BudgetAllocation] = None

    @property
    def last_allocation(self) -> Optional[BudgetAllocation]:
        return self._last

    def allocate(
        self,
        total_rate: float,
        active_count: int,
        bursting: bool = False,
    ) -> Optional[BudgetAllocation]:
        """
        Compute the per-source rate.

        Args:
            total_rate: Total particles/second to distribute
            active_count: Number of active sources
            bursting: Apply the burst multiplier

        Returns:
            The allocation, or None when there is nothing to allocate to
        """
        if active_count <= 0:
            logger.debug("Budget request with no active sources ignored")
            return None

        if total_rate < 0:
            logger.warning(f"Negative emission rate {total_rate} clamped to 0")
            total_rate = 0.0

        per_source = total_rate / active_count
        if bursting:
            per_source *= self.burst_multiplier

        self._last = BudgetAllocation(
            total_rate=total_rate,
            active_count=active_count,
            per_source_rate=per_source,
            burst_applied=bursting,
        )
        return self._last

    def reset(self) -> None:
        self._last = None
