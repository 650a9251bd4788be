"""
Signals Module
==============

Leaf processors shared by the difficulty controller and the hazard
source manager.

    - curves: Two-keyframe ease curves
    - cadence: Pausable run clock and fixed-interval gates
    - pressure: Pressure buildup and burst timing
    - budget: Even split of an emission rate across sources
    - performance: Blocked/escaped window for the rubber band
"""

from futility_core.signals.budget import BudgetAllocation, EmissionBudgeter
from futility_core.signals.cadence import CadenceGate, RunClock
from futility_core.signals.curves import EaseCurve, Easing
from futility_core.signals.performance import PerformanceWindow
from futility_core.signals.pressure import PressureAccumulator, PressureEvent

__all__ = [
    "BudgetAllocation",
    "EmissionBudgeter",
    "CadenceGate",
    "RunClock",
    "EaseCurve",
    "Easing",
    "PerformanceWindow",
    "PressureAccumulator",
    "PressureEvent",
]
