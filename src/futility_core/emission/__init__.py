"""
Emission Module
===============

Hazard sources, their emission budget and pressure bursts.

    - manager: HazardSourceManager lifecycle and budgeting
    - placement: Spaced placement of new sources
    - burst: Outward impulses for a pressure burst
"""

from futility_core.emission.burst import compute_burst_impulses
from futility_core.emission.manager import HazardSourceManager
from futility_core.emission.placement import SourcePlacer

__all__ = [
    "HazardSourceManager",
    "SourcePlacer",
    "compute_burst_impulses",
]
