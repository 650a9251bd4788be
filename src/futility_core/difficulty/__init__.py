"""
Difficulty Module
=================

Time-based escalation corrected by a performance rubber band.
"""

from futility_core.difficulty.controller import DifficultyController

__all__ = [
    "DifficultyController",
]
