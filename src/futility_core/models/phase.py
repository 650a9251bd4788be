"""
Phase Models
============

Discrete lifecycle values for the flow state machine and the hazard
source manager.

FlowPhase:
    Menu → Starting → Running ⇄ Paused → Ending → Cleaning → ShowingResults → Menu

ManagerState:
    Menu → Running ⇄ Paused → Stopped → Menu

There is NO victory phase. A phase whose name describes a winnable outcome
is a fatal configuration error; see `is_forbidden_phase_name`.
"""

import re
from enum import Enum
from typing import Iterable, Optional


# Substrings that are never allowed anywhere in a phase name.
FORBIDDEN_SUBSTRINGS = ("victory", "winner", "success", "succeeded")

# Whole words that are never allowed. "win" is matched per word so that
# "ShowingResults" (which contains the letters w-i-n) stays legal.
FORBIDDEN_WORDS = ("win", "winning")

_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


class FlowPhase(str, Enum):
    """
    Authoritative game phases.

    Attributes:
        Menu: Pre-game, ambient leak only
        Starting: Setup before the run begins
        Running: Active gameplay
        Paused: Gameplay frozen, resumable
        Ending: The leak has won, stopping the run
        Cleaning: Resetting every system
        ShowingResults: Displaying failure statistics
    """

    Menu = "Menu"
    Starting = "Starting"
    Running = "Running"
    Paused = "Paused"
    Ending = "Ending"
    Cleaning = "Cleaning"
    ShowingResults = "ShowingResults"


class ManagerState(str, Enum):
    """Lifecycle of the hazard source manager, driven by FlowPhase."""

    MENU = "MENU"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    STOPPED = "STOPPED"


def split_phase_words(name: str) -> list[str]:
    """Split a CamelCase / snake_case / kebab-case name into lowercase words."""
    spaced = _WORD_BOUNDARY.sub("_", name).lower()
    return [word for word in _NON_ALNUM.split(spaced) if word]


def is_forbidden_phase_name(name: str) -> bool:
    """
    Check whether a phase name describes a winnable outcome.

    Case-insensitive. Matches if the name contains any of
    FORBIDDEN_SUBSTRINGS, or if any of its words equals one of
    FORBIDDEN_WORDS.

    Examples:
        >>> is_forbidden_phase_name("Victory")
        True
        >>> is_forbidden_phase_name("WIN")
        True
        >>> is_forbidden_phase_name("ShowingResults")
        False
    """
    lowered = name.lower()
    if any(fragment in lowered for fragment in FORBIDDEN_SUBSTRINGS):
        return True
    return any(word in FORBIDDEN_WORDS for word in split_phase_words(name))


def find_forbidden_phase_name(names: Iterable[str]) -> Optional[str]:
    """Return the first forbidden name, or None if all are legal."""
    for name in names:
        if is_forbidden_phase_name(name):
            return name
    return None
