"""
Transition Codes
================

Fixed set of machine-readable outcome codes for flow transition requests.

Each request produces exactly ONE code. Codes are diagnostics only:
callers branch on the boolean result, never on the code.
"""

from enum import Enum


class TransitionCode(str, Enum):
    """
    Outcome of a transition request.

    Attributes:
        APPLIED: Legal transition executed (hooks + subscribers ran)
        FORCED: Adjacency bypassed via force_state (subscribers ran, no hooks)
        DEFERRED: Requested during notification; queued until it completes
        NOT_ADJACENT: Target is not reachable from the current phase
        FORBIDDEN_PHASE: Target name describes a winnable outcome
        UNKNOWN_PHASE: Target is not a member of the configured phase enum
        ALREADY_THERE: Forced to the phase it is already in
    """

    APPLIED = "APPLIED"
    FORCED = "FORCED"
    DEFERRED = "DEFERRED"
    NOT_ADJACENT = "NOT_ADJACENT"
    FORBIDDEN_PHASE = "FORBIDDEN_PHASE"
    UNKNOWN_PHASE = "UNKNOWN_PHASE"
    ALREADY_THERE = "ALREADY_THERE"
