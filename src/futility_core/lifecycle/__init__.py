"""
Lifecycle Module
================

Fail-only game flow: the authoritative phase, its legal transitions and
the outward enable flags issued on phase changes.
"""

from futility_core.lifecycle.collaborators import (
    AmbientEffectsService,
    Collaborators,
    MovementService,
    OverlayService,
    bind_collaborators,
)
from futility_core.lifecycle.state_machine import (
    DEFAULT_TRANSITIONS,
    FlowStateMachine,
    TransitionResult,
)

__all__ = [
    "FlowStateMachine",
    "TransitionResult",
    "DEFAULT_TRANSITIONS",
    "Collaborators",
    "MovementService",
    "OverlayService",
    "AmbientEffectsService",
    "bind_collaborators",
]
