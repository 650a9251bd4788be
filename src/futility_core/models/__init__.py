"""
Data Models
===========

Models shared across the futility core.

Models:
    Phases:
        - FlowPhase: Authoritative game phases (no victory phase exists)
        - ManagerState: Hazard source manager lifecycle

    Sources:
        - HazardSource: One emission point
        - PhysicsBody, Impulse: Physics collaborator boundary

    Transitions:
        - TransitionCode: Outcome code of a transition request

    Telemetry:
        - TelemetrySnapshot: Complete read-only snapshot
        - RunSummary: Frozen statistics of a finished run

    Input:
        - TransitionRequest, ParticleEvent: Service request bodies
"""

from futility_core.models.phase import FlowPhase, ManagerState, is_forbidden_phase_name
from futility_core.models.reason_codes import TransitionCode
from futility_core.models.source import HazardSource, Impulse, PhysicsBody, SourceKind
from futility_core.models.telemetry import (
    DifficultyTelemetry,
    EmissionTelemetry,
    RunSummary,
    SessionTelemetry,
    TelemetrySnapshot,
)
from futility_core.models.input import ParticleEvent, TransitionRequest

__all__ = [
    # Phases
    "FlowPhase",
    "ManagerState",
    "is_forbidden_phase_name",
    # Transitions
    "TransitionCode",
    # Sources
    "HazardSource",
    "SourceKind",
    "PhysicsBody",
    "Impulse",
    # Telemetry
    "DifficultyTelemetry",
    "EmissionTelemetry",
    "SessionTelemetry",
    "TelemetrySnapshot",
    "RunSummary",
    # Input
    "TransitionRequest",
    "ParticleEvent",
]
