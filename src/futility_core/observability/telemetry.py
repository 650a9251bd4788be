"""
Telemetry Builder
=================

Assembles a TelemetrySnapshot from the live subsystems.

Pure reads: building a snapshot never mutates the flow machine, the
difficulty controller or the source manager.
"""

from typing import TYPE_CHECKING

from futility_core.models.telemetry import (
    DifficultyTelemetry,
    EmissionTelemetry,
    SessionTelemetry,
    TelemetrySnapshot,
)

if TYPE_CHECKING:
    from futility_core.difficulty.controller import DifficultyController
    from futility_core.emission.manager import HazardSourceManager
    from futility_core.lifecycle.state_machine import FlowStateMachine
    from futility_core.session import SessionStats


def build_telemetry(
    flow: "FlowStateMachine",
    difficulty: "DifficultyController",
    sources: "HazardSourceManager",
    stats: "SessionStats",
    max_escaped: int,
    timestamp: float,
) -> TelemetrySnapshot:
    """
    Build a snapshot of every telemetry getter.

    Args:
        flow: Flow state machine
        difficulty: Difficulty controller
        sources: Hazard source manager
        stats: Run counters
        max_escaped: Current failure limit
        timestamp: Clock reading the snapshot is taken at

    Returns:
        TelemetrySnapshot
    """
    max_escaped = max(1, max_escaped)

    return TelemetrySnapshot(
        timestamp=timestamp,
        phase=flow.current_phase,
        difficulty=DifficultyTelemetry(
            emission_rate=difficulty.get_current_emission_rate(),
            multiplier=difficulty.get_current_multiplier(),
            rubber_band=difficulty.get_rubber_band_adjustment(),
            rubber_band_raw=difficulty.get_rubber_band_raw(),
            elapsed_minutes=difficulty.get_elapsed_minutes(timestamp),
        ),
        emission=EmissionTelemetry(
            manager_state=sources.state,
            active_sources=sources.active_source_count,
            has_ambient_source=sources.has_ambient_source,
            pressure=sources.current_pressure,
            pressure_percentage=sources.pressure_percentage,
            bursting=sources.is_bursting,
            burst_count=sources.burst_count,
            per_source_rate=sources.per_source_rate,
        ),
        session=SessionTelemetry(
            particles_blocked=stats.particles_blocked,
            particles_escaped=stats.particles_escaped,
            max_escaped=max_escaped,
            escaped_fraction=stats.particles_escaped / max_escaped,
            near_fail=stats.near_fail_warned,
            peak_multiplier=stats.peak_multiplier,
        ),
    )
