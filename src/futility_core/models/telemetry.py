"""
Telemetry Models
================

Read-only output contract for display layers.

The snapshot is structured into three tiers:
    1. difficulty: Escalation curve and rubber-band state
    2. emission: Hazard sources, pressure and bursts
    3. session: Run counters and the failure limit

Output Contract:
    {
        "timestamp": 1770500938.284,
        "phase": "Running",
        "difficulty": {
            "emission_rate": 12.4,
            "multiplier": 1.31,
            "rubber_band": 0.97,
            "elapsed_minutes": 2.5
        },
        "emission": {
            "manager_state": "RUNNING",
            "active_sources": 2,
            "pressure_percentage": 0.42,
            "bursting": false
        },
        "session": {
            "particles_blocked": 310,
            "particles_escaped": 122,
            "escaped_fraction": 0.122
        }
    }

Design Rules:
    - Telemetry is produced by pure reads; building it never mutates state
    - Display layers poll at their own cadence
"""

from typing import Optional

from pydantic import BaseModel, Field

from futility_core.models.phase import FlowPhase, ManagerState


class DifficultyTelemetry(BaseModel):
    """
    Difficulty controller readings.

    Attributes:
        emission_rate: Total particles/second requested from all sources
        multiplier: Difficulty multiplier curve value
        rubber_band: Smoothed rubber-band factor in [0.5, 1.5]
        rubber_band_raw: Target rubber-band factor from the last window
        elapsed_minutes: Run time in minutes (paused time excluded)
    """

    emission_rate: float = Field(..., ge=0.0, description="Total emission rate")
    multiplier: float = Field(..., ge=0.0, description="Difficulty multiplier")
    rubber_band: float = Field(..., ge=0.0, description="Smoothed rubber band")
    rubber_band_raw: float = Field(..., ge=0.0, description="Raw rubber band")
    elapsed_minutes: float = Field(..., ge=0.0, description="Run time (minutes)")


class EmissionTelemetry(BaseModel):
    """
    Hazard source manager readings.

    Attributes:
        manager_state: Manager lifecycle state
        active_sources: Number of managed sources
        has_ambient_source: Whether the menu ambient leak exists
        pressure: Raw accumulated pressure
        pressure_percentage: pressure / threshold
        bursting: Whether a pressure burst is in progress
        burst_count: Bursts triggered this run
        per_source_rate: Rate currently assigned to each active source
    """

    manager_state: ManagerState
    active_sources: int = Field(..., ge=0)
    has_ambient_source: bool
    pressure: float = Field(..., ge=0.0)
    pressure_percentage: float = Field(..., ge=0.0)
    bursting: bool
    burst_count: int = Field(..., ge=0)
    per_source_rate: float = Field(default=0.0, ge=0.0)


class SessionTelemetry(BaseModel):
    """
    Run counters.

    Attributes:
        particles_blocked: Particles blocked this run
        particles_escaped: Particles escaped this run
        max_escaped: Current failure limit
        escaped_fraction: particles_escaped / max_escaped
        near_fail: Whether the near-fail warning has fired
        peak_multiplier: Highest multiplier reached this run
    """

    particles_blocked: int = Field(..., ge=0)
    particles_escaped: int = Field(..., ge=0)
    max_escaped: int = Field(..., ge=1)
    escaped_fraction: float = Field(..., ge=0.0)
    near_fail: bool
    peak_multiplier: float = Field(..., ge=0.0)


class TelemetrySnapshot(BaseModel):
    """Complete telemetry snapshot for one poll."""

    timestamp: float = Field(..., description="Clock time of the snapshot")
    phase: FlowPhase
    difficulty: DifficultyTelemetry
    emission: EmissionTelemetry
    session: SessionTelemetry


class RunSummary(BaseModel):
    """
    Frozen statistics of a finished run, shown during ShowingResults.

    No score is computed here: scoring formulas belong to the display layer.
    """

    survival_seconds: float = Field(..., ge=0.0)
    particles_blocked: int = Field(..., ge=0)
    particles_escaped: int = Field(..., ge=0)
    peak_multiplier: float = Field(..., ge=0.0)
    bursts: int = Field(..., ge=0)
    sources_spawned: int = Field(..., ge=0)
    ended_by_failure: bool = False
    final_emission_rate: Optional[float] = None
