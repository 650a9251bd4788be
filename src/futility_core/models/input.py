"""
Inbound Message Models
======================

Schemas for requests accepted by the service surface.

Example:
    {"target": "Paused"}
    {"count": 12}
"""

from pydantic import BaseModel, Field

from futility_core.models.phase import FlowPhase


class TransitionRequest(BaseModel):
    """Request to move the flow state machine to another phase."""

    target: FlowPhase = Field(..., description="Requested phase")


class ParticleEvent(BaseModel):
    """Blocked or escaped particle counter increment."""

    count: int = Field(default=1, ge=0, description="Number of particles")
