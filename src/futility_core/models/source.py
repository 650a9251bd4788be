"""
Hazard Source Models
====================

Data models for emission points and the physics collaborator boundary.

The core never simulates physics. It asks a collaborator which bodies are
near a burst (PhysicsBody) and hands back the impulses to apply (Impulse).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


Vector3 = Tuple[float, float, float]


class SourceKind(str, Enum):
    """
    Role of an emission point.

    Attributes:
        AMBIENT: Menu-only aesthetic leak (no collisions, no scoring)
        MANAGED: Gameplay leak, budgeted and collidable
    """

    AMBIENT = "AMBIENT"
    MANAGED = "MANAGED"


@dataclass(slots=True)
class HazardSource:
    """
    One emission point.

    Mutated only by the HazardSourceManager that spawned it.

    Attributes:
        source_id: Stable identifier, e.g. "managed-2"
        kind: Ambient or managed
        position: World position (opaque outside placement and bursts)
        enabled: Emission on/off
        collision_enabled: Whether emitted particles collide
        current_rate: Particles per second currently assigned
        spawned_at: Run-clock time of creation
    """

    source_id: str
    kind: SourceKind
    position: Vector3
    enabled: bool = True
    collision_enabled: bool = False
    current_rate: float = 0.0
    spawned_at: float = 0.0

    @property
    def is_active(self) -> bool:
        """Managed and enabled: counts toward the emission budget."""
        return self.kind == SourceKind.MANAGED and self.enabled

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "source_id": self.source_id,
            "kind": self.kind.value,
            "position": [round(c, 3) for c in self.position],
            "enabled": self.enabled,
            "collision_enabled": self.collision_enabled,
            "current_rate": round(self.current_rate, 4),
        }


@dataclass(frozen=True, slots=True)
class PhysicsBody:
    """
    A rigid body reported by the physics collaborator.

    Attributes:
        body_id: Collaborator-side identifier
        position: World position
        kinematic: Kinematic bodies ignore impulses
    """

    body_id: str
    position: Vector3
    kinematic: bool = False


@dataclass(frozen=True, slots=True)
class Impulse:
    """An impulse the physics collaborator should apply to one body."""

    body_id: str
    vector: Vector3
    magnitude: float

    def __repr__(self) -> str:
        return f"Impulse({self.body_id}, |J|={self.magnitude:.2f})"
