"""
Burst Impulses
==============

Outward push applied to nearby bodies when a pressure burst starts.

For every non-kinematic body within `radius` of the source:

    d         = |body - center|
    direction = normalize(normalize(body - center) + (0, upward, 0))
    falloff   = clip(1 - d / radius, 0, 1)
    impulse   = direction * force * falloff

A body sitting exactly on the source is pushed straight up. At most
`max_bodies` bodies are affected per source, closest first.
"""

import logging
from typing import List, Sequence

import numpy as np

from futility_core.models.source import Impulse, PhysicsBody, Vector3


logger = logging.getLogger(__name__)


_UP = np.array([0.0, 1.0, 0.0])
_EPSILON = 1e-9


def compute_burst_impulses(
    center: Vector3,
    bodies: Sequence[PhysicsBody],
    radius: float = 3.0,
    force: float = 100.0,
    upward_modifier: float = 0.7,
    max_bodies: int = 20,
) -> List[Impulse]:
    """
    Compute the impulses for one burst source.

    Args:
        center: Burst origin (the source position)
        bodies: Candidate bodies reported by the physics collaborator
        radius: Maximum distance affected
        force: Impulse strength at distance zero
        upward_modifier: Upward bias added to the outward direction
        max_bodies: Maximum number of bodies affected

    Returns:
        One Impulse per affected body, closest first
    """
    if radius <= 0 or max_bodies <= 0:
        return []

    candidates = [body for body in bodies if not body.kinematic]
    if not candidates:
        return []

    origin = np.asarray(center, dtype=float)
    positions = np.asarray([body.position for body in candidates], dtype=float)
    offsets = positions - origin
    distances = np.linalg.norm(offsets, axis=1)

    in_range = np.flatnonzero(distances <= radius)
    order = in_range[np.argsort(distances[in_range], kind="stable")][:max_bodies]

    impulses: List[Impulse] = []
    for idx in order:
        distance = distances[idx]
        if distance > _EPSILON:
            direction = offsets[idx] / distance
        else:
            direction = _UP.copy()

        direction = direction + _UP * upward_modifier
        norm = np.linalg.norm(direction)
        if norm > _EPSILON:
            direction = direction / norm

        falloff = float(np.clip(1.0 - distance / radius, 0.0, 1.0))
        magnitude = force * falloff
        vector = direction * magnitude

        impulses.append(
            Impulse(
                body_id=candidates[idx].body_id,
                vector=(float(vector[0]), float(vector[1]), float(vector[2])),
                magnitude=magnitude,
            )
        )

    if len(in_range) > max_bodies:
        logger.debug(f"Burst affected {max_bodies} of {len(in_range)} bodies in range")

    return impulses
