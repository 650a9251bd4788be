"""
Source Placement
================

Chooses the position of each newly spawned managed source.

Rejection sampling along the x axis:
    1. Draw an x offset uniformly in [-width/2, width/2] around the base
    2. Accept if the candidate is at least `min_spacing` from every
       existing source
    3. Give up after `attempts` draws and fall back to the deterministic
       position base + (count * min_spacing, 0, 0)

Sampling uses a numpy Generator so a fixed seed reproduces the layout.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from futility_core.models.source import Vector3


logger = logging.getLogger(__name__)


class SourcePlacer:
    """
    Spaced placement of emission points.

    Attributes:
        base_position: Position of the first managed source
        min_spacing: Minimum distance between sources
        spawn_area_width: Width of the sampled x range
        attempts: Maximum rejection-sampling draws per placement
    """

    def __init__(
        self,
        base_position: Vector3,
        min_spacing: float = 5.0,
        spawn_area_width: float = 20.0,
        attempts: int = 10,
        seed: Optional[int] = None,
    ) -> None:
        self.base_position = np.asarray(base_position, dtype=float)
        self.min_spacing = min_spacing
        self.spawn_area_width = spawn_area_width
        self.attempts = attempts
        self._rng = np.random.default_rng(seed)
        self._fallback_count: int = 0

    @property
    def fallback_count(self) -> int:
        """Placements that used the deterministic fallback."""
        return self._fallback_count

    def is_well_spaced(self, candidate: np.ndarray, existing: Sequence[Vector3]) -> bool:
        if not existing:
            return True
        others = np.asarray(existing, dtype=float)
        distances = np.linalg.norm(others - candidate, axis=1)
        return bool(np.all(distances >= self.min_spacing))

    def place(self, existing: Sequence[Vector3]) -> Vector3:
        """
        Pick a position for a new source.

        Args:
            existing: Positions of the sources already in the scene

        Returns:
            The chosen position
        """
        half = self.spawn_area_width / 2.0

        for _ in range(self.attempts):
            offset = self._rng.uniform(-half, half)
            candidate = self.base_position + np.array([offset, 0.0, 0.0])
            if self.is_well_spaced(candidate, existing):
                return _as_vector(candidate)

        self._fallback_count += 1
        fallback = self.base_position + np.array(
            [len(existing) * self.min_spacing, 0.0, 0.0]
        )
        logger.warning(
            f"No well-spaced position after {self.attempts} attempts, "
            f"using fallback x={fallback[0]:.2f}"
        )
        return _as_vector(fallback)


def _as_vector(arr: np.ndarray) -> Vector3:
    return (float(arr[0]), float(arr[1]), float(arr[2]))
