"""
Error Types
===========

Only configuration problems raise. Everything else (illegal transitions,
unknown source ids, empty performance windows) is absorbed locally and
reported through return values and logs.
"""


class ConfigurationError(Exception):
    """Fatal misconfiguration. The system must refuse to start."""


class ForbiddenPhaseError(ConfigurationError):
    """A lifecycle phase name describes a winnable outcome."""

    def __init__(self, phase_name: str) -> None:
        self.phase_name = phase_name
        super().__init__(
            f"ILLEGAL PHASE DETECTED: {phase_name!r}. "
            "There is no victory: the leak always wins. "
            "Remove any victory-shaped phases."
        )
