"""
Observability Module
====================

Read-only telemetry for display layers and the service surface.
"""

from futility_core.observability.telemetry import build_telemetry

__all__ = [
    "build_telemetry",
]
