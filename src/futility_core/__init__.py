"""
futility-core
=============

Control core for an unwinnable survival simulation.

An ever-escalating hazard source (an oil leak) that the player can only
delay, never stop. This package decides rates, budgets and legal lifecycle
transitions; rendering, audio, physics and UI are external collaborators.

Components:
    - lifecycle: Fail-only flow state machine and collaborator hooks
    - difficulty: Time-based escalation with rubber-band correction
    - emission: Multi-source hazard emitter with pressure bursts
    - signals: Leaf processors (curves, pressure, budget, run clock)
    - observability: Telemetry snapshots for display layers
    - session: The context object that owns and wires everything

Example:
    from futility_core.config import load_config
    from futility_core.session import GameSession

    session = GameSession(load_config())
    session.start_game()
    session.update()
"""

__version__ = "0.1.0"
__author__ = "futility-core contributors"

__all__ = [
    "__version__",
]
