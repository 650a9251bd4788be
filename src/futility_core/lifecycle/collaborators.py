"""
Collaborator Bindings
=====================

Outward enable flags issued on phase entry and exit.

The core does not render, animate or play audio. It only tells external
services when to turn things on and off:

    Menu            enter: play ambient     exit: stop ambient
    Running         enter: movement on      exit: movement off
    Paused          enter: show "pause"     exit: hide "pause"
    Ending          enter: hide "near_fail"
    ShowingResults  enter: show "results"   exit: hide "results"

A missing collaborator is skipped. A collaborator that raises is logged
and the remaining hooks still run.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from futility_core.lifecycle.state_machine import FlowStateMachine
from futility_core.models.phase import FlowPhase


logger = logging.getLogger(__name__)


OVERLAY_PAUSE = "pause"
OVERLAY_RESULTS = "results"
OVERLAY_NEAR_FAIL = "near_fail"


class MovementService(Protocol):
    def enable_movement(self, enabled: bool) -> None: ...


class OverlayService(Protocol):
    def show_overlay(self, name: str) -> None: ...

    def hide_overlay(self, name: str) -> None: ...


class AmbientEffectsService(Protocol):
    def play_ambient(self) -> None: ...

    def stop_ambient(self) -> None: ...


@dataclass
class Collaborators:
    """External services driven by phase changes. Any may be None."""

    movement: Optional[MovementService] = None
    overlay: Optional[OverlayService] = None
    ambient: Optional[AmbientEffectsService] = None


def _safe(action: Callable[[], None], description: str) -> None:
    try:
        action()
    except Exception:
        logger.exception(f"Collaborator call failed: {description}")


def bind_collaborators(flow: FlowStateMachine, collaborators: Collaborators) -> None:
    """Register entry/exit hooks on `flow` for every present collaborator."""
    movement = collaborators.movement
    overlay = collaborators.overlay
    ambient = collaborators.ambient

    if ambient is not None:
        flow.add_entry_hook(
            FlowPhase.Menu,
            lambda _phase: _safe(ambient.play_ambient, "play_ambient"),
        )
        flow.add_exit_hook(
            FlowPhase.Menu,
            lambda _phase: _safe(ambient.stop_ambient, "stop_ambient"),
        )

    if movement is not None:
        flow.add_entry_hook(
            FlowPhase.Running,
            lambda _phase: _safe(lambda: movement.enable_movement(True), "enable_movement(True)"),
        )
        flow.add_exit_hook(
            FlowPhase.Running,
            lambda _phase: _safe(lambda: movement.enable_movement(False), "enable_movement(False)"),
        )

    if overlay is not None:
        _bind_overlay(flow, overlay, FlowPhase.Paused, OVERLAY_PAUSE)
        _bind_overlay(flow, overlay, FlowPhase.ShowingResults, OVERLAY_RESULTS)
        flow.add_entry_hook(
            FlowPhase.Ending,
            lambda _phase: _safe(
                lambda: overlay.hide_overlay(OVERLAY_NEAR_FAIL),
                f"hide_overlay({OVERLAY_NEAR_FAIL})",
            ),
        )

    bound = [name for name, value in vars(collaborators).items() if value is not None]
    logger.info(f"Collaborators bound: {', '.join(bound) or 'none'}")


def _bind_overlay(
    flow: FlowStateMachine,
    overlay: OverlayService,
    phase: Enum,
    name: str,
) -> None:
    flow.add_entry_hook(
        phase,
        lambda _phase: _safe(lambda: overlay.show_overlay(name), f"show_overlay({name})"),
    )
    flow.add_exit_hook(
        phase,
        lambda _phase: _safe(lambda: overlay.hide_overlay(name), f"hide_overlay({name})"),
    )
