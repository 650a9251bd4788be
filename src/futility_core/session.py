"""
Game Session
============

The explicit context object that owns one of each subsystem and wires
them together. There are no global singletons: two sessions are fully
independent.

Wiring:
    FlowStateMachine ──(old, new)──► GameSession._on_phase_changed
    DifficultyController ──(rate, multiplier)──► HazardSourceManager
    inbound blocked/escaped ──► difficulty window, pressure, stats

Phase Reactions:
    Starting        reset stats, queue Running
    Running         resume a paused run, otherwise start a fresh one
    Paused          pause difficulty and sources
    Ending          freeze stats, destroy sources, queue Cleaning
    Cleaning        stop difficulty, verify clean, queue ShowingResults
    ShowingResults  freeze the RunSummary
    Menu            ambient menu leak

Failure Rule:
    The run ends when escaped particles reach the failure limit. The leak
    always wins eventually; nothing ends the run any other way except an
    explicit end_game().
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from futility_core.config import Settings
from futility_core.difficulty.controller import DifficultyController
from futility_core.emission.manager import BodyQuery, HazardSourceManager, ImpulseSink
from futility_core.lifecycle.collaborators import OVERLAY_NEAR_FAIL, Collaborators, bind_collaborators
from futility_core.lifecycle.state_machine import FlowStateMachine, TransitionResult
from futility_core.models.phase import FlowPhase, ManagerState
from futility_core.models.telemetry import RunSummary, TelemetrySnapshot
from futility_core.observability.telemetry import build_telemetry


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SessionStats:
    """
    Per-run counters. No score is derived from them here.

    Attributes:
        particles_blocked: Blocked while Running
        particles_escaped: Escaped while Running
        peak_multiplier: Highest difficulty multiplier reached
        survival_seconds: Run time at Ending
        bursts: Pressure bursts triggered
        sources_spawned: Managed sources spawned
        near_fail_warned: Near-fail warning already issued this run
        ended_by_failure: Run ended by the failure rule
        final_emission_rate: Emission rate at Ending
    """

    particles_blocked: int = 0
    particles_escaped: int = 0
    peak_multiplier: float = 1.0
    survival_seconds: float = 0.0
    bursts: int = 0
    sources_spawned: int = 0
    near_fail_warned: bool = False
    ended_by_failure: bool = False
    final_emission_rate: Optional[float] = None

    def reset(self) -> None:
        self.particles_blocked = 0
        self.particles_escaped = 0
        self.peak_multiplier = 1.0
        self.survival_seconds = 0.0
        self.bursts = 0
        self.sources_spawned = 0
        self.near_fail_warned = False
        self.ended_by_failure = False
        self.final_emission_rate = None

    def to_summary(self) -> RunSummary:
        return RunSummary(
            survival_seconds=self.survival_seconds,
            particles_blocked=self.particles_blocked,
            particles_escaped=self.particles_escaped,
            peak_multiplier=self.peak_multiplier,
            bursts=self.bursts,
            sources_spawned=self.sources_spawned,
            ended_by_failure=self.ended_by_failure,
            final_emission_rate=self.final_emission_rate,
        )


class GameSession:
    """
    One game: flow, difficulty, sources and run statistics.

    Single-threaded. Drive it by calling `update()` once per frame and
    forwarding blocked/escaped events as they happen.

    Example:
        session = GameSession(load_config())
        session.start_game(current_time=0.0)     # Menu → Starting → Running
        session.on_particle_blocked(3)
        session.update(current_time=0.5)
        session.telemetry(current_time=0.5).phase  # FlowPhase.Running
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        collaborators: Optional[Collaborators] = None,
        body_query: Optional[BodyQuery] = None,
        impulse_sink: Optional[ImpulseSink] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or Settings()
        self.collaborators = collaborators or Collaborators()
        self._time = clock
        self._event_time: Optional[float] = None

        self.flow = FlowStateMachine()
        self.difficulty = DifficultyController(self.settings.difficulty, clock=clock)
        self.sources = HazardSourceManager(
            emission=self.settings.emission,
            pressure=self.settings.pressure,
            burst=self.settings.burst,
            rate_source=self.difficulty.get_current_emission_rate,
            body_query=body_query,
            impulse_sink=impulse_sink,
            fallback_rate=self.settings.difficulty.base_rate,
            clock=clock,
        )
        self.stats = SessionStats()
        self.summary: Optional[RunSummary] = None

        bind_collaborators(self.flow, self.collaborators)
        self.difficulty.subscribe(self._on_rate_changed)
        self.flow.subscribe(self._on_phase_changed)
        self.sources.initialize_menu_state()

        logger.info("GameSession ready in Menu")

    # =========================================================================
    # Time
    # =========================================================================

    def _stamp(self, current_time: Optional[float]) -> float:
        """Fix the clock reading used by phase reactions for this call."""
        self._event_time = self._time() if current_time is None else current_time
        return self._event_time

    @property
    def _reaction_time(self) -> float:
        return self._event_time if self._event_time is not None else self._time()

    # =========================================================================
    # Commands
    # =========================================================================

    @property
    def phase(self) -> Enum:
        return self.flow.current_phase

    def start_game(self, current_time: Optional[float] = None) -> TransitionResult:
        return self.request_transition(FlowPhase.Starting, current_time)

    def pause(self, current_time: Optional[float] = None) -> TransitionResult:
        return self.request_transition(FlowPhase.Paused, current_time)

    def resume(self, current_time: Optional[float] = None) -> TransitionResult:
        return self.request_transition(FlowPhase.Running, current_time)

    def end_game(self, current_time: Optional[float] = None) -> TransitionResult:
        return self.request_transition(FlowPhase.Ending, current_time)

    def return_to_menu(self, current_time: Optional[float] = None) -> TransitionResult:
        return self.request_transition(FlowPhase.Menu, current_time)

    def request_transition(
        self,
        target: Enum,
        current_time: Optional[float] = None,
    ) -> TransitionResult:
        """Validated transition; phase reactions run at `current_time`."""
        self._stamp(current_time)
        return self.flow.transition_to(target)

    def force_phase(
        self,
        target: Enum,
        current_time: Optional[float] = None,
    ) -> TransitionResult:
        """UNSAFE recovery transition (adjacency not checked)."""
        self._stamp(current_time)
        return self.flow.force_state(target)

    def reset(self, current_time: Optional[float] = None) -> Optional[TransitionResult]:
        """Force back to Menu from any phase."""
        self._stamp(current_time)
        return self.flow.reset()

    def subscribe_phase(self, callback: Callable[[Enum, Enum], None]) -> Callable[[], None]:
        """Register an extra flow subscriber, after the session's own."""
        return self.flow.subscribe(callback)

    # =========================================================================
    # Inbound events
    # =========================================================================

    def on_particle_blocked(self, count: int = 1) -> None:
        """Blocked particles count only while Running."""
        if count < 0:
            logger.warning(f"Negative blocked count {count} ignored")
            return
        if not self.flow.is_active():
            logger.debug(f"Blocked event ignored in {self.phase.name}")
            return
        self.stats.particles_blocked += count
        self.difficulty.on_blocked(count)
        self.sources.on_particle_blocked(count)

    def on_particle_escaped(self, count: int = 1) -> None:
        """Escaped particles count only while Running."""
        if count < 0:
            logger.warning(f"Negative escaped count {count} ignored")
            return
        if not self.flow.is_active():
            logger.debug(f"Escaped event ignored in {self.phase.name}")
            return
        self.stats.particles_escaped += count
        self.difficulty.on_escaped(count)

    # =========================================================================
    # Per-frame update
    # =========================================================================

    def failure_limit(self, current_time: Optional[float] = None) -> int:
        """Escaped particles that end the run at `current_time`."""
        elapsed = self.difficulty.get_elapsed_seconds(current_time)
        return self.settings.rules.scaled_max_escaped(elapsed)

    def update(self, current_time: Optional[float] = None) -> None:
        """Advance one frame: failure rule, difficulty tick, sources."""
        now = self._stamp(current_time)
        if not self.flow.is_active():
            return

        limit = self.failure_limit(now)
        escaped = self.stats.particles_escaped

        if escaped >= limit:
            logger.info(f"Failure limit reached: {escaped}/{limit} escaped. The leak wins.")
            self.stats.ended_by_failure = True
            self.flow.transition_to(FlowPhase.Ending)
            return

        if (
            not self.stats.near_fail_warned
            and escaped >= limit * self.settings.rules.near_fail_warn_percent
        ):
            self.stats.near_fail_warned = True
            logger.warning(f"Near failure: {escaped}/{limit} particles escaped")
            overlay = self.collaborators.overlay
            if overlay is not None:
                try:
                    overlay.show_overlay(OVERLAY_NEAR_FAIL)
                except Exception:
                    logger.exception("Near-fail overlay failed")

        if self.difficulty.tick_if_due(now):
            self.stats.peak_multiplier = max(
                self.stats.peak_multiplier,
                self.difficulty.get_current_multiplier(),
            )

        self.sources.update(now)

    # =========================================================================
    # Reactions
    # =========================================================================

    def _on_rate_changed(self, rate: float, multiplier: float) -> None:
        self.sources.set_total_emission_rate(rate)

    def _on_phase_changed(self, old: Enum, new: Enum) -> None:
        now = self._reaction_time

        if new == FlowPhase.Starting:
            self.stats.reset()
            self.summary = None
            self.flow.transition_to(FlowPhase.Running)

        elif new == FlowPhase.Running:
            if self.sources.state == ManagerState.PAUSED:
                self.difficulty.resume(now)
                self.sources.resume_run(now)
            else:
                self._begin_run(now)

        elif new == FlowPhase.Paused:
            self.difficulty.pause(now)
            self.sources.pause_run(now)

        elif new == FlowPhase.Ending:
            self._freeze_stats(now)
            self.sources.end_run()
            self.flow.transition_to(FlowPhase.Cleaning)

        elif new == FlowPhase.Cleaning:
            self.difficulty.stop()
            if not self.sources.is_clean:
                logger.warning("Sources not clean after Ending, clearing again")
                self.sources.end_run()
            self.flow.transition_to(FlowPhase.ShowingResults)

        elif new == FlowPhase.ShowingResults:
            self.summary = self.stats.to_summary()
            logger.info(
                f"Run over: survived {self.summary.survival_seconds:.1f}s, "
                f"blocked={self.summary.particles_blocked}, "
                f"escaped={self.summary.particles_escaped}, "
                f"peak_multiplier={self.summary.peak_multiplier:.2f}"
            )

        elif new == FlowPhase.Menu:
            self.difficulty.stop()
            self.sources.initialize_menu_state()

    def _begin_run(self, now: float) -> None:
        # A forced jump into Running may arrive with sources already stopped
        if self.sources.state != ManagerState.MENU:
            self.sources.initialize_menu_state()
        self.difficulty.reset(now)
        self.sources.start_run(now)
        logger.info("Run started")

    def _freeze_stats(self, now: float) -> None:
        if self.difficulty.is_running:
            self.stats.survival_seconds = self.difficulty.get_elapsed_seconds(now)
            self.stats.final_emission_rate = self.difficulty.get_current_emission_rate()
        self.stats.bursts = self.sources.burst_count
        self.stats.sources_spawned = self.sources.spawned_total

    # =========================================================================
    # Telemetry
    # =========================================================================

    def telemetry(self, current_time: Optional[float] = None) -> TelemetrySnapshot:
        now = self._time() if current_time is None else current_time
        return build_telemetry(
            flow=self.flow,
            difficulty=self.difficulty,
            sources=self.sources,
            stats=self.stats,
            max_escaped=self.failure_limit(now),
            timestamp=now,
        )

    def legal_targets(self) -> Sequence[str]:
        return sorted(phase.name for phase in self.flow.legal_transitions())

    def get_metrics(self) -> dict:
        """Get session metrics for observability."""
        return {
            "flow": self.flow.get_metrics(),
            "difficulty": self.difficulty.get_metrics(),
            "sources": self.sources.get_metrics(),
            "stats": {
                "particles_blocked": self.stats.particles_blocked,
                "particles_escaped": self.stats.particles_escaped,
                "peak_multiplier": round(self.stats.peak_multiplier, 4),
                "near_fail_warned": self.stats.near_fail_warned,
            },
        }
