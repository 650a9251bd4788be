"""
Hazard Source Manager
=====================

Owns every emission point and the pressure that counter-play builds up.

Manager States:
    MENU     One ambient source at a fixed rate, collisions off, no pressure
    RUNNING  One or more managed sources sharing the emission budget
    PAUSED   Emission and collisions off, everything else frozen verbatim
    STOPPED  No sources, pressure and burst zeroed

    MENU → RUNNING ⇄ PAUSED
    MENU / RUNNING / PAUSED → STOPPED → MENU

Cadences:
    update()       per frame: milestone spawns, then the throttled tick
    tick_if_due()  2 Hz: pressure evaluation and burst start/end

The total emission rate has a single writer (the difficulty controller,
through `set_total_emission_rate`). The manager only splits it.
"""

import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

from futility_core.config import BurstPhysicsConfig, EmissionConfig, PressureConfig
from futility_core.emission.burst import compute_burst_impulses
from futility_core.emission.placement import SourcePlacer
from futility_core.models.phase import ManagerState
from futility_core.models.source import HazardSource, Impulse, PhysicsBody, SourceKind, Vector3
from futility_core.signals.budget import EmissionBudgeter
from futility_core.signals.cadence import CadenceGate, RunClock
from futility_core.signals.pressure import PressureAccumulator, PressureEvent


logger = logging.getLogger(__name__)


BodyQuery = Callable[[Vector3, float], Sequence[PhysicsBody]]
ImpulseSink = Callable[[List[Impulse]], None]


AMBIENT_SOURCE_ID = "ambient"

_ALLOWED_STATES: Dict[ManagerState, frozenset] = {
    ManagerState.MENU: frozenset({ManagerState.RUNNING, ManagerState.STOPPED}),
    ManagerState.RUNNING: frozenset({ManagerState.PAUSED, ManagerState.STOPPED}),
    ManagerState.PAUSED: frozenset({ManagerState.RUNNING, ManagerState.STOPPED}),
    ManagerState.STOPPED: frozenset({ManagerState.MENU}),
}


class HazardSourceManager:
    """
    Multi-source emitter with pressure bursts.

    Attributes:
        emission: Source layout, milestones and cadence
        pressure_config: Pressure buildup and burst timing
        burst_config: Burst impulse physics

    Example:
        manager = HazardSourceManager(rate_source=lambda: 12.0)
        manager.initialize_menu_state()
        manager.start_run(current_time=0.0)
        manager.update(current_time=0.5)
        manager.active_source_count   # 1
    """

    def __init__(
        self,
        emission: Optional[EmissionConfig] = None,
        pressure: Optional[PressureConfig] = None,
        burst: Optional[BurstPhysicsConfig] = None,
        rate_source: Optional[Callable[[], float]] = None,
        body_query: Optional[BodyQuery] = None,
        impulse_sink: Optional[ImpulseSink] = None,
        placer: Optional[SourcePlacer] = None,
        fallback_rate: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.emission = emission or EmissionConfig()
        self.pressure_config = pressure or PressureConfig()
        self.burst_config = burst or BurstPhysicsConfig()

        self._rate_source = rate_source
        self._body_query = body_query
        self._impulse_sink = impulse_sink
        self._fallback_rate = fallback_rate
        self._time = clock

        self._placer = placer or SourcePlacer(
            base_position=self.emission.base_position,
            min_spacing=self.emission.min_spacing,
            spawn_area_width=self.emission.spawn_area_width,
            attempts=self.emission.placement_attempts,
            seed=self.emission.placement_seed,
        )
        self._pressure = PressureAccumulator(
            buildup_rate=self.pressure_config.buildup_rate,
            threshold=self.pressure_config.threshold,
            cooldown=self.pressure_config.cooldown,
            burst_duration=self.pressure_config.burst_duration,
            enabled=self.pressure_config.enabled,
        )
        self._budgeter = EmissionBudgeter(self.pressure_config.burst_multiplier)
        self._clock = RunClock()
        self._gate = CadenceGate(self.emission.update_interval)

        self._state = ManagerState.STOPPED
        self._sources: Dict[str, HazardSource] = {}
        self._paused_enabled: Dict[str, bool] = {}
        self._paused_collisions: Dict[str, bool] = {}
        self._total_rate: Optional[float] = None
        self._next_index: int = 1
        self._milestone_index: int = 0
        self._spawned_total: int = 0
        self._impulses_applied: int = 0

        self._spawn_subscribers: List[Callable[[int], None]] = []
        self._burst_subscribers: List[Callable[[float], None]] = []

        logger.info(
            f"HazardSourceManager initialized: max_sources={self.emission.max_sources}, "
            f"milestones={list(self.emission.milestones)}, "
            f"pressure_threshold={self.pressure_config.threshold}"
        )

    def _now(self, current_time: Optional[float]) -> float:
        return self._time() if current_time is None else current_time

    # =========================================================================
    # State handling
    # =========================================================================

    @property
    def state(self) -> ManagerState:
        return self._state

    def _set_state(self, target: ManagerState) -> bool:
        if target not in _ALLOWED_STATES[self._state]:
            logger.warning(
                f"Manager state change {self._state.value} → {target.value} not allowed"
            )
            return False
        logger.info(f"Manager state: {self._state.value} → {target.value}")
        self._state = target
        return True

    def _clear(self) -> None:
        """Destroy every source and zero pressure, burst and timers."""
        self._sources.clear()
        self._paused_enabled.clear()
        self._paused_collisions.clear()
        self._pressure.reset()
        self._budgeter.reset()
        self._clock.stop()
        self._gate.reset()
        self._milestone_index = 0
        self._next_index = 1

    def initialize_menu_state(self) -> None:
        """Clear everything, then show the single ambient menu leak."""
        if self._state != ManagerState.STOPPED:
            self.end_run()

        self._set_state(ManagerState.MENU)

        base = self.emission.base_position
        offset = self.emission.ambient_offset
        position = (base[0] + offset[0], base[1] + offset[1], base[2] + offset[2])
        self._sources[AMBIENT_SOURCE_ID] = HazardSource(
            source_id=AMBIENT_SOURCE_ID,
            kind=SourceKind.AMBIENT,
            position=position,
            enabled=True,
            collision_enabled=False,
            current_rate=self.emission.ambient_rate,
        )
        logger.info(f"Menu ambient source active at {self.emission.ambient_rate}/s")

    def start_run(self, current_time: Optional[float] = None) -> bool:
        """
        Replace the ambient source with the first managed source.

        Returns:
            True if the run started (only possible from MENU)
        """
        if self._state != ManagerState.MENU:
            logger.warning(f"start_run ignored in state {self._state.value}")
            return False

        now = self._now(current_time)
        self._clear()
        self._clock.start(now)
        self._gate.reset(0.0)
        self._spawned_total = 0
        self._impulses_applied = 0
        self._set_state(ManagerState.RUNNING)

        self._spawn_managed(0.0)
        self._apply_rate(self._resolve_rate())
        return True

    def pause_run(self, current_time: Optional[float] = None) -> bool:
        """Disable emission and collisions, freezing the run clock."""
        if self._state != ManagerState.RUNNING:
            logger.debug(f"pause_run ignored in state {self._state.value}")
            return False

        self._clock.pause(self._now(current_time))
        for source in self._sources.values():
            self._paused_enabled[source.source_id] = source.enabled
            self._paused_collisions[source.source_id] = source.collision_enabled
            source.enabled = False
            source.collision_enabled = False
        return self._set_state(ManagerState.PAUSED)

    def resume_run(self, current_time: Optional[float] = None) -> bool:
        """Restore emission and collisions and re-apply the current rate."""
        if self._state != ManagerState.PAUSED:
            logger.debug(f"resume_run ignored in state {self._state.value}")
            return False

        self._clock.resume(self._now(current_time))
        for source in self._sources.values():
            source.enabled = self._paused_enabled.get(source.source_id, True)
            source.collision_enabled = self._paused_collisions.get(source.source_id, True)
        self._paused_enabled.clear()
        self._paused_collisions.clear()
        self._set_state(ManagerState.RUNNING)
        self._apply_rate(self._resolve_rate())
        return True

    def end_run(self) -> None:
        """Destroy every source. Safe to call repeatedly."""
        if self._state == ManagerState.STOPPED:
            logger.debug("end_run: already stopped")
            return
        self._clear()
        self._set_state(ManagerState.STOPPED)

    # =========================================================================
    # Rates
    # =========================================================================

    def _resolve_rate(self) -> float:
        if self._rate_source is not None:
            try:
                return float(self._rate_source())
            except Exception:
                logger.exception("Rate source failed, using last known rate")
        if self._total_rate is not None:
            return self._total_rate
        return self._fallback_rate

    def set_total_emission_rate(self, rate: float) -> None:
        """Remember the total rate and split it across active sources."""
        self._total_rate = rate
        if self._state == ManagerState.RUNNING:
            self._apply_rate(rate)

    def _apply_rate(self, total: float) -> None:
        managed = self.managed_sources
        active = [source for source in managed if source.is_active]
        allocation = self._budgeter.allocate(total, len(active), self._pressure.bursting)
        if allocation is None:
            return
        for source in managed:
            source.current_rate = allocation.per_source_rate if source.is_active else 0.0
        logger.debug(f"Emission budget applied: {allocation!r}")

    # =========================================================================
    # Spawning
    # =========================================================================

    def _spawn_managed(self, run_time: float) -> Optional[HazardSource]:
        managed = self.managed_sources
        if len(managed) >= self.emission.max_sources:
            logger.debug("Spawn declined: max_sources reached")
            return None

        if managed:
            position = self._placer.place([source.position for source in managed])
        else:
            position = tuple(float(c) for c in self.emission.base_position)

        source = HazardSource(
            source_id=f"managed-{self._next_index}",
            kind=SourceKind.MANAGED,
            position=position,
            enabled=True,
            collision_enabled=True,
            spawned_at=run_time,
        )
        self._next_index += 1
        self._spawned_total += 1
        self._sources[source.source_id] = source

        count = len(self.managed_sources)
        logger.info(
            f"Spawned {source.source_id} at t={run_time:.1f}s "
            f"(x={position[0]:.2f}, total={count})"
        )
        for callback in list(self._spawn_subscribers):
            try:
                callback(count)
            except Exception:
                logger.exception("Spawn subscriber failed")
        return source

    def _check_milestones(self, run_time: float) -> None:
        milestones = self.emission.milestones
        while (
            self._milestone_index < len(milestones)
            and run_time >= milestones[self._milestone_index]
        ):
            self._milestone_index += 1
            if self._spawn_managed(run_time) is not None:
                self._apply_rate(self._resolve_rate())

    # =========================================================================
    # Per-frame and 2 Hz updates
    # =========================================================================

    def update(self, current_time: Optional[float] = None) -> None:
        """Per-frame bookkeeping: milestone spawns, then the throttled tick."""
        if self._state != ManagerState.RUNNING:
            return
        now = self._now(current_time)
        self._check_milestones(self._clock.elapsed(now))
        self.tick_if_due(now)

    def tick_if_due(self, current_time: Optional[float] = None) -> bool:
        """
        Evaluate pressure if the 2 Hz cadence is due.

        Returns:
            True if an evaluation ran
        """
        if self._state != ManagerState.RUNNING:
            return False

        run_time = self._clock.elapsed(self._now(current_time))
        if not self._gate.due(run_time):
            return False
        self._gate.mark(run_time)

        event = self._pressure.evaluate(run_time)
        if event == PressureEvent.BURST_STARTED:
            self._start_burst(run_time)
        elif event == PressureEvent.BURST_ENDED:
            logger.info(f"Pressure burst ended at t={run_time:.1f}s")
            self._apply_rate(self._resolve_rate())
        return True

    def _start_burst(self, run_time: float) -> None:
        multiplier = self.pressure_config.burst_multiplier
        logger.info(
            f"PRESSURE BURST #{self._pressure.burst_count} at t={run_time:.1f}s: "
            f"x{multiplier} for {self.pressure_config.burst_duration}s"
        )

        for source in self.managed_sources:
            if source.is_active:
                self._push_bodies(source)

        self._apply_rate(self._resolve_rate())

        for callback in list(self._burst_subscribers):
            try:
                callback(multiplier)
            except Exception:
                logger.exception("Burst subscriber failed")

    def _push_bodies(self, source: HazardSource) -> None:
        if self._body_query is None:
            return

        cfg = self.burst_config
        try:
            bodies = self._body_query(source.position, cfg.radius)
        except Exception:
            logger.exception(f"Body query failed for {source.source_id}")
            return

        impulses = compute_burst_impulses(
            center=source.position,
            bodies=bodies,
            radius=cfg.radius,
            force=cfg.force,
            upward_modifier=cfg.upward_modifier,
            max_bodies=cfg.max_affected_bodies,
        )
        if not impulses or self._impulse_sink is None:
            return

        try:
            self._impulse_sink(impulses)
        except Exception:
            logger.exception(f"Impulse sink failed for {source.source_id}")
            return
        self._impulses_applied += len(impulses)

    # =========================================================================
    # Inputs and subscriptions
    # =========================================================================

    def on_particle_blocked(self, count: int = 1) -> None:
        """Build pressure from blocked particles (RUNNING only)."""
        if self._state != ManagerState.RUNNING:
            return
        if count < 0:
            logger.warning(f"Negative blocked count {count} ignored")
            return
        self._pressure.add(count)

    def subscribe_spawn(self, callback: Callable[[int], None]) -> None:
        """Called with the managed source count after every spawn."""
        self._spawn_subscribers.append(callback)

    def subscribe_burst(self, callback: Callable[[float], None]) -> None:
        """Called with the burst multiplier when a burst starts."""
        self._burst_subscribers.append(callback)

    # =========================================================================
    # Per-source access
    # =========================================================================

    def get_source(self, source_id: str) -> Optional[HazardSource]:
        source = self._sources.get(source_id)
        if source is None:
            logger.warning(f"Unknown source id: {source_id!r}")
        return source

    def set_source_enabled(self, source_id: str, enabled: bool) -> None:
        source = self.get_source(source_id)
        if source is None:
            return
        if self._state == ManagerState.PAUSED:
            self._paused_enabled[source_id] = enabled
            return
        source.enabled = enabled
        if not enabled:
            source.current_rate = 0.0
        elif source.kind == SourceKind.AMBIENT:
            source.current_rate = self.emission.ambient_rate
        if self._state == ManagerState.RUNNING:
            self._apply_rate(self._resolve_rate())

    def set_source_collisions(self, source_id: str, enabled: bool) -> None:
        source = self.get_source(source_id)
        if source is None:
            return
        if self._state == ManagerState.PAUSED:
            self._paused_collisions[source_id] = enabled
            return
        source.collision_enabled = enabled

    def remove_source(self, source_id: str) -> None:
        source = self._sources.pop(source_id, None)
        if source is None:
            logger.warning(f"Unknown source id: {source_id!r}")
            return
        self._paused_enabled.pop(source_id, None)
        self._paused_collisions.pop(source_id, None)
        logger.info(f"Removed source {source_id}")
        if self._state == ManagerState.RUNNING:
            self._apply_rate(self._resolve_rate())

    # =========================================================================
    # Telemetry
    # =========================================================================

    @property
    def sources(self) -> List[HazardSource]:
        return list(self._sources.values())

    @property
    def managed_sources(self) -> List[HazardSource]:
        return [s for s in self._sources.values() if s.kind == SourceKind.MANAGED]

    @property
    def active_source_count(self) -> int:
        """Managed sources in the scene, paused ones included."""
        return len(self.managed_sources)

    @property
    def has_ambient_source(self) -> bool:
        return AMBIENT_SOURCE_ID in self._sources

    @property
    def current_pressure(self) -> float:
        return self._pressure.current

    @property
    def pressure_percentage(self) -> float:
        return self._pressure.percentage

    @property
    def is_bursting(self) -> bool:
        return self._pressure.bursting

    @property
    def burst_count(self) -> int:
        return self._pressure.burst_count

    @property
    def spawned_total(self) -> int:
        return self._spawned_total

    @property
    def per_source_rate(self) -> float:
        allocation = self._budgeter.last_allocation
        return allocation.per_source_rate if allocation is not None else 0.0

    @property
    def total_emission_rate(self) -> Optional[float]:
        """Last total pushed through `set_total_emission_rate`."""
        return self._total_rate

    @property
    def is_clean(self) -> bool:
        """No managed sources and no residual pressure or burst."""
        return not self.managed_sources and self._pressure.is_clean

    def get_run_time(self, current_time: Optional[float] = None) -> float:
        return self._clock.elapsed(self._now(current_time))

    def get_metrics(self) -> dict:
        """Get manager metrics for observability."""
        return {
            "state": self._state.value,
            "sources": [source.to_dict() for source in self._sources.values()],
            "managed_sources": self.active_source_count,
            "has_ambient_source": self.has_ambient_source,
            "total_emission_rate": self._total_rate,
            "per_source_rate": round(self.per_source_rate, 4),
            "spawned_total": self._spawned_total,
            "impulses_applied": self._impulses_applied,
            "placement_fallbacks": self._placer.fallback_count,
            **self._pressure.get_metrics(),
        }
