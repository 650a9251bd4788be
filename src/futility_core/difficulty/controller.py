"""
Difficulty Controller
=====================

Computes the emission rate and difficulty multiplier for the current run.

Two inputs combine on a fixed 2 Hz cadence:
    - Escalation: time-based ease-in-out curves over run time
    - Rubber band: a performance correction from the blocked/escaped window

Tick Algorithm:
    curve      = emission_curve(elapsed)
    multiplier = multiplier_curve(elapsed)
    smoothed  += (raw - smoothed) * min(1, tick_delta / smooth_time)
    rate       = clamp(curve * smoothed, base_rate, max_rate)

Window Recompute (every window_seconds of run time):
    block_pct = blocked / max(1, total)
    raw       = clamp(1 - (block_pct - target) * strength, min_adj, max_adj)

    An empty window keeps the previous raw value.

Only `tick_if_due` changes the published rate and multiplier. Every
timer runs on the pausable run clock, so a paused run keeps its
escalation, window and smoothing state exactly where they were.
"""

import logging
import time
from typing import Callable, List, Optional

from futility_core.config import DifficultyConfig
from futility_core.signals.cadence import CadenceGate, RunClock
from futility_core.signals.performance import PerformanceWindow


logger = logging.getLogger(__name__)


RateCallback = Callable[[float, float], None]


class DifficultyController:
    """
    Escalation curve plus rubber-band correction.

    Before `reset()` is called the getters return the fallback values:
    base rate, multiplier 1 and rubber band 1.

    Example:
        controller = DifficultyController(DifficultyConfig())
        controller.subscribe(lambda rate, mult: print(rate, mult))
        controller.reset(current_time=0.0)        # publishes 5.0, 1.0
        controller.tick_if_due(current_time=600.0)
        controller.get_current_emission_rate()    # 50.0
    """

    def __init__(
        self,
        config: Optional[DifficultyConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or DifficultyConfig()
        self._time = clock

        self._emission_curve = self.config.emission_curve.build()
        self._multiplier_curve = self.config.multiplier_curve.build()
        self._rubber_band_enabled: bool = self.config.rubber_band.enabled

        self._clock = RunClock()
        self._gate = CadenceGate(self.config.update_interval)
        self._window = PerformanceWindow(
            window_duration=self.config.rubber_band.window_seconds,
        )

        self._rate: float = self.config.base_rate
        self._multiplier: float = 1.0
        self._rubber_band_raw: float = 1.0
        self._rubber_band_smoothed: float = 1.0
        self._last_block_ratio: Optional[float] = None
        self._tick_count: int = 0

        self._subscribers: List[RateCallback] = []

        logger.info(
            f"DifficultyController initialized: "
            f"rate={self.config.base_rate}-{self.config.max_rate}/s, "
            f"interval={self.config.update_interval}s, "
            f"rubber_band={'on' if self._rubber_band_enabled else 'off'}"
        )

    def _now(self, current_time: Optional[float]) -> float:
        return self._time() if current_time is None else current_time

    # -- Lifecycle --------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._clock.started

    @property
    def is_paused(self) -> bool:
        return self._clock.paused

    def reset(self, current_time: Optional[float] = None) -> None:
        """
        Start a fresh run at `current_time`.

        Zeroes elapsed time, counters and smoothing state, then publishes
        the base rate once.
        """
        now = self._now(current_time)
        self._restore_fallbacks()
        self._clock.start(now)
        self._gate.reset(0.0)
        self._window.roll(0.0)

        logger.info(f"Difficulty reset: rate={self._rate:.2f}/s, multiplier=1.0")
        self._notify()

    def stop(self) -> None:
        """Return to the idle fallback values without publishing."""
        self._clock.stop()
        self._gate.reset()
        self._window.roll(0.0)
        self._restore_fallbacks()
        logger.info("Difficulty stopped")

    def pause(self, current_time: Optional[float] = None) -> None:
        self._clock.pause(self._now(current_time))
        logger.debug("Difficulty clock paused")

    def resume(self, current_time: Optional[float] = None) -> None:
        self._clock.resume(self._now(current_time))
        logger.debug("Difficulty clock resumed")

    def _restore_fallbacks(self) -> None:
        self._rate = self.config.base_rate
        self._multiplier = 1.0
        self._rubber_band_raw = 1.0
        self._rubber_band_smoothed = 1.0
        self._last_block_ratio = None
        self._tick_count = 0

    # -- Inputs -----------------------------------------------------------------

    def on_blocked(self, count: int = 1) -> None:
        """Count `count` blocked particles in the performance window."""
        if count < 0:
            logger.warning(f"Negative blocked count {count} ignored")
            return
        self._window.record_blocked(count)

    def on_escaped(self, count: int = 1) -> None:
        """Count `count` escaped particles in the performance window."""
        if count < 0:
            logger.warning(f"Negative escaped count {count} ignored")
            return
        self._window.record_escaped(count)

    def subscribe(self, callback: RateCallback) -> None:
        """Register a (rate, multiplier) listener, called once per tick."""
        self._subscribers.append(callback)

    # -- Ticking ----------------------------------------------------------------

    def tick_if_due(self, current_time: Optional[float] = None) -> bool:
        """
        Advance the controller.

        Rolls the performance window when it is due, then recomputes the
        rate if at least `update_interval` of run time has passed since
        the previous tick.

        Returns:
            True if a tick ran and subscribers were notified
        """
        if not self._clock.started or self._clock.paused:
            return False

        run_time = self._clock.elapsed(self._now(current_time))

        if self._window.is_due(run_time):
            self._recompute_rubber_band()
            self._window.roll(run_time)

        if not self._gate.due(run_time):
            return False

        tick_delta = self._gate.mark(run_time)
        self._tick(run_time, tick_delta)
        return True

    def _recompute_rubber_band(self) -> None:
        """
        Derive a new raw adjustment from the closing window.

        Blocking above the target ratio lowers the adjustment (the run
        eases off a little); blocking below it raises the adjustment.
        An empty window keeps the previous value.
        """
        ratio = self._window.block_ratio()
        if ratio is None:
            logger.debug("Performance window empty, rubber band unchanged")
            return

        rb = self.config.rubber_band
        raw = 1.0 - (ratio - rb.target_block_ratio) * rb.strength
        self._rubber_band_raw = max(rb.min_adjustment, min(rb.max_adjustment, raw))
        self._last_block_ratio = ratio

        logger.info(
            f"Rubber band recomputed: block_ratio={ratio:.3f} "
            f"({self._window.blocked_in_window}/{self._window.total_in_window}), "
            f"raw={self._rubber_band_raw:.3f}"
        )

    def _tick(self, run_time: float, tick_delta: float) -> None:
        cfg = self.config

        curve = self._emission_curve.evaluate(run_time)
        self._multiplier = self._multiplier_curve.evaluate(run_time)

        if self._rubber_band_enabled:
            tau = cfg.rubber_band.smooth_time
            blend = min(1.0, tick_delta / tau)
            self._rubber_band_smoothed += (
                (self._rubber_band_raw - self._rubber_band_smoothed) * blend
            )
            curve *= self._rubber_band_smoothed

        self._rate = max(cfg.base_rate, min(cfg.max_rate, curve))
        self._tick_count += 1

        if self._tick_count % cfg.log_every_n_ticks == 0:
            logger.info(
                f"Difficulty [tick {self._tick_count}]: "
                f"t={run_time:.1f}s, rate={self._rate:.2f}/s, "
                f"multiplier={self._multiplier:.2f}, "
                f"rubber_band={self._rubber_band_smoothed:.3f}"
            )
        else:
            logger.debug(
                f"Difficulty tick: t={run_time:.2f}s, rate={self._rate:.3f}, "
                f"multiplier={self._multiplier:.3f}"
            )

        self._notify()

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self._rate, self._multiplier)
            except Exception:
                logger.exception("Difficulty subscriber failed")

    # -- Debug hooks ------------------------------------------------------------

    def set_difficulty_time(
        self,
        minutes: float,
        current_time: Optional[float] = None,
    ) -> None:
        """Jump the run clock to `minutes` of run time and force a tick."""
        if not self._clock.started:
            logger.warning("set_difficulty_time ignored: no run in progress")
            return

        now = self._now(current_time)
        target = max(0.0, minutes * 60.0)
        self._clock.shift(target - self._clock.elapsed(now))
        self._gate.reset()
        self._window.roll(target)

        logger.warning(f"Difficulty time jumped to {minutes:.2f} min")
        self.tick_if_due(now)

    def set_rubber_band_enabled(self, enabled: bool) -> None:
        self._rubber_band_enabled = enabled
        if not enabled:
            self._rubber_band_raw = 1.0
            self._rubber_band_smoothed = 1.0
        logger.info(f"Rubber band {'enabled' if enabled else 'disabled'}")

    # -- Getters ----------------------------------------------------------------

    def get_current_emission_rate(self) -> float:
        return self._rate

    def get_current_multiplier(self) -> float:
        return self._multiplier

    def get_rubber_band_adjustment(self) -> float:
        """Smoothed rubber-band factor, always within the configured bounds."""
        return self._rubber_band_smoothed

    def get_rubber_band_raw(self) -> float:
        return self._rubber_band_raw

    def get_elapsed_seconds(self, current_time: Optional[float] = None) -> float:
        return self._clock.elapsed(self._now(current_time))

    def get_elapsed_minutes(self, current_time: Optional[float] = None) -> float:
        return self.get_elapsed_seconds(current_time) / 60.0

    @property
    def window(self) -> PerformanceWindow:
        return self._window

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def get_metrics(self) -> dict:
        """Get controller metrics for observability."""
        return {
            "running": self.is_running,
            "paused": self.is_paused,
            "tick_count": self._tick_count,
            "emission_rate": round(self._rate, 4),
            "multiplier": round(self._multiplier, 4),
            "rubber_band_enabled": self._rubber_band_enabled,
            "rubber_band_raw": round(self._rubber_band_raw, 4),
            "rubber_band_smoothed": round(self._rubber_band_smoothed, 4),
            "last_block_ratio": self._last_block_ratio,
            "window_blocked": self._window.blocked_in_window,
            "window_total": self._window.total_in_window,
        }
