"""
Difficulty Controller Tests
===========================

Escalation curves, the 2 Hz cadence, the rubber band and pause behavior.
"""

import pytest

from futility_core.config import DifficultyConfig, RubberBandConfig
from futility_core.difficulty import DifficultyController


@pytest.fixture
def controller(difficulty_config, clock):
    return DifficultyController(difficulty_config, clock=clock)


class TestFallbacks:
    """Getters before a run starts."""

    def test_defaults_before_reset(self, controller):
        """Before reset the controller reports base rate, 1x, rubber band 1."""
        assert controller.get_current_emission_rate() == 5.0
        assert controller.get_current_multiplier() == 1.0
        assert controller.get_rubber_band_adjustment() == 1.0
        assert controller.get_elapsed_minutes(100.0) == 0.0

    def test_no_tick_before_reset(self, controller):
        """tick_if_due does nothing without a run."""
        assert controller.tick_if_due(10.0) is False


class TestReset:
    """Tests for reset()."""

    def test_reset_publishes_once(self, controller):
        """reset() publishes the base rate exactly once."""
        published = []
        controller.subscribe(lambda rate, mult: published.append((rate, mult)))

        controller.reset(current_time=0.0)

        assert published == [(5.0, 1.0)]

    def test_reset_clears_previous_run(self, controller):
        """A second reset starts from zero again."""
        controller.reset(current_time=0.0)
        controller.tick_if_due(600.0)
        assert controller.get_current_multiplier() == pytest.approx(3.0)

        controller.reset(current_time=1000.0)
        assert controller.get_current_emission_rate() == 5.0
        assert controller.get_current_multiplier() == 1.0
        assert controller.get_elapsed_minutes(1000.0) == 0.0

    def test_stop_restores_fallbacks(self, controller):
        """stop() returns to idle and disables ticking."""
        controller.reset(current_time=0.0)
        controller.tick_if_due(300.0)
        controller.stop()

        assert not controller.is_running
        assert controller.get_current_emission_rate() == 5.0
        assert controller.tick_if_due(400.0) is False


class TestCadence:
    """Tests for the 2 Hz tick cadence."""

    def test_tick_requires_interval(self, controller):
        """Ticks run only after update_interval of run time."""
        controller.reset(current_time=0.0)

        assert controller.tick_if_due(0.2) is False
        assert controller.tick_if_due(0.5) is True
        assert controller.tick_if_due(0.7) is False
        assert controller.tick_if_due(1.0) is True
        assert controller.tick_count == 2

    def test_tick_notifies_subscribers(self, controller):
        """Each tick publishes (rate, multiplier) once."""
        published = []
        controller.reset(current_time=0.0)
        controller.subscribe(lambda rate, mult: published.append((rate, mult)))

        controller.tick_if_due(0.5)
        controller.tick_if_due(0.6)

        assert len(published) == 1


class TestEscalation:
    """Tests for the time-based curves."""

    def test_end_of_curve(self, controller):
        """At 600 s the rate is 50 and the multiplier 3."""
        controller.reset(current_time=0.0)
        controller.tick_if_due(600.0)

        assert controller.get_current_emission_rate() == pytest.approx(50.0)
        assert controller.get_current_multiplier() == pytest.approx(3.0)

    def test_midpoint(self, controller):
        """Ease-in-out passes through the midpoint value at half time."""
        controller.reset(current_time=0.0)
        controller.tick_if_due(300.0)

        assert controller.get_current_emission_rate() == pytest.approx(27.5)
        assert controller.get_current_multiplier() == pytest.approx(2.0)

    def test_rate_is_monotonic_without_feedback(self, controller):
        """With an empty performance window the rate never decreases."""
        controller.reset(current_time=0.0)
        previous = 0.0
        for step in range(1, 1300):
            t = step * 0.5
            controller.tick_if_due(t)
            rate = controller.get_current_emission_rate()
            assert rate >= previous
            previous = rate

    def test_rate_clamped_to_max(self, clock):
        """The published rate never exceeds max_rate."""
        controller = DifficultyController(DifficultyConfig(max_rate=20.0), clock=clock)
        controller.reset(current_time=0.0)
        controller.tick_if_due(600.0)

        assert controller.get_current_emission_rate() == 20.0


class TestRubberBand:
    """Tests for the performance correction."""

    def test_blocking_everything_eases_off(self, controller):
        """A 100% block ratio yields raw = 1 - (1 - 0.6) * 0.2."""
        controller.reset(current_time=0.0)
        controller.on_blocked(100)
        controller.tick_if_due(10.0)

        assert controller.get_rubber_band_raw() == pytest.approx(0.92)
        assert controller.get_rubber_band_adjustment() == pytest.approx(0.92)

    def test_blocking_nothing_pushes_harder(self, controller):
        """A 0% block ratio yields raw = 1 + 0.6 * 0.2."""
        controller.reset(current_time=0.0)
        controller.on_escaped(50)
        controller.tick_if_due(10.0)

        assert controller.get_rubber_band_raw() == pytest.approx(1.12)

    def test_smoothing_is_gradual(self, controller):
        """One 0.5 s tick moves smoothed a tenth of the way (tau = 5 s)."""
        controller.reset(current_time=0.0)
        for step in range(1, 20):
            controller.tick_if_due(step * 0.5)

        controller.on_escaped(10)
        controller.tick_if_due(10.0)

        assert controller.get_rubber_band_raw() == pytest.approx(1.12)
        assert controller.get_rubber_band_adjustment() == pytest.approx(1.012)

    def test_empty_window_keeps_previous_value(self, controller):
        """A window with no events leaves raw unchanged but still rolls."""
        controller.reset(current_time=0.0)
        controller.on_escaped(10)
        controller.tick_if_due(10.0)
        assert controller.get_rubber_band_raw() == pytest.approx(1.12)

        controller.tick_if_due(20.0)
        assert controller.get_rubber_band_raw() == pytest.approx(1.12)
        assert controller.window.window_start == 20.0
        assert controller.window.total_in_window == 0

    def test_adjustment_stays_in_bounds(self, clock):
        """Even with an extreme strength the adjustment stays in [0.5, 1.5]."""
        config = DifficultyConfig(rubber_band=RubberBandConfig(strength=10.0))
        controller = DifficultyController(config, clock=clock)
        controller.reset(current_time=0.0)

        t = 0.0
        for window in range(20):
            if window % 2:
                controller.on_blocked(100)
            else:
                controller.on_escaped(100)
            for _ in range(20):
                t += 0.5
                controller.tick_if_due(t)
                assert 0.5 <= controller.get_rubber_band_adjustment() <= 1.5
                assert 0.5 <= controller.get_rubber_band_raw() <= 1.5

    def test_disabled_rubber_band(self, controller):
        """With the rubber band off the adjustment stays at 1."""
        controller.set_rubber_band_enabled(False)
        controller.reset(current_time=0.0)
        controller.on_escaped(100)
        controller.tick_if_due(10.0)

        assert controller.get_rubber_band_adjustment() == 1.0

    def test_negative_counts_ignored(self, controller):
        """Negative counts do not touch the window."""
        controller.reset(current_time=0.0)
        controller.on_blocked(-5)
        controller.on_escaped(-5)

        assert controller.window.total_in_window == 0


class TestPause:
    """Tests for pause/resume on the run clock."""

    def test_pause_freezes_time(self, controller):
        """Paused spans are excluded from elapsed run time."""
        controller.reset(current_time=0.0)
        controller.pause(current_time=100.0)

        assert controller.tick_if_due(500.0) is False
        assert controller.get_elapsed_minutes(500.0) == pytest.approx(100.0 / 60.0)

        controller.resume(current_time=500.0)
        assert controller.get_elapsed_seconds(560.0) == pytest.approx(160.0)

    def test_escalation_continues_after_resume(self, controller):
        """The curve continues from where it paused, not from zero."""
        controller.reset(current_time=0.0)
        controller.tick_if_due(300.0)
        controller.pause(current_time=300.0)
        controller.resume(current_time=10_000.0)
        controller.tick_if_due(10_000.5)

        assert controller.get_current_multiplier() == pytest.approx(2.0, abs=0.01)


class TestDebugHooks:
    """Tests for set_difficulty_time."""

    def test_jump_to_five_minutes(self, controller):
        """Jumping to 5 minutes forces a tick at 300 s of run time."""
        controller.reset(current_time=0.0)
        controller.set_difficulty_time(5.0, current_time=0.0)

        assert controller.get_elapsed_minutes(0.0) == pytest.approx(5.0)
        assert controller.get_current_emission_rate() == pytest.approx(27.5)

    def test_jump_without_run_is_ignored(self, controller):
        """Without a run the jump does nothing."""
        controller.set_difficulty_time(5.0, current_time=0.0)
        assert controller.get_elapsed_minutes(0.0) == 0.0

    def test_failing_subscriber_absorbed(self, controller):
        """A raising subscriber does not stop the tick."""
        controller.subscribe(lambda rate, mult: 1 / 0)
        controller.reset(current_time=0.0)

        assert controller.tick_if_due(1.0) is True
