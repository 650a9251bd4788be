"""
Signal Processor Tests
======================

Leaf components: curves, run clock, pressure, budget and the
performance window.
"""

import pytest

from futility_core.signals import (
    CadenceGate,
    EaseCurve,
    Easing,
    EmissionBudgeter,
    PerformanceWindow,
    PressureAccumulator,
    PressureEvent,
    RunClock,
)


class TestEaseCurve:
    """Tests for two-keyframe curves."""

    def test_endpoints_and_clamping(self):
        """The curve holds its endpoint values outside [t0, t1]."""
        curve = EaseCurve(0.0, 5.0, 600.0, 50.0)
        assert curve.evaluate(-10.0) == 5.0
        assert curve.evaluate(0.0) == 5.0
        assert curve.evaluate(600.0) == 50.0
        assert curve.evaluate(9999.0) == 50.0

    def test_ease_in_out_is_slow_at_the_edges(self):
        """Ease-in-out lags linear early on and leads it late."""
        eased = EaseCurve(0.0, 0.0, 100.0, 1.0, Easing.EASE_IN_OUT)
        linear = EaseCurve(0.0, 0.0, 100.0, 1.0, Easing.LINEAR)

        assert eased.evaluate(10.0) < linear.evaluate(10.0)
        assert eased.evaluate(90.0) > linear.evaluate(90.0)
        assert eased.evaluate(50.0) == pytest.approx(0.5)

    def test_monotonic(self):
        """An increasing curve never decreases."""
        curve = EaseCurve(0.0, 1.0, 600.0, 3.0)
        values = [curve.evaluate(t) for t in range(0, 700, 7)]
        assert values == sorted(values)

    def test_invalid_span(self):
        """t1 must be after t0."""
        with pytest.raises(ValueError):
            EaseCurve(10.0, 0.0, 10.0, 1.0)


class TestRunClock:
    """Tests for the pausable run clock."""

    def test_elapsed_before_start(self):
        """Elapsed is zero before start."""
        assert RunClock().elapsed(123.0) == 0.0

    def test_pause_excludes_span(self):
        """Multiple paused spans are all excluded."""
        clock = RunClock()
        clock.start(10.0)
        clock.pause(20.0)
        clock.resume(50.0)
        clock.pause(60.0)
        assert clock.elapsed(1000.0) == pytest.approx(20.0)
        clock.resume(100.0)
        assert clock.elapsed(105.0) == pytest.approx(25.0)

    def test_double_pause_is_harmless(self):
        """Pausing twice keeps the first pause timestamp."""
        clock = RunClock()
        clock.start(0.0)
        clock.pause(5.0)
        clock.pause(8.0)
        clock.resume(10.0)
        assert clock.elapsed(10.0) == pytest.approx(5.0)

    def test_shift(self):
        """shift() moves the run start back."""
        clock = RunClock()
        clock.start(0.0)
        clock.shift(60.0)
        assert clock.elapsed(0.0) == pytest.approx(60.0)


class TestCadenceGate:
    """Tests for the fixed-interval gate."""

    def test_first_tick_due_immediately(self):
        """A fresh gate is due at once."""
        gate = CadenceGate(0.5)
        assert gate.due(0.0)

    def test_mark_returns_delta(self):
        """mark() returns the time since the previous tick."""
        gate = CadenceGate(0.5)
        gate.mark(1.0)
        assert not gate.due(1.2)
        assert gate.due(1.5)
        assert gate.mark(1.75) == pytest.approx(0.75)

    def test_non_positive_interval(self):
        """The interval must be positive."""
        with pytest.raises(ValueError):
            CadenceGate(0.0)


class TestPressureAccumulator:
    """Tests for pressure buildup and bursts."""

    def test_default_threshold_needs_200_blocks(self):
        """At 0.5 per particle, 200 blocked particles reach 100."""
        acc = PressureAccumulator()
        acc.add(199)
        assert acc.evaluate(0.0) == PressureEvent.NONE
        acc.add(1)
        assert acc.evaluate(0.5) == PressureEvent.BURST_STARTED
        assert acc.current == 0.0
        assert acc.bursting

    def test_no_accumulation_while_bursting(self):
        """Blocks during a burst add nothing."""
        acc = PressureAccumulator(threshold=10.0, buildup_rate=1.0)
        acc.add(10)
        acc.evaluate(0.0)
        acc.add(50)
        assert acc.current == 0.0

    def test_burst_ends_after_duration(self):
        """The burst ends burst_duration seconds after it started."""
        acc = PressureAccumulator(threshold=10.0, buildup_rate=1.0, burst_duration=5.0)
        acc.add(10)
        acc.evaluate(100.0)

        assert acc.evaluate(104.5) == PressureEvent.NONE
        assert acc.evaluate(105.0) == PressureEvent.BURST_ENDED
        assert not acc.bursting

    def test_cooldown_between_bursts(self):
        """Two burst starts are never closer than the cooldown."""
        acc = PressureAccumulator(
            threshold=10.0, buildup_rate=1.0, burst_duration=1.0, cooldown=12.0,
        )
        starts = []
        t = 0.0
        while t < 60.0:
            acc.add(100)
            if acc.evaluate(t) == PressureEvent.BURST_STARTED:
                starts.append(t)
            t += 0.5

        assert len(starts) >= 2
        assert all(b - a >= 12.0 for a, b in zip(starts, starts[1:]))

    def test_disabled(self):
        """A disabled accumulator never builds pressure."""
        acc = PressureAccumulator(enabled=False)
        acc.add(10_000)
        assert acc.current == 0.0
        assert acc.evaluate(0.0) == PressureEvent.NONE

    def test_reset(self):
        """reset() zeroes pressure and burst state."""
        acc = PressureAccumulator(threshold=10.0, buildup_rate=1.0)
        acc.add(10)
        acc.evaluate(0.0)
        acc.reset()
        assert acc.is_clean
        assert acc.burst_count == 0

    def test_percentage(self):
        """percentage is current / threshold."""
        acc = PressureAccumulator()
        acc.add(100)
        assert acc.percentage == pytest.approx(0.5)


class TestEmissionBudgeter:
    """Tests for budget redistribution."""

    def test_even_split_sums_to_total(self):
        """Per-source rates sum to the total."""
        budgeter = EmissionBudgeter()
        for count in range(1, 6):
            allocation = budgeter.allocate(30.0, count)
            assert allocation.effective_total == pytest.approx(30.0)

    def test_burst_multiplier(self):
        """While bursting each source gets three times its share."""
        budgeter = EmissionBudgeter(burst_multiplier=3.0)
        allocation = budgeter.allocate(30.0, 3, bursting=True)
        assert allocation.per_source_rate == pytest.approx(30.0)
        assert allocation.effective_total == pytest.approx(90.0)

    def test_zero_sources_is_noop(self):
        """No sources means no allocation and no division."""
        budgeter = EmissionBudgeter()
        assert budgeter.allocate(30.0, 0) is None
        assert budgeter.last_allocation is None

    def test_negative_rate_clamped(self):
        """A negative total is treated as zero."""
        allocation = EmissionBudgeter().allocate(-5.0, 2)
        assert allocation.per_source_rate == 0.0


class TestPerformanceWindow:
    """Tests for the blocked/escaped window."""

    def test_block_ratio(self):
        """block_ratio is blocked / total."""
        window = PerformanceWindow()
        window.record_blocked(6)
        window.record_escaped(4)
        assert window.block_ratio() == pytest.approx(0.6)

    def test_empty_window_has_no_ratio(self):
        """An empty window carries no information."""
        assert PerformanceWindow().block_ratio() is None

    def test_roll(self):
        """roll() clears counters and moves the start."""
        window = PerformanceWindow(window_duration=10.0)
        window.record_blocked(3)
        assert window.is_due(10.0)
        window.roll(10.0)
        assert window.total_in_window == 0
        assert not window.is_due(19.0)
