"""
Unit tests for the streaming averages.

Tests: fill-phase divisor, eviction, EMA horizon correction, duration
eviction against a virtual clock, constant streams, window bounds, reset.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from tickavg.clock import MockClock
from tickavg.data.sample_data import generate_ticks, ticks_from_prices
from tickavg.indicators.streaming import (
    ExponentialMovingAverage,
    MovingAverage,
    WindowedAverage,
)
from tickavg.models.types import Tick, round_price

PRICES = [10, 20, 30, 40, 50]


def _run(indicator, ticks):
    return [indicator.update(t) for t in ticks]


class TestMovingAverage:
    def test_window_average(self):
        sma = MovingAverage(period=3)
        results = _run(sma, ticks_from_prices(PRICES))
        assert results == [Decimal(10), Decimal(15), Decimal(20), Decimal(30), Decimal(40)]

    def test_fill_phase_divides_by_ticks_seen(self):
        sma = MovingAverage(period=10)
        results = _run(sma, ticks_from_prices([3, 4]))
        assert results[1] == Decimal("3.5")  # (3+4)/2, not (3+4)/10
        assert not sma.ready

    def test_ready_once_full(self):
        sma = MovingAverage(period=2)
        _run(sma, ticks_from_prices([1, 2]))
        assert sma.ready

    def test_period_one_tracks_price(self):
        sma = MovingAverage(period=1)
        assert _run(sma, ticks_from_prices(["1.5", "7.25"])) == [Decimal("1.5"), Decimal("7.25")]

    def test_constant_input(self):
        sma = MovingAverage(period=5)
        for result in _run(sma, ticks_from_prices(["101.37"] * 12)):
            assert result == Decimal("101.37")

    def test_running_sum_does_not_drift(self):
        ticks = generate_ticks(n=2000, seed=7)
        sma = MovingAverage(period=50)
        for i, tick in enumerate(ticks):
            result = sma.update(tick)
            window = [t.price for t in ticks[max(0, i - 49): i + 1]]
            assert result == sum(window) / len(window)

    def test_within_window_bounds(self):
        ticks = generate_ticks(n=300, volatility=0.01, seed=3)
        sma = MovingAverage(period=7)
        for i, tick in enumerate(ticks):
            result = sma.update(tick)
            window = [t.price for t in ticks[max(0, i - 6): i + 1]]
            assert min(window) <= result <= max(window)

    def test_reset(self):
        sma = MovingAverage(period=3)
        _run(sma, ticks_from_prices(PRICES))
        sma.reset()
        assert sma.value == Decimal(0)
        assert sma.update(ticks_from_prices([8])[0]) == Decimal(8)


class TestExponentialMovingAverage:
    def test_horizon_corrected_values(self):
        ema = ExponentialMovingAverage(period=3, alpha=0.75)
        results = [round_price(v) for v in _run(ema, ticks_from_prices(PRICES))]
        assert results == [
            Decimal("7.50"),
            Decimal("16.88"),
            Decimal("26.72"),
            Decimal("36.56"),
            Decimal("46.41"),
        ]

    def test_exact_unrounded_values(self):
        ema = ExponentialMovingAverage(period=3, alpha="0.75")
        results = _run(ema, ticks_from_prices(PRICES))
        assert results == [
            Decimal("7.5"),
            Decimal("16.875"),
            Decimal("26.71875"),
            Decimal("36.5625"),
            Decimal("46.40625"),
        ]

    def test_first_tick_is_alpha_times_price(self):
        ema = ExponentialMovingAverage(period=5, alpha=Decimal("0.2"))
        assert ema.update(ticks_from_prices([50])[0]) == Decimal("10.0")

    def test_float_alpha_is_taken_at_face_value(self):
        ema = ExponentialMovingAverage(period=3, alpha=0.1)
        assert ema.alpha == Decimal("0.1")

    def test_alpha_one_period_one(self):
        ema = ExponentialMovingAverage(period=1, alpha=1)
        assert _run(ema, ticks_from_prices([4, 9, 2])) == [Decimal(4), Decimal(9), Decimal(2)]

    def test_constant_input_with_full_weight(self):
        ema = ExponentialMovingAverage(period=1, alpha=1)
        for result in _run(ema, ticks_from_prices(["42.5"] * 6)):
            assert result == Decimal("42.5")

    def test_reacts_to_change(self):
        ema = ExponentialMovingAverage(period=20, alpha="0.3")
        for _ in range(20):
            ema.update(ticks_from_prices([100])[0])
        before = ema.value
        result = ema.update(ticks_from_prices([200])[0])
        assert before < result < Decimal(200)

    def test_ready_and_reset(self):
        ema = ExponentialMovingAverage(period=2, alpha="0.5")
        _run(ema, ticks_from_prices([1, 2]))
        assert ema.ready
        ema.reset()
        assert not ema.ready
        assert ema.value == Decimal(0)


class TestWindowedAverage:
    def _tick(self, price, clock):
        return Tick(price=Decimal(price), timestamp=clock.now())

    def test_evicts_by_age(self):
        clock = MockClock()
        avg = WindowedAverage(timedelta(minutes=1), clock)

        t1 = self._tick(10, clock)
        clock.add(20)
        assert avg.update(t1) == Decimal(10)

        t2 = self._tick(20, clock)
        clock.add(20)
        assert avg.update(t2) == Decimal(15)

        t3 = self._tick(30, clock)
        clock.add(30)  # t1 is now 70s old
        assert avg.update(t3) == Decimal(25)

        t4 = self._tick(40, clock)
        clock.add(40)  # t2 90s, t3 70s old
        assert avg.update(t4) == Decimal(40)

        t5 = self._tick(50, clock)
        assert avg.update(t5) == Decimal(45)

    def test_age_equal_to_duration_is_kept(self):
        clock = MockClock()
        avg = WindowedAverage(timedelta(seconds=60), clock)
        avg.update(self._tick(10, clock))
        clock.add(60)
        assert avg.update(self._tick(20, clock)) == Decimal(15)

    def test_full_eviction_returns_none(self):
        clock = MockClock()
        avg = WindowedAverage(timedelta(seconds=10), clock)
        tick = self._tick(10, clock)
        clock.add(11)
        assert avg.update(tick) is None
        assert avg.value == Decimal(0)

    def test_recovers_after_full_eviction(self):
        clock = MockClock()
        avg = WindowedAverage(timedelta(seconds=10), clock)
        stale = self._tick(10, clock)
        clock.add(30)
        assert avg.update(stale) is None
        assert avg.update(self._tick(70, clock)) == Decimal(70)

    def test_uses_injected_clock_only(self):
        # Ticks from 1970 would be evicted at once by a wall clock.
        clock = MockClock()
        avg = WindowedAverage(timedelta(seconds=5), clock)
        assert avg.update(self._tick(3, clock)) == Decimal(3)

    def test_constant_input(self):
        clock = MockClock()
        avg = WindowedAverage(timedelta(seconds=30), clock)
        for _ in range(10):
            result = avg.update(self._tick("19.99", clock))
            clock.add(7)
            assert result == Decimal("19.99")

    def test_within_window_bounds(self):
        clock = MockClock()
        duration = timedelta(seconds=25)
        avg = WindowedAverage(duration, clock)
        held: list[Tick] = []
        for i, tick in enumerate(generate_ticks(n=200, volatility=0.01, seed=11)):
            stamped = Tick(price=tick.price, timestamp=clock.now())
            result = avg.update(stamped)
            held = [t for t in held + [stamped] if clock.now() - t.timestamp <= duration]
            prices = [t.price for t in held]
            assert min(prices) <= result <= max(prices)
            clock.add(3 + i % 5)

    def test_ages_come_from_clock_since(self):
        class StalledClock(MockClock):
            def since(self, t):
                return timedelta(0)

        clock = StalledClock()
        avg = WindowedAverage(timedelta(seconds=10), clock)
        tick = self._tick(10, clock)
        clock.add(3600)
        assert avg.update(tick) == Decimal(10)

    @pytest.mark.parametrize("gap,expect_skip", [(5, False), (10, False), (11, True)])
    def test_skip_only_when_gap_exceeds_duration(self, gap, expect_skip):
        clock = MockClock()
        avg = WindowedAverage(timedelta(seconds=10), clock)
        results = []
        for price in (1, 2, 3):
            tick = self._tick(price, clock)
            clock.add(gap)
            results.append(avg.update(tick))
        assert (None in results) is expect_skip
