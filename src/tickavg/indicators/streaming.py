"""
Streaming averages over ticks, O(1) amortised work per tick.

Each indicator keeps a window and a running aggregate that are updated
incrementally (exact Decimal add/subtract) rather than recomputed from the
window, so the running sum never drifts away from the window contents.

Indicators are plain single-owner state machines; ``tickavg.streams`` drives
them from a task. Preconditions (``period >= 1``, ``0 < alpha <= 1``,
``duration > 0``) are validated by ``tickavg.config``, not here; behaviour
for values outside those ranges is undefined.
"""

from __future__ import annotations

import collections
import logging
from datetime import timedelta
from decimal import Decimal

from tickavg.clock import Clock
from tickavg.models.types import Tick, to_decimal

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)
_ONE = Decimal(1)


class MovingAverage:
    """Trailing mean of the last ``period`` prices.

    While the window fills, the divisor is the number of prices seen so far,
    not ``period``.
    """

    __slots__ = ("period", "_window", "_sum")

    def __init__(self, period: int) -> None:
        self.period = period
        self._window: collections.deque[Decimal] = collections.deque()
        self._sum: Decimal = _ZERO

    def update(self, tick: Tick) -> Decimal:
        self._window.append(tick.price)
        self._sum += tick.price
        if len(self._window) > self.period:
            self._sum -= self._window.popleft()
        return self._sum / len(self._window)

    @property
    def ready(self) -> bool:
        return len(self._window) == self.period

    @property
    def value(self) -> Decimal:
        if not self._window:
            return _ZERO
        return self._sum / len(self._window)

    def reset(self) -> None:
        self._window.clear()
        self._sum = _ZERO


class ExponentialMovingAverage:
    """EMA with a decay horizon of ``period`` ticks.

    Standard recurrence ``ema = alpha * price + (1 - alpha) * ema`` (the
    first tick gives ``alpha * price``). Once more than ``period`` prices
    have been seen, the contribution of the price leaving the horizon is
    removed first, estimated at its steady-state weight
    ``alpha * (1 - alpha) ** (period - 1)``. The estimate is only exact in
    steady state.
    """

    __slots__ = ("period", "alpha", "_decay", "_removal_factor", "_window", "_ema")

    def __init__(self, period: int, alpha: Decimal | float | str) -> None:
        self.period = period
        self.alpha: Decimal = to_decimal(alpha)
        self._decay: Decimal = _ONE - self.alpha
        # Weight of the oldest price in the horizon; 0 ** 0 is taken as 1.
        self._removal_factor: Decimal = (
            self._decay ** (period - 1) if period > 1 else _ONE
        )
        self._window: collections.deque[Decimal] = collections.deque()
        self._ema: Decimal = _ZERO

    def update(self, tick: Tick) -> Decimal:
        price = tick.price
        self._window.append(price)

        if len(self._window) > self.period:
            evicted = self._window.popleft()
            self._ema -= self.alpha * evicted * self._removal_factor
            self._ema = self.alpha * price + self._decay * self._ema
        elif len(self._window) == 1:
            self._ema = self.alpha * price
        else:
            self._ema = self.alpha * price + self._decay * self._ema
        return self._ema

    @property
    def ready(self) -> bool:
        return len(self._window) == self.period

    @property
    def value(self) -> Decimal:
        return self._ema

    def reset(self) -> None:
        self._window.clear()
        self._ema = _ZERO


class WindowedAverage:
    """Trailing mean of the ticks that arrived within ``duration``.

    Ages are measured with ``clock.since``. A tick that leaves the window
    empty (the gap since the previous tick exceeds ``duration``) produces
    no value: ``update`` returns ``None``.
    """

    __slots__ = ("duration", "clock", "_window", "_sum")

    def __init__(self, duration: timedelta, clock: Clock) -> None:
        self.duration = duration
        self.clock = clock
        self._window: collections.deque[Tick] = collections.deque()
        self._sum: Decimal = _ZERO

    def update(self, tick: Tick) -> Decimal | None:
        self._window.append(tick)
        self._sum += tick.price

        while self._window and self.clock.since(self._window[0].timestamp) > self.duration:
            self._sum -= self._window.popleft().price
        logger.debug(
            "Windowed average at %s, %d ticks held", self.clock.now(), len(self._window)
        )

        if not self._window:
            return None
        return self._sum / len(self._window)

    @property
    def value(self) -> Decimal:
        if not self._window:
            return _ZERO
        return self._sum / len(self._window)

    def reset(self) -> None:
        self._window.clear()
        self._sum = _ZERO
