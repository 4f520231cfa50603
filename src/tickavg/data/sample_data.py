"""
Sample tick generators and an async feeder for demos and tests.

Produces Decimal-priced ticks with configurable trend and volatility, or
ticks stamped by a (virtual) clock, and pushes them through a ``Channel``
one at a time.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Iterator, Sequence

from tickavg.clock import EPOCH, Clock, MockClock
from tickavg.models.types import Tick, to_decimal
from tickavg.streams.channel import Channel

logger = logging.getLogger(__name__)


def generate_ticks(
    n: int = 200,
    start_price: float = 22000.0,
    volatility: float = 0.002,
    trend: float = 0.0001,
    seed: int | None = 42,
    start: datetime = EPOCH,
    spacing: timedelta = timedelta(seconds=1),
) -> list[Tick]:
    """Generate a random-walk price series.

    Args:
        n: Number of ticks to generate.
        start_price: Starting price.
        volatility: Per-tick volatility (std dev of returns).
        trend: Drift per tick (+ve = uptrend, -ve = downtrend).
        seed: Random seed for reproducibility.
        start: Timestamp of the first tick.
        spacing: Time between consecutive ticks.

    Returns:
        List of ticks with prices rounded to 2 decimal places.
    """
    rng = random.Random(seed)

    ticks: list[Tick] = []
    price = start_price

    for i in range(n):
        # Log-normal return with drift
        ret = trend + volatility * rng.gauss(0, 1)
        price *= math.exp(ret)
        ticks.append(Tick(
            price=Decimal(f"{price:.2f}"),
            timestamp=start + i * spacing,
        ))

    return ticks


def sequential_ticks(n: int, clock: Clock) -> Iterator[Tick]:
    """Ticks priced 1, 2, ..., n, each stamped with ``clock`` when it is drawn."""
    for i in range(n):
        yield Tick(price=Decimal(i + 1), timestamp=clock.now())


def stamped_ticks(
    prices: Iterable[Decimal | int | float | str],
    clock: MockClock,
    gaps: Iterable[timedelta | float],
) -> Iterator[Tick]:
    """Yield ticks stamped by ``clock``, advancing it by ``gaps`` between arrivals.

    Each tick is released only after the clock has moved on to the next
    arrival, so a consumer evaluates tick k at the instant tick k+1 arrives;
    the last tick is evaluated at its own arrival instant. The first gap is
    applied before the first tick.
    """
    pending: Tick | None = None
    for price, gap in zip(prices, gaps):
        clock.add(gap)
        if pending is not None:
            yield pending
        pending = Tick(price=to_decimal(price), timestamp=clock.now())
    if pending is not None:
        yield pending


def ticks_from_prices(
    prices: Sequence[Decimal | int | float | str], timestamp: datetime = EPOCH
) -> list[Tick]:
    """Ticks for ``prices``, all sharing one timestamp."""
    return [Tick(price=to_decimal(p), timestamp=timestamp) for p in prices]


async def feed(
    channel: Channel[Tick],
    ticks: Iterable[Tick],
    *,
    cancel: asyncio.Event | None = None,
    interval: float = 0.0,
) -> int:
    """Send ``ticks`` through ``channel`` in order, then close it.

    Stops early when ``cancel`` is set. Returns the number of ticks taken by
    the receiver.
    """
    sent = 0
    try:
        for tick in ticks:
            if not await channel.send(tick, cancel):
                logger.info("Feed cancelled after %d ticks", sent)
                break
            sent += 1
            if interval > 0:
                await asyncio.sleep(interval)
    finally:
        channel.close()
    return sent
