"""
Operator tasks: run a streaming indicator against a live tick stream.

Every operator consumes a tick stream (a ``Channel`` or any async iterator
of ``Tick``) plus a cancellation ``asyncio.Event`` and produces a stream of
``Decimal`` averages. The output ends exactly when the input is exhausted or
the event is set:

- End of input: ticks already received are processed, then the output closes.
- Cancellation: no further tick is started and the output closes. A value is
  never emitted for a tick whose processing had not begun when the event fired.

``spawn`` runs an operator as its own ``asyncio.Task`` behind a rendezvous
output channel; ``run_average`` is the same loop as an async generator for
callers that want to drive it inline.

Usage::

    cancel = asyncio.Event()
    ticks: Channel[Tick] = Channel()
    averages = moving_average(ticks, period=3, cancel=cancel)
    async for avg in averages:
        print(round_price(avg))
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from decimal import Decimal
from typing import AsyncIterator, Protocol, Union

from tickavg.clock import Clock
from tickavg.indicators.streaming import (
    ExponentialMovingAverage,
    MovingAverage,
    WindowedAverage,
)
from tickavg.models.types import Tick
from tickavg.streams.channel import (
    Channel,
    ChannelClosedError,
    OperationCancelledError,
)

logger = logging.getLogger(__name__)

TickStream = Union[Channel[Tick], AsyncIterator[Tick]]

# Strong references to running operator tasks.
_running: set[asyncio.Task] = set()


class TickIndicator(Protocol):
    def update(self, tick: Tick) -> Decimal | None: ...

    def reset(self) -> None: ...


async def _next_tick(ticks: TickStream, cancel: asyncio.Event) -> Tick:
    """Receive one tick, racing the cancel event.

    Raises ``ChannelClosedError`` at end of input and
    ``OperationCancelledError`` when cancelled first.
    """
    if isinstance(ticks, Channel):
        return await ticks.receive(cancel)

    pending = asyncio.ensure_future(_anext(ticks))
    cancelled = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait((pending, cancelled), return_when=asyncio.FIRST_COMPLETED)
    finally:
        cancelled.cancel()
        if not pending.done():
            pending.cancel()
    if cancel.is_set():
        # Whatever arrived alongside the cancellation is dropped.
        await asyncio.wait((pending,))
        if not pending.cancelled():
            pending.exception()
        raise OperationCancelledError()
    return pending.result()


async def _anext(ticks: AsyncIterator[Tick]) -> Tick:
    try:
        return await ticks.__anext__()
    except StopAsyncIteration:
        raise ChannelClosedError("tick stream exhausted") from None


async def run_average(
    indicator: TickIndicator, ticks: TickStream, cancel: asyncio.Event
) -> AsyncIterator[Decimal]:
    """Yield ``indicator.update(tick)`` for every tick, skipping ``None``.

    The indicator's state belongs to this run and is reset when it ends.
    """
    name = type(indicator).__name__
    received = 0
    emitted = 0
    logger.info("%s started", name)
    try:
        while not cancel.is_set():
            try:
                tick = await _next_tick(ticks, cancel)
            except ChannelClosedError:
                logger.info(
                    "%s input closed after %d ticks, %d values out", name, received, emitted
                )
                return
            except OperationCancelledError:
                break
            received += 1
            value = indicator.update(tick)
            if value is None:
                logger.debug("%s produced no value for tick %d", name, received)
                continue
            emitted += 1
            yield value
        logger.info("%s cancelled after %d ticks, %d values out", name, received, emitted)
    finally:
        indicator.reset()


def _task_done(task: asyncio.Task) -> None:
    _running.discard(task)
    if not task.cancelled():
        # Already logged and handed to the output channel.
        task.exception()


async def _forward(
    indicator: TickIndicator,
    ticks: TickStream,
    out: Channel[Decimal],
    cancel: asyncio.Event,
) -> None:
    values = run_average(indicator, ticks, cancel)
    error: Exception | None = None
    try:
        async for value in values:
            if not await out.send(value, cancel):
                break
    except Exception as exc:
        logger.exception("%s failed", type(indicator).__name__)
        error = exc
        raise
    finally:
        await values.aclose()
        out.close(error)


def spawn(
    indicator: TickIndicator, ticks: TickStream, cancel: asyncio.Event
) -> Channel[Decimal]:
    """Run ``indicator`` over ``ticks`` in its own task.

    Returns the output channel; it is closed when the operator terminates.
    If the operator fails, receiving from the channel raises its exception.
    """
    out: Channel[Decimal] = Channel()
    task = asyncio.create_task(
        _forward(indicator, ticks, out, cancel),
        name=f"tickavg-{type(indicator).__name__}",
    )
    _running.add(task)
    task.add_done_callback(_task_done)
    return out


def moving_average(
    ticks: TickStream, period: int, cancel: asyncio.Event
) -> Channel[Decimal]:
    """Trailing mean of the last ``period`` prices, one value per tick."""
    return spawn(MovingAverage(period), ticks, cancel)


def exponential_moving_average(
    ticks: TickStream,
    period: int,
    alpha: Decimal | float | str,
    cancel: asyncio.Event,
) -> Channel[Decimal]:
    """Windowed EMA with smoothing ``alpha`` and horizon ``period``, one value per tick."""
    return spawn(ExponentialMovingAverage(period, alpha), ticks, cancel)


def windowed_average(
    ticks: TickStream,
    duration: timedelta,
    clock: Clock,
    cancel: asyncio.Event,
) -> Channel[Decimal]:
    """Trailing mean over ``duration``; ticks that empty the window emit nothing."""
    return spawn(WindowedAverage(duration, clock), ticks, cancel)
