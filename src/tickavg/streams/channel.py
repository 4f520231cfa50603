"""
Unbuffered async channel connecting tick sources, operators and sinks.

``send`` returns only after a receiver has resumed with the item, so a slow
consumer back-pressures its producer all the way up the pipeline. Both ends
accept an ``asyncio.Event``; once it is set, waiting stops and the
operation reports cancellation instead of transferring an item.

Usage::

    ch: Channel[Tick] = Channel()

    async def produce():
        try:
            for tick in ticks:
                if not await ch.send(tick, cancel):
                    break
        finally:
            ch.close()

    async for tick in ch:
        ...
"""

from __future__ import annotations

import asyncio
import collections
from typing import Generic, TypeVar

T = TypeVar("T")


class ChannelClosedError(Exception):
    """Send on a closed channel, or receive from a closed and drained one."""


class OperationCancelledError(Exception):
    """The cancel event fired before an item was received."""


async def _wait_unless_cancelled(
    fut: asyncio.Future, cancel: asyncio.Event | None
) -> bool:
    """Wait for ``fut``. Returns False if ``cancel`` fired while it was pending."""
    if cancel is None:
        await asyncio.wait((fut,))
        return True
    cancelled = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait((fut, cancelled), return_when=asyncio.FIRST_COMPLETED)
    finally:
        cancelled.cancel()
    return fut.done()


class Channel(Generic[T]):
    """Single-producer, single-consumer rendezvous channel."""

    def __init__(self) -> None:
        # Receivers parked until a sender arrives: resolve to (item, ack).
        self._getters: collections.deque[asyncio.Future] = collections.deque()
        # Senders parked until a receiver arrives.
        self._putters: collections.deque[tuple[T, asyncio.Future]] = collections.deque()
        self._closed = False
        self._exc: BaseException | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, item: T, cancel: asyncio.Event | None = None) -> bool:
        """Hand ``item`` to a receiver.

        Returns True once a receiver has it, False if ``cancel`` was set
        first (the item is withdrawn).
        """
        if self._closed:
            raise ChannelClosedError("send on closed channel")
        if cancel is not None and cancel.is_set():
            return False

        ack = asyncio.get_running_loop().create_future()

        while self._getters:
            getter = self._getters.popleft()
            if not getter.done():
                getter.set_result((item, ack))
                # The receiver always acknowledges, even when it is cancelled.
                await ack
                return True

        self._putters.append((item, ack))
        try:
            taken = await _wait_unless_cancelled(ack, cancel)
        except asyncio.CancelledError:
            ack.cancel()
            raise
        if not taken:
            ack.cancel()
            return False
        ack.result()
        return True

    async def receive(self, cancel: asyncio.Event | None = None) -> T:
        """Take the next item.

        Raises ``ChannelClosedError`` at end of stream, or the exception
        passed to ``close``. Raises ``OperationCancelledError`` if ``cancel``
        is set before an item is taken. An item handed over while ``cancel``
        fired is acknowledged and dropped, so the sender never waits forever.
        """
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError()

        while self._putters:
            item, ack = self._putters.popleft()
            if not ack.done():
                ack.set_result(None)
                return item

        if self._closed:
            raise self._closed_error()

        getter = asyncio.get_running_loop().create_future()
        self._getters.append(getter)
        try:
            ready = await _wait_unless_cancelled(getter, cancel)
        except asyncio.CancelledError:
            self._release(getter)
            raise
        if not ready:
            getter.cancel()
            raise OperationCancelledError()

        item, ack = getter.result()
        if ack is None:
            raise self._closed_error()
        if not ack.done():
            ack.set_result(None)
        if cancel is not None and cancel.is_set():
            raise OperationCancelledError()
        return item

    def close(self, exc: BaseException | None = None) -> None:
        """Signal end of stream.

        Waiting and later receivers get ``ChannelClosedError``, or ``exc``
        when the stream ended because its producer failed.
        """
        if self._closed:
            return
        self._closed = True
        self._exc = exc
        while self._getters:
            getter = self._getters.popleft()
            if not getter.done():
                getter.set_result((None, None))
        while self._putters:
            _, ack = self._putters.popleft()
            if not ack.done():
                ack.set_exception(ChannelClosedError("channel closed while sending"))

    def _closed_error(self) -> BaseException:
        if self._exc is not None:
            return self._exc
        return ChannelClosedError("channel closed")

    @staticmethod
    def _release(getter: asyncio.Future) -> None:
        if getter.done() and not getter.cancelled():
            _, ack = getter.result()
            if ack is not None and not ack.done():
                ack.set_result(None)
        else:
            getter.cancel()

    def __aiter__(self) -> Channel[T]:
        return self

    async def __anext__(self) -> T:
        try:
            return await self.receive()
        except ChannelClosedError:
            raise StopAsyncIteration from None
