"""
Clock capability for time-windowed operators.

Operators never read a global time source; they are handed a ``Clock``.
Production code uses ``SystemClock``. Tests use ``MockClock``, whose
``now()`` only moves when the test advances it, so eviction scenarios can
be built deterministically.

Usage::

    clock = MockClock()
    start = clock.now()
    clock.add(timedelta(seconds=20))
    assert clock.since(start) == timedelta(seconds=20)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        """Current instant (timezone-aware)."""
        ...

    def since(self, t: datetime) -> timedelta:
        """Time elapsed from ``t`` until now."""
        return self.now() - t


class SystemClock(Clock):
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class MockClock(Clock):
    """Virtual clock that only advances on request."""

    def __init__(self, start: datetime = EPOCH) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def add(self, delta: timedelta | float) -> datetime:
        """Advance by ``delta`` (a timedelta or seconds) and return the new instant."""
        if not isinstance(delta, timedelta):
            delta = timedelta(seconds=delta)
        self._now += delta
        return self._now

    def set(self, t: datetime) -> None:
        """Jump to an absolute instant."""
        self._now = t
