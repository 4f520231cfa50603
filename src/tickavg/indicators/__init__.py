"""Indicators package."""

from tickavg.indicators.streaming import (  # noqa: F401
    ExponentialMovingAverage,
    MovingAverage,
    WindowedAverage,
)
