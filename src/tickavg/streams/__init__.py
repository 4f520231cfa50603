"""Channels and operator tasks."""

from tickavg.streams.channel import (  # noqa: F401
    Channel,
    ChannelClosedError,
    OperationCancelledError,
)
from tickavg.streams.operators import (  # noqa: F401
    exponential_moving_average,
    moving_average,
    run_average,
    spawn,
    windowed_average,
)
