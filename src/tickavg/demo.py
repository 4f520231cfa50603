"""
Demo driver: pipe a short tick stream through one averaging operator.

Run:
    python -m tickavg --operator ema --ticks 10 --alpha 0.1 --period 10
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from tickavg.clock import SystemClock
from tickavg.config import Settings, configure_decimal_context, settings
from tickavg.data.sample_data import feed, sequential_ticks
from tickavg.models.types import Tick, round_price
from tickavg.streams.channel import Channel
from tickavg.streams.operators import (
    exponential_moving_average,
    moving_average,
    windowed_average,
)

logger = logging.getLogger(__name__)

OPERATORS = ("sma", "ema", "windowed")


def _alpha(text: str) -> Decimal:
    try:
        return Decimal(text)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid decimal value: {text!r}") from None


def build_parser(defaults: Settings = settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tickavg-demo",
        description="Stream sample ticks through a running average.",
    )
    parser.add_argument("--operator", choices=OPERATORS, default="ema")
    parser.add_argument("--ticks", type=int, default=defaults.demo_ticks)
    parser.add_argument(
        "--interval-ms", type=int, default=defaults.demo_interval_ms,
        help="delay between ticks",
    )
    parser.add_argument("--period", type=int, default=None, help="window size N")
    parser.add_argument("--alpha", type=_alpha, default=defaults.ema_alpha)
    parser.add_argument(
        "--window-seconds", type=float, default=defaults.window_seconds,
    )
    parser.add_argument("--places", type=int, default=defaults.display_places)
    return parser


def _validate(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    if args.ticks < 1:
        parser.error("--ticks must be at least 1")
    if args.period is not None and args.period < 1:
        parser.error("--period must be at least 1")
    if not (0 < args.alpha <= 1):
        parser.error("--alpha must be in (0, 1]")
    if args.window_seconds <= 0:
        parser.error("--window-seconds must be positive")


async def run_demo(args: argparse.Namespace) -> list[Decimal]:
    """Feed ``args.ticks`` ticks priced 1..n through the chosen operator."""
    cancel = asyncio.Event()
    clock = SystemClock()
    ticks: Channel[Tick] = Channel()
    producer = asyncio.create_task(
        feed(
            ticks,
            sequential_ticks(args.ticks, clock),
            cancel=cancel,
            interval=args.interval_ms / 1000,
        )
    )

    if args.operator == "sma":
        period = args.period or settings.sma_period
        averages = moving_average(ticks, period, cancel)
        label = f"Moving Average (N={period})"
    elif args.operator == "windowed":
        averages = windowed_average(
            ticks, timedelta(seconds=args.window_seconds), clock, cancel
        )
        label = f"Windowed Average ({args.window_seconds:g}s)"
    else:
        period = args.period or settings.ema_period
        averages = exponential_moving_average(ticks, period, args.alpha, cancel)
        label = f"Exponential Moving Average (N={period}, alpha={args.alpha})"

    results: list[Decimal] = []
    try:
        async for value in averages:
            results.append(value)
            print(f"{label}: {round_price(value, args.places)}")
    finally:
        cancel.set()
        await producer
    return results


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _validate(args, parser)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    configure_decimal_context(settings.decimal_precision)

    try:
        asyncio.run(run_demo(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
