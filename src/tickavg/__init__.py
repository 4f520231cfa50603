"""tickavg: streaming price averages over live tick streams."""

__version__ = "0.1.0"
