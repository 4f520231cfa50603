"""
Central configuration for the tickavg streaming averages.

All settings are loaded from environment variables with sensible defaults.
Operator preconditions (window size, smoothing factor, duration) are
validated here so an invalid window never reaches a running operator.
"""

from __future__ import annotations

import decimal
from datetime import timedelta
from decimal import Decimal
from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Environment ---
    env: Environment = Environment.DEVELOPMENT
    log_level: str = "INFO"

    # --- Operator Defaults ---
    sma_period: int = Field(default=10, ge=1)
    ema_period: int = Field(default=10, ge=1)
    ema_alpha: Decimal = Field(default=Decimal("0.1"), gt=0, le=1)
    window_seconds: float = Field(default=60.0, gt=0)

    # --- Numerics ---
    decimal_precision: int = Field(default=28, ge=1)
    display_places: int = Field(default=2, ge=0)

    # --- Demo Driver ---
    demo_ticks: int = Field(default=10, ge=1)
    demo_interval_ms: int = Field(default=100, ge=0)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def window_duration(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)


def configure_decimal_context(precision: int) -> decimal.Context:
    """Set the significant digits used by Decimal division in this context."""
    ctx = decimal.getcontext()
    ctx.prec = precision
    return ctx


# Singleton settings instance
settings = Settings()
