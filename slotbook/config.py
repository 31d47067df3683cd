"""
Centralized configuration with environment variable overrides.

Slot scheme, business timezone and shop settings are configurable here.
Nothing in the scheduling engine or the store hardcodes them.

Dataclass defaults are read from the environment once, when this module is
imported. Setting an env var afterwards (for example with
``monkeypatch.setenv`` in a test) does not change ``settings`` or a fresh
``ScheduleConfig()``; build one with ``dataclasses.replace`` or pass a
``SlotScheme`` explicitly instead.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from slotbook.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _optional_int(env_var: str) -> Optional[int]:
    """Parse an optional integer; unset or empty means None."""
    raw = os.getenv(env_var)
    if raw is None or not raw.strip():
        return None
    return _safe_int(env_var, raw)


def _safe_time(env_var: str, default: str) -> time:
    """Parse an HH:MM time of day from an env var."""
    raw = os.getenv(env_var, default)
    try:
        return datetime.strptime(raw.strip(), "%H:%M").time()
    except (ValueError, AttributeError):
        raise ValueError(
            f"Invalid time for {env_var}: {raw!r} (expected HH:MM)"
        ) from None


@dataclass(frozen=True)
class ScheduleConfig:
    """Slot scheme and timezone used by the availability engine."""

    open_time: time = _safe_time("SLOT_OPEN_TIME", "07:00")
    close_time: time = _safe_time("SLOT_CLOSE_TIME", "18:15")
    increment_minutes: int = _safe_int("SLOT_INCREMENT_MINUTES", "75")
    duration_minutes: Optional[int] = _optional_int("SLOT_DURATION_MINUTES")
    timezone: str = os.getenv("BUSINESS_TIMEZONE", "UTC")

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class ShopConfig:
    """Shop-specific settings loaded from environment or defaults."""

    name: str = os.getenv("SHOP_NAME", "Precision Auto Service")
    booking_horizon_days: int = _safe_int("BOOKING_HORIZON_DAYS", "30")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    shop: ShopConfig = field(default_factory=ShopConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    schedule = config.schedule
    if schedule.increment_minutes < 1:
        raise ValueError(
            f"SLOT_INCREMENT_MINUTES must be >= 1, got {schedule.increment_minutes}"
        )
    if schedule.duration_minutes is not None and schedule.duration_minutes < 1:
        raise ValueError(
            f"SLOT_DURATION_MINUTES must be >= 1, got {schedule.duration_minutes}"
        )
    if schedule.close_time <= schedule.open_time:
        raise ValueError(
            "SLOT_CLOSE_TIME must be after SLOT_OPEN_TIME, "
            f"got {schedule.open_time:%H:%M} - {schedule.close_time:%H:%M}"
        )
    try:
        schedule.tzinfo
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"BUSINESS_TIMEZONE is not a known timezone: {schedule.timezone!r}"
        ) from None

    if config.shop.booking_horizon_days < 1:
        raise ValueError(
            f"BOOKING_HORIZON_DAYS must be >= 1, got {config.shop.booking_horizon_days}"
        )


LOG_FORMAT = "%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s"


def _log_handler() -> logging.Handler:
    """Stream handler whose records always carry a request_id."""
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    return handler


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[_log_handler()],
    )
    logger.info("Configuration loaded for '%s'", config.shop.name)
    return config


# Singleton instance
settings = load_config()
