"""
Centralized configuration with environment variable overrides.

Catalog search defaults, reservation limits, lock timeouts, and API
settings are configurable here. Nothing is hardcoded in engine logic.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from evcharge.logging_context import RequestIdFilter

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


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class CatalogConfig:
    """Station catalog source and nearby-search defaults."""

    catalog_path: Optional[str] = os.getenv("STATION_CATALOG_PATH") or None
    nearby_radius_km: float = _safe_float("NEARBY_RADIUS_KM", "5.0")
    nearby_limit: int = _safe_int("NEARBY_LIMIT", "10")


@dataclass(frozen=True)
class ReservationConfig:
    """Reservation engine limits."""

    max_note_length: int = _safe_int("MAX_NOTE_LENGTH", "500")
    lock_timeout_sec: float = _safe_float("LOCK_TIMEOUT_SEC", "5.0")
    list_default_limit: int = _safe_int("LIST_DEFAULT_LIMIT", "50")
    list_max_limit: int = _safe_int("LIST_MAX_LIMIT", "200")
    analytics_period_days: int = _safe_int("ANALYTICS_PERIOD_DAYS", "30")
    analytics_max_period_days: int = _safe_int("ANALYTICS_MAX_PERIOD_DAYS", "3650")


@dataclass(frozen=True)
class ApiConfig:
    """HTTP gateway settings."""

    host: str = os.getenv("API_HOST", "127.0.0.1")
    port: int = _safe_int("API_PORT", "3000")
    prefix: str = os.getenv("API_PREFIX", "/api")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    reservations: ReservationConfig = field(default_factory=ReservationConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "ev-charge-reservations")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.catalog.nearby_radius_km <= 0:
        raise ValueError(
            f"NEARBY_RADIUS_KM must be > 0, got {config.catalog.nearby_radius_km}"
        )
    if config.catalog.nearby_limit < 1:
        raise ValueError(
            f"NEARBY_LIMIT must be >= 1, got {config.catalog.nearby_limit}"
        )
    if config.reservations.max_note_length < 1:
        raise ValueError(
            f"MAX_NOTE_LENGTH must be >= 1, got {config.reservations.max_note_length}"
        )
    if config.reservations.lock_timeout_sec <= 0:
        raise ValueError(
            f"LOCK_TIMEOUT_SEC must be > 0, got {config.reservations.lock_timeout_sec}"
        )
    if config.reservations.list_default_limit < 1:
        raise ValueError(
            "LIST_DEFAULT_LIMIT must be >= 1, "
            f"got {config.reservations.list_default_limit}"
        )
    if config.reservations.list_max_limit < config.reservations.list_default_limit:
        raise ValueError(
            "LIST_MAX_LIMIT must be >= LIST_DEFAULT_LIMIT, "
            f"got {config.reservations.list_max_limit}"
        )
    if config.reservations.analytics_period_days < 1:
        raise ValueError(
            "ANALYTICS_PERIOD_DAYS must be >= 1, "
            f"got {config.reservations.analytics_period_days}"
        )
    if config.reservations.analytics_max_period_days < config.reservations.analytics_period_days:
        raise ValueError(
            "ANALYTICS_MAX_PERIOD_DAYS must be >= ANALYTICS_PERIOD_DAYS, "
            f"got {config.reservations.analytics_max_period_days}"
        )
    if not 0 < config.api.port < 65536:
        raise ValueError(f"API_PORT must be between 1 and 65535, got {config.api.port}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
