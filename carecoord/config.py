"""
Centralized configuration with environment variable overrides.

Store paths, booking limits, and session persistence are configurable
here. Nothing is hardcoded in the booking engine or the query layer.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from carecoord.logging_context import LOG_FORMAT, install_actor_filter

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


@dataclass(frozen=True)
class StoreConfig:
    """Document store path conventions."""

    bookings_path: str = os.getenv("BOOKINGS_PATH", "bookings")
    users_path: str = os.getenv("USERS_PATH", "users")
    appointments_path: str = os.getenv("APPOINTMENTS_PATH", "appointments")


@dataclass(frozen=True)
class BookingConfig:
    """Booking engine limits and provider lookup settings."""

    provider_role: str = os.getenv("PROVIDER_ROLE", "paramedic")
    max_duration_hours: int = _safe_int("MAX_DURATION_HOURS", "24")


@dataclass(frozen=True)
class SessionConfig:
    """Where the persisted session context lives."""

    session_file: str = os.path.expanduser(
        os.getenv("SESSION_FILE", "~/.carecoord/session.json")
    )


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    store: StoreConfig = field(default_factory=StoreConfig)
    booking: BookingConfig = field(default_factory=BookingConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "carecoord")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    for path_name, path_value in [
        ("BOOKINGS_PATH", config.store.bookings_path),
        ("USERS_PATH", config.store.users_path),
        ("APPOINTMENTS_PATH", config.store.appointments_path),
    ]:
        if not path_value.strip("/ "):
            raise ValueError(f"{path_name} must be a non-empty store path, got {path_value!r}")

    if not config.booking.provider_role.strip():
        raise ValueError("PROVIDER_ROLE must not be empty")
    if not 1 <= config.booking.max_duration_hours <= 24:
        raise ValueError(
            "MAX_DURATION_HOURS must be between 1 and 24, "
            f"got {config.booking.max_duration_hours}"
        )
    if not config.session.session_file:
        raise ValueError("SESSION_FILE must not be empty")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    install_actor_filter()
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
