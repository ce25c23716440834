"""
Centralized configuration with environment variable overrides.

Queue limits, ticket lifetimes, retry budgets and default workshop hours
are all configurable here. Nothing is hardcoded in engine or scheduling
logic.
"""

import logging
import os
import re
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

EXPIRED_TICKET_POLICIES = ("no_show", "call")
_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


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
class QueueConfig:
    """Queue engine limits and timings."""

    max_active_services: int = _safe_int("MAX_ACTIVE_SERVICES", "2")
    ticket_ttl_minutes: int = _safe_int("TICKET_TTL_MINUTES", "15")
    average_service_minutes: int = _safe_int("AVERAGE_SERVICE_MINUTES", "30")
    page_size: int = _safe_int("QUEUE_PAGE_SIZE", "20")
    read_cache_ttl_seconds: int = _safe_int("READ_CACHE_TTL_SECONDS", "300")
    code_max_attempts: int = _safe_int("CODE_MAX_ATTEMPTS", "50")
    persist_max_attempts: int = _safe_int("PERSIST_MAX_ATTEMPTS", "3")
    persist_retry_delay_ms: int = _safe_int("PERSIST_RETRY_DELAY_MS", "100")
    expired_ticket_policy: str = os.getenv("EXPIRED_TICKET_POLICY", "no_show")
    technician_logout_hour: int = _safe_int("TECHNICIAN_LOGOUT_HOUR", "22")
    intake_session_minutes: int = _safe_int("INTAKE_SESSION_MINUTES", "15")


@dataclass(frozen=True)
class WorkshopConfig:
    """Workshop identity and the schedule used when none is stored yet."""

    name: str = os.getenv("WORKSHOP_NAME", "Riverside Motorcycle Workshop")
    default_open_time: str = os.getenv("DEFAULT_OPEN_TIME", "07:00")
    default_close_time: str = os.getenv("DEFAULT_CLOSE_TIME", "17:30")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    queue: QueueConfig = field(default_factory=QueueConfig)
    workshop: WorkshopConfig = field(default_factory=WorkshopConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    queue = config.queue
    for name, value in [
        ("MAX_ACTIVE_SERVICES", queue.max_active_services),
        ("TICKET_TTL_MINUTES", queue.ticket_ttl_minutes),
        ("AVERAGE_SERVICE_MINUTES", queue.average_service_minutes),
        ("QUEUE_PAGE_SIZE", queue.page_size),
        ("CODE_MAX_ATTEMPTS", queue.code_max_attempts),
        ("PERSIST_MAX_ATTEMPTS", queue.persist_max_attempts),
        ("INTAKE_SESSION_MINUTES", queue.intake_session_minutes),
    ]:
        if value < 1:
            raise ValueError(f"{name} must be >= 1, got {value}")

    if queue.read_cache_ttl_seconds < 0:
        raise ValueError(
            f"READ_CACHE_TTL_SECONDS must be >= 0, got {queue.read_cache_ttl_seconds}"
        )
    if queue.persist_retry_delay_ms < 0:
        raise ValueError(
            f"PERSIST_RETRY_DELAY_MS must be >= 0, got {queue.persist_retry_delay_ms}"
        )
    if queue.expired_ticket_policy not in EXPIRED_TICKET_POLICIES:
        raise ValueError(
            f"EXPIRED_TICKET_POLICY must be one of {EXPIRED_TICKET_POLICIES}, "
            f"got {queue.expired_ticket_policy!r}"
        )
    if not 0 <= queue.technician_logout_hour <= 24:
        raise ValueError(
            f"TECHNICIAN_LOGOUT_HOUR must be between 0 and 24, got {queue.technician_logout_hour}"
        )

    workshop = config.workshop
    for name, value in [
        ("DEFAULT_OPEN_TIME", workshop.default_open_time),
        ("DEFAULT_CLOSE_TIME", workshop.default_close_time),
    ]:
        if not _HHMM_RE.match(value):
            raise ValueError(f"{name} must be HH:MM, got {value!r}")
    if workshop.default_open_time >= workshop.default_close_time:
        raise ValueError(
            "DEFAULT_OPEN_TIME must be earlier than DEFAULT_CLOSE_TIME, "
            f"got {workshop.default_open_time} / {workshop.default_close_time}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.workshop.name)
    return config


# Singleton instance
settings = load_config()
