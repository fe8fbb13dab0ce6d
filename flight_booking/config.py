"""Environment driven settings for the booking engine."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

_DEFAULT_DB_URL = "sqlite+pysqlite:///flight_booking.db"


@dataclass(frozen=True)
class Settings:
    db_url: str = _DEFAULT_DB_URL
    max_tickets_per_user: int = 4
    page_size: int = 5
    sqlite_timeout: float = 30.0
    log_level: str = "WARNING"
    echo_sql: bool = False


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read ``FLIGHT_BOOKING_*`` variables from ``environ`` (defaults to ``os.environ``)."""

    env = os.environ if environ is None else environ
    max_tickets = int(env.get("FLIGHT_BOOKING_MAX_TICKETS", 4))
    page_size = int(env.get("FLIGHT_BOOKING_PAGE_SIZE", 5))
    if max_tickets < 1:
        raise ValueError("FLIGHT_BOOKING_MAX_TICKETS must be at least 1")
    if page_size < 1:
        raise ValueError("FLIGHT_BOOKING_PAGE_SIZE must be at least 1")
    return Settings(
        db_url=env.get("FLIGHT_BOOKING_DB_URL", _DEFAULT_DB_URL),
        max_tickets_per_user=max_tickets,
        page_size=page_size,
        sqlite_timeout=float(env.get("FLIGHT_BOOKING_SQLITE_TIMEOUT", 30)),
        log_level=env.get("FLIGHT_BOOKING_LOG_LEVEL", "WARNING").upper(),
        echo_sql=_env_flag(env.get("FLIGHT_BOOKING_ECHO_SQL")),
    )


__all__ = ["Settings", "load_settings"]
