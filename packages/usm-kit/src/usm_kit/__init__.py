"""Common runtime kit for service infrastructure concerns."""

from usm_kit.clock import format_display_time, now_utc, today_iso
from usm_kit.config import ServiceSettings, load_settings
from usm_kit.db import Base, SqlDatabase, normalize_postgres_dsn
from usm_kit.observability import configure_logging, configure_service_telemetry
from usm_kit.redis import create_redis_client

__all__ = [
    "Base",
    "ServiceSettings",
    "SqlDatabase",
    "configure_logging",
    "configure_service_telemetry",
    "create_redis_client",
    "format_display_time",
    "load_settings",
    "normalize_postgres_dsn",
    "now_utc",
    "today_iso",
]
