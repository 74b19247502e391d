from datetime import datetime, timezone

from usm_kit.clock import format_display_time
from usm_kit.db import normalize_postgres_dsn


def test_format_display_time_handles_missing_timestamp() -> None:
    assert format_display_time(None) == "N/A"


def test_format_display_time_converts_zone() -> None:
    value = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert format_display_time(value, "UTC") == "2026-01-01 12:00:00"
    assert format_display_time(value, "Asia/Seoul") == "2026-01-01 21:00:00"


def test_naive_timestamps_are_treated_as_utc() -> None:
    assert format_display_time(datetime(2026, 1, 1, 0, 0, 0)) == "2026-01-01 00:00:00"


def test_normalize_postgres_dsn_selects_psycopg_driver() -> None:
    assert normalize_postgres_dsn("postgresql://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_postgres_dsn("sqlite+aiosqlite:///x.db") == "sqlite+aiosqlite:///x.db"
