from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

MISSING_TIME_LABEL = "N/A"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def today_iso() -> str:
    return date.today().isoformat()


def format_display_time(value: datetime | None, tz_name: str = "UTC") -> str:
    if value is None:
        return MISSING_TIME_LABEL
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz_name)).strftime("%Y-%m-%d %H:%M:%S")
