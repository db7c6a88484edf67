from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def configured_timezone() -> str:
    """BUSINESS_TIMEZONE of the running app, UTC outside an app context."""
    if has_app_context():
        return current_app.config.get("BUSINESS_TIMEZONE") or "UTC"
    return "UTC"


def get_zone(tz_name: str | None = None) -> tzinfo:
    if tz_name is None:
        tz_name = configured_timezone()
    if not tz_name or tz_name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(tz_name)


def parse_business_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a "YYYY-MM-DD" calendar date.

    - None / "" -> None
    - anything else that is not a calendar date raises ValueError
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s)


def business_today(tz_name: str | None = None) -> date:
    """Today's calendar date in the business timezone."""
    return datetime.now(get_zone(tz_name)).date()


def business_date_of(dt: datetime, tz_name: str | None = None) -> date:
    """Calendar date (business timezone) of a UTC-naive timestamp."""
    return dt.replace(tzinfo=timezone.utc).astimezone(get_zone(tz_name)).date()


def day_bounds(day: date, tz_name: str | None = None) -> tuple[datetime, datetime]:
    """
    UTC-naive [start, end) window covering one business calendar day.

    The window follows the business timezone, so DST days may be 23 or 25
    hours long.
    """
    zone = get_zone(tz_name)
    start_local = datetime.combine(day, time.min, tzinfo=zone)
    end_local = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    start = start_local.astimezone(timezone.utc).replace(tzinfo=None)
    end = end_local.astimezone(timezone.utc).replace(tzinfo=None)
    return start, end
