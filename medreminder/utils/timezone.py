from datetime import datetime, timezone as dt_timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from medreminder.core.config import get_settings


def get_zoneinfo(tz_name: Optional[str] = None) -> ZoneInfo:
    """Resolve a tz database name, falling back to settings.DEFAULT_TIMEZONE, then UTC."""
    name = tz_name or getattr(get_settings(), "DEFAULT_TIMEZONE", None) or "UTC"
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


def to_utc_naive(dt: datetime | None) -> datetime | None:
    """
    Normalize any datetime to UTC-naive (tzinfo=None) for consistent storage/comparison.
    - Aware datetimes are converted to UTC and tzinfo is stripped
    - Naive datetimes are returned as-is (assumed UTC)
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(dt_timezone.utc).replace(tzinfo=None)


def to_utc_aware(dt: datetime | None) -> datetime | None:
    """
    Normalize any datetime to UTC-aware (tzinfo=UTC) for APIs needing tz-aware values.
    - Aware datetimes are converted to UTC
    - Naive datetimes are assumed UTC and tz attached
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_timezone.utc)
    return dt.astimezone(dt_timezone.utc)


def parse_iso_datetime(value: str | datetime) -> datetime:
    """Parse an ISO-8601 string (accepting a trailing Z) into a UTC-aware datetime.

    Raises ValueError for anything that is not a valid timestamp.
    """
    if isinstance(value, datetime):
        return to_utc_aware(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid datetime: {value!r}")
    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    return to_utc_aware(dt)


def isoformat_utc(dt: datetime) -> str:
    """Render a datetime as UTC ISO-8601 with a Z suffix."""
    return to_utc_aware(dt).isoformat().replace("+00:00", "Z")
