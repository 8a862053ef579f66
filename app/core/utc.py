"""
Time utilities for DocuMind.

Everything is stored in UTC with timezone awareness. Wall-clock concepts
("today", "12:00 noon") are evaluated in the configured application time zone
and converted back to UTC before they touch the database.
"""

from datetime import datetime, time, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import get_settings


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    This is the standard function for all timestamps in DocuMind.
    """
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 with a Z suffix."""
    return utc_now().isoformat().replace("+00:00", "Z")


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC timezone-aware datetime.

    - If naive: assumes UTC (SQLite hands back naive values)
    - If aware: converts to UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def app_timezone(name: Optional[str] = None) -> Optional[tzinfo]:
    """
    Resolve the application time zone.

    An empty name means the server's local zone and resolves to None, so
    callers go through `astimezone()` on every conversion and pick up the
    offset in force at that instant rather than the one at startup.
    """
    if name is None:
        name = get_settings().app_timezone
    if name:
        return ZoneInfo(name)
    return None


def localize(naive: datetime, tz: Optional[tzinfo]) -> datetime:
    """Attach a local wall-clock time to `tz` (None = server local zone)."""
    if tz is None:
        return naive.astimezone()
    return naive.replace(tzinfo=tz)


def local_now() -> datetime:
    """Current wall-clock time in the application time zone."""
    return utc_now().astimezone(app_timezone())


def start_of_today_utc(now: Optional[datetime] = None) -> datetime:
    """Midnight of the current local day, expressed in UTC."""
    tz = app_timezone()
    local = (now or utc_now()).astimezone(tz)
    midnight = localize(datetime.combine(local.date(), time()), tz)
    return midnight.astimezone(timezone.utc)
