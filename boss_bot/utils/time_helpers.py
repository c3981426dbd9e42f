# boss_bot/utils/time_helpers.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def get_zone(name: str) -> ZoneInfo:
    """Resolve an IANA zone name; raises ValueError for unknown names."""
    key = (name or "").strip()
    if not key:
        raise ValueError("empty timezone name")
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise ValueError(f"unknown timezone: {name!r}") from e


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc)


def parse_local(value: Any, zone: ZoneInfo) -> Optional[datetime]:
    """
    Read an ISO-8601 date-time as wall-clock time in `zone` and return the
    instant in UTC.

    A value without an offset is pinned to `zone` (never the host zone);
    a value with an offset keeps it. Returns None for anything that does
    not parse. Arithmetic on the result is always instant arithmetic, also
    across a DST change in `zone`.
    """
    raw = str(value if value is not None else "").strip()
    if not raw:
        return None
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=zone)
    return to_utc(dt)


def millis(delta: timedelta) -> int:
    return delta // timedelta(milliseconds=1)


def humanize(delta: timedelta) -> str:
    secs = int(delta.total_seconds())
    sign = "-" if secs < 0 else ""
    secs = abs(secs)
    hours, rem = divmod(secs, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours:
        return f"{sign}{hours}h{minutes:02d}m"
    if minutes:
        return f"{sign}{minutes}m{seconds:02d}s"
    return f"{sign}{seconds}s"
