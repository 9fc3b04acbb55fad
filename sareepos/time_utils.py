from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _shop_zone() -> Optional[ZoneInfo]:
    if has_app_context():
        name = current_app.config.get("SHOP_TIMEZONE")
        if name:
            return ZoneInfo(name)
    return None


def shop_now(now: Optional[datetime] = None) -> datetime:
    """
    Shop-local 'now' as an aware datetime.

    - None -> the current wall clock
    - naive -> interpreted as shop-local wall-clock time
    - aware -> converted to the shop zone

    With no SHOP_TIMEZONE configured the server's local zone is the shop zone.
    """
    zone = _shop_zone()
    if now is None:
        return datetime.now(zone) if zone else datetime.now().astimezone()
    if now.tzinfo is None:
        return now.replace(tzinfo=zone) if zone else now.astimezone()
    return now.astimezone(zone) if zone else now.astimezone()


def shop_midnight(day: date) -> datetime:
    """Start of a shop-local calendar day (aware)."""
    zone = _shop_zone()
    if zone:
        return datetime.combine(day, time.min, tzinfo=zone)
    # naive.astimezone() applies the server's local rules, DST included
    return datetime.combine(day, time.min).astimezone()


def to_utc_naive(dt: datetime) -> datetime:
    """Normalize to the UTC-naive form used for persisted timestamps."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def shop_day_bounds(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """[start, end) of the shop-local day containing `now`, as UTC-naive datetimes."""
    local = shop_now(now)
    start = shop_midnight(local.date())
    end = shop_midnight(local.date() + timedelta(days=1))
    return to_utc_naive(start), to_utc_naive(end)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" or "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    return to_utc_naive(dt)


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
