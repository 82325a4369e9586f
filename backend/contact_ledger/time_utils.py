from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" -> midnight of that day
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
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


def to_utc_naive(value: Union[date, datetime]) -> datetime:
    """Coerce a date or datetime into the canonical UTC-naive datetime."""
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def is_date_only(value: Union[date, datetime, None]) -> bool:
    """True for a plain date, or a datetime sitting exactly on midnight."""
    if value is None:
        return False
    if not isinstance(value, datetime):
        return True
    return value.time() == time.min


def end_bound_exclusive(value: Union[date, datetime]) -> tuple[datetime, bool]:
    """
    Turn a user-supplied end bound into a (bound, exclusive) pair.

    A whole day ("2026-01-31") covers everything up to the next midnight,
    so it becomes an exclusive bound at the start of the following day.
    A precise datetime stays an inclusive bound.
    """
    if is_date_only(value):
        start = to_utc_naive(value)
        return start + timedelta(days=1), True
    return to_utc_naive(value), False


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
