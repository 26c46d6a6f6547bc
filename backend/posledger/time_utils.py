from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form every timestamp column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp from a request or CLI option into naive UTC.

    Blank input gives None. Values without an offset are taken as UTC already;
    a trailing "Z" or an explicit offset is converted.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed
    return parsed.astimezone(timezone.utc).replace(tzinfo=None)


def is_date_only(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        date.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def parse_report_range(start: Optional[str], end: Optional[str]) -> tuple[datetime, datetime]:
    """
    Parse a report range into a half-open [start, end) pair of UTC-naive datetimes.

    A date-only end ("2026-03-31") covers that whole day, so the exclusive
    bound becomes the following midnight.
    """
    start_dt = parse_iso_datetime(start)
    end_dt = parse_iso_datetime(end)
    if start_dt is None or end_dt is None:
        raise ValueError("start and end are required")
    if is_date_only(end):
        end_dt = end_dt + timedelta(days=1)
    if end_dt <= start_dt:
        raise ValueError("end must be after start")
    return start_dt, end_dt


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
