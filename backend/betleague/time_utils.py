"""Helpers for keeping kickoff times and reference clocks in UTC."""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""

    return datetime.now(timezone.utc)


def require_utc(value: datetime | None, *, field_name: str = "date") -> datetime | None:
    """Reject naive datetimes and return ``value`` normalized to UTC.

    Raises:
        ValueError: If ``value`` carries no timezone offset.
    """

    if value is None:
        return None

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{field_name} must include a timezone offset")

    return value.astimezone(timezone.utc)


def coerce_utc(value: datetime) -> datetime:
    """Normalize ``value`` to UTC, treating naive values as already UTC.

    Databases such as SQLite hand back naive datetimes, so values read from
    storage go through here before being compared with a reference clock.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)

    return value.astimezone(timezone.utc)
