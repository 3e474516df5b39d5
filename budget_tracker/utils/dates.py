"""Date helpers for ISO-8601 expense timestamps.

Every comparison happens in UTC.  Naive timestamps are read as UTC and
date-only strings (``YYYY-MM-DD``) as midnight UTC.
"""

from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, timezone
from typing import Optional

__all__ = [
    "month_bounds",
    "parse_iso_datetime",
    "shift_month",
    "today_iso",
    "try_parse_iso_datetime",
]


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC ``datetime``.

    Raises:
        ValueError: If *value* is empty or not ISO-8601.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Date is required.")
    text = value.strip()
    # fromisoformat understands a trailing "Z" from 3.11 on; normalise anyway
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def try_parse_iso_datetime(value: str) -> Optional[datetime]:
    """Like :func:`parse_iso_datetime` but returns ``None`` on failure."""
    try:
        return parse_iso_datetime(value)
    except (TypeError, ValueError):
        return None


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """Return the inclusive ``(start, end)`` of a calendar month in UTC.

    ``end`` is the last representable microsecond of the month, so
    ``2024-01-31T23:59:59`` is inside January.

    Raises:
        ValueError: If *month* is outside ``1..12``.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}.")
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    last_day = monthrange(year, month)[1]
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return start, end


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move ``(year, month)`` by *delta* months (negative goes back)."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def today_iso(today: Optional[date] = None) -> str:
    """Today's date as ``YYYY-MM-DD`` (UTC)."""
    current = today or datetime.now(timezone.utc).date()
    return current.isoformat()
