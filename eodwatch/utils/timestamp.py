"""
Timestamp and date helpers shared by the cache, the fetcher and the resampler.

Conventions:
- Persisted timestamps (``last_fetch_at``, ``rate_limited_until``) are ISO 8601
  strings in UTC.
- Bar ``time`` values are whatever the provider returned (``YYYY-MM-DD`` or a
  full ISO timestamp); only their first 10 characters are treated as the
  calendar date.
"""

from __future__ import annotations
from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp into a timezone-aware UTC datetime.

    Accepts the trailing "Z" that JavaScript-style serializers produce, and
    treats naive values as UTC.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def ymd(value: datetime | date) -> str:
    """Format as YYYY-MM-DD."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def bar_date(time_value: str) -> date:
    """Calendar date of a bar ``time`` ("2024-03-01" or "2024-03-01T14:30:00.000Z")."""
    return date.fromisoformat(time_value[:10])


def next_day(time_value: str) -> date:
    return bar_date(time_value) + timedelta(days=1)


def years_before(day: date, years: int) -> date:
    """Same calendar day ``years`` earlier; Feb 29 falls back to Feb 28."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)


def to_unix_seconds(time_value: str) -> int:
    """Unix seconds for a bar ``time``; plain dates are taken as UTC midnight."""
    if len(time_value) <= 10:
        ts = datetime.combine(bar_date(time_value), datetime.min.time(), tzinfo=timezone.utc)
    else:
        ts = parse_timestamp(time_value)
    return int(ts.timestamp())
