"""
Shared datetime helpers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .constants import MS_PER_DAY


def ensure_utc(dt: datetime) -> datetime:
    """Return a timezone-aware UTC datetime."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp and normalize it to UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(parsed)


def to_epoch_ms(dt: datetime) -> int:
    return round(ensure_utc(dt).timestamp() * 1000)


def parse_timestamp_ms(value: Optional[str]) -> Optional[int]:
    """Parse an ISO 8601 timestamp into epoch milliseconds."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return to_epoch_ms(parsed)


def days_ago(ms: Optional[int], now_ms: int) -> Optional[int]:
    """Whole days elapsed since ``ms``; future timestamps count as 0."""
    if ms is None:
        return None
    return max(0, (now_ms - ms) // MS_PER_DAY)


def format_time(ms: Optional[int], iso: bool) -> str:
    """Format epoch milliseconds for display, ``-`` when unknown."""
    if ms is None:
        return "-"
    if iso:
        moment = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
        return moment.strftime("%Y-%m-%dT%H:%MZ")
    moment = datetime.fromtimestamp(ms / 1000)
    return moment.strftime("%Y-%m-%d %H:%M")
