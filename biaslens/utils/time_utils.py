"""Time utility functions for epoch-millisecond timestamps."""

from datetime import datetime, timezone, tzinfo

MS_PER_MINUTE = 60_000


def to_datetime(timestamp_ms: int, tz: tzinfo = timezone.utc) -> datetime:
    """Convert epoch milliseconds to an aware datetime in ``tz``."""
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=tz)


def timestamp_to_date_string(timestamp_ms: int, tz: tzinfo = timezone.utc) -> str:
    """Convert epoch milliseconds to a YYYY-MM-DD string."""
    return to_datetime(timestamp_ms, tz).strftime("%Y-%m-%d")


def timestamp_to_hour(timestamp_ms: int, tz: tzinfo = timezone.utc) -> int:
    """Extract hour of day (0-23)."""
    return to_datetime(timestamp_ms, tz).hour


def minutes_between(start_ms: int, end_ms: int) -> float:
    """Signed minutes elapsed from ``start_ms`` to ``end_ms``."""
    return (end_ms - start_ms) / MS_PER_MINUTE


def format_hour_range(hour: int) -> str:
    """Format an hour bucket as HH:00-HH:00."""
    return f"{hour:02d}:00-{hour + 1:02d}:00"
