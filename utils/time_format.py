"""Time formatting helpers."""

from datetime import datetime, timedelta, timezone


def format_time(ms: int) -> str:
    """Format elapsed milliseconds as ``M:SS``.

    Args:
        ms: Elapsed time in milliseconds

    Returns:
        Minutes and zero-padded seconds, e.g. ``1:05``
    """
    seconds = max(0, ms) // 1000
    minutes, remaining = divmod(seconds, 60)
    return f"{minutes}:{remaining:02d}"


def iso_timestamp(timestamp_ms: int) -> str:
    """Format epoch milliseconds as ISO-8601 UTC, e.g. ``2025-01-15T09:30:00.000Z``."""
    seconds, millis = divmod(timestamp_ms, 1000)
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def local_datetime(timestamp_ms: int) -> str:
    """Format epoch milliseconds as local ``YYYY-MM-DD HH:MM`` for listings."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M")
