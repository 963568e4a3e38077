"""Timestamp parsing helpers shared by ingestion, queries and aggregation."""
from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Format a datetime the way browsers do (`2024-01-31T09:15:00.000Z`)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return to_iso(utc_now())


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an event timestamp into an aware UTC datetime.

    Accepts ISO-8601 strings (with or without offset, `Z` suffix, or date only)
    and numbers interpreted as epoch milliseconds. Naive values are taken as UTC.

    Args:
        value: Raw timestamp from a payload or query string

    Returns:
        Aware UTC datetime, or None if the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, (int, float)):
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        elif isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
        else:
            return None
    except (ValueError, OverflowError, OSError):
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Drop tzinfo from a UTC datetime for storage in a naive DateTime column."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None)
