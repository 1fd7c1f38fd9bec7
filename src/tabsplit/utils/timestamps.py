"""Timestamp parsing and formatting utilities."""

from datetime import datetime, UTC
from dateutil import parser as date_parser


def ensure_utc(value: datetime) -> datetime:
    """Return value as a timezone-aware UTC datetime.

    Naive datetimes (as returned by SQLite) are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp into a UTC datetime.

    Args:
        value: Timestamp such as "2025-12-14T20:06:56.123Z"

    Returns:
        Timezone-aware UTC datetime

    Raises:
        ValueError: If the timestamp cannot be parsed
    """
    try:
        parsed = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError, AttributeError) as e:
        raise ValueError(f"Could not parse timestamp '{value}': {e}")
    return ensure_utc(parsed)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO 8601 in UTC."""
    return ensure_utc(value).isoformat()
