"""Date parsing utilities."""

from datetime import datetime, time, timedelta, UTC
from dateutil import parser as date_parser


def parse_expense_datetime(date_str: str) -> datetime:
    """Parse the date of an expense into a UTC datetime.

    Supports:
    - Relative dates: "now", "today", "yesterday"
    - Absolute dates and times: "2024-01-15", "2024-01-15 18:30", "January 15, 2024"

    Dates without a time are placed at noon UTC so they stay on the same
    calendar day in most time zones.

    Args:
        date_str: Date string in various formats

    Returns:
        Timezone-aware UTC datetime

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip()
    now = datetime.now(UTC)
    noon = time(12, 0, tzinfo=UTC)

    relative_dates = {
        "now": now,
        "today": datetime.combine(now.date(), noon),
        "yesterday": datetime.combine(now.date() - timedelta(days=1), noon),
    }
    if date_str.lower() in relative_dates:
        return relative_dates[date_str.lower()]

    try:
        parsed = date_parser.parse(date_str)
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")

    if parsed.tzinfo is not None:
        return parsed.astimezone(UTC)
    if parsed.time() == time(0, 0) and ":" not in date_str:
        return datetime.combine(parsed.date(), noon)
    return parsed.replace(tzinfo=UTC)
