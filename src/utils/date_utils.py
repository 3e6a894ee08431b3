"""Date utility functions."""

import logging
from datetime import date, datetime, timedelta
from typing import Optional, Union

logger = logging.getLogger(__name__)

FLEX_DATE_FORMAT = "%Y%m%d"
FLEX_DATETIME_FORMAT = "%Y%m%d;%H%M%S"


def parse_flex_date(value: Optional[str]) -> datetime:
    """
    Parse a broker export date string.

    Flex exports encode dates as ``YYYYMMDD`` and timestamps as
    ``YYYYMMDD;HHMMSS``. Both are returned as naive datetimes; a date-only
    value lands on midnight.

    Example: "20250115" -> 2025-01-15 00:00:00
    Example: "20250115;143052" -> 2025-01-15 14:30:52

    Args:
        value: Raw attribute value

    Returns:
        Parsed datetime

    Raises:
        ValueError: If the value is empty or does not match either format
    """
    if value is None or not str(value).strip():
        raise ValueError("empty date value")

    text = str(value).strip()
    fmt = FLEX_DATETIME_FORMAT if ";" in text else FLEX_DATE_FORMAT
    try:
        return datetime.strptime(text, fmt)
    except ValueError as e:
        raise ValueError(f"unrecognized date '{text}' (expected {fmt})") from e


def start_of_week(value: Union[date, datetime]) -> date:
    """
    Return the Monday of the week containing ``value``.

    Weeks start on Monday, matching how broker statements group activity.
    """
    day = value.date() if isinstance(value, datetime) else value
    return day - timedelta(days=day.weekday())


def start_of_month(value: Union[date, datetime]) -> date:
    """Return the first day of the month containing ``value``."""
    day = value.date() if isinstance(value, datetime) else value
    return day.replace(day=1)


def to_date(value: Union[date, datetime]) -> date:
    """Drop the time component of a datetime; dates pass through unchanged."""
    return value.date() if isinstance(value, datetime) else value


def isoformat_or_none(value: Optional[Union[date, datetime]]) -> Optional[str]:
    """Render an optional date/datetime as ISO-8601."""
    return value.isoformat() if value is not None else None
