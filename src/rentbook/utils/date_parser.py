"""Timestamp parsing utilities."""

from datetime import date, datetime, UTC
from typing import Any
from dateutil import parser as date_parser


def parse_timestamp(value: Any) -> datetime:
    """Parse a provider timestamp into a naive UTC datetime.

    Accepts datetime and date objects as well as strings such as
    "2024-01-15T10:30:00.000Z", "2024-01-15 10:30" or "2024-01-15".
    Offset-aware values are converted to UTC; naive values are taken to be
    UTC already.

    Args:
        value: Timestamp value from the provider

    Returns:
        Naive datetime in UTC

    Raises:
        ValueError: If the value is missing or cannot be parsed
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("Missing timestamp")

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            dt = date_parser.isoparse(value.strip())
        except ValueError:
            try:
                dt = date_parser.parse(value.strip())
            except (ValueError, OverflowError) as e:
                raise ValueError(f"Could not parse timestamp '{value}': {e}")
    else:
        raise ValueError(f"Could not parse timestamp {value!r}")

    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt
