"""
Timestamp helpers.

All timestamps inside the engine are timezone-aware UTC datetimes. Naive
inputs are interpreted as UTC.
"""

from datetime import datetime, timezone
from typing import Union

from dateutil import parser as dateutil_parser


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO 8601 timestamp (or pass a datetime through) into UTC.

    Args:
        value: ISO string such as '2024-01-15', '2024-01-15T10:00:00Z'
            or a datetime instance

    Returns:
        Timezone-aware UTC datetime

    Raises:
        ValueError: If the value is not a parseable ISO timestamp
    """
    if isinstance(value, datetime):
        return to_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected an ISO timestamp string, got {value!r}")
    try:
        parsed = dateutil_parser.isoparse(value.strip())
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid ISO timestamp '{value}': {e}") from e
    return to_utc(parsed)


def is_date_only(value: str) -> bool:
    """True for bare calendar dates like '2024-01-15' (no time component)."""
    return isinstance(value, str) and 'T' not in value.strip() and len(value.strip()) <= 10
