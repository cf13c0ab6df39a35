"""
Date filters for the created and occurred timestamps.

A filter is either an ISO string, which matches the whole UTC calendar day it
falls on, or a {"start": ..., "end": ...} range with inclusive bounds where one
bound may be omitted. A date-only end bound covers that entire day.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Any, Optional

from experience_recall.errors import DateFilterError
from experience_recall.utils.dates import is_date_only, parse_timestamp, to_utc


@dataclass(frozen=True)
class DateRange:
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, value: datetime) -> bool:
        value = to_utc(value)
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True


def _day_bounds(moment: datetime):
    start = datetime.combine(moment.date(), time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def _parse_bound(value: Any, field: str) -> datetime:
    if not isinstance(value, str):
        raise DateFilterError(f"{field}: expected an ISO date string, got {type(value).__name__}", field=field)
    try:
        return parse_timestamp(value)
    except ValueError as e:
        raise DateFilterError(f"{field}: {e}", field=field)


def parse_date_filter(raw: Any, field: str = 'created') -> Optional[DateRange]:
    """
    Turn a raw date filter into an inclusive UTC range.

    Args:
        raw: ISO string, {"start", "end"} dict, or None
        field: Name used in error messages ('created' or 'occurred')

    Returns:
        DateRange, or None when raw is None

    Raises:
        DateFilterError: If the filter is malformed
    """
    if raw is None:
        return None

    if isinstance(raw, str):
        moment = _parse_bound(raw, field)
        return DateRange(*_day_bounds(moment))

    if isinstance(raw, dict):
        unknown = sorted(set(raw) - {'start', 'end'})
        if unknown:
            raise DateFilterError(f"{field}: unknown keys {', '.join(unknown)}", field=field)
        start_raw, end_raw = raw.get('start'), raw.get('end')
        if start_raw is None and end_raw is None:
            raise DateFilterError(f"{field}: range needs a start or an end", field=field)

        start = _parse_bound(start_raw, f"{field}.start") if start_raw is not None else None
        end = None
        if end_raw is not None:
            end = _parse_bound(end_raw, f"{field}.end")
            if is_date_only(end_raw):
                end = _day_bounds(end)[1]
        if start is not None and end is not None and start > end:
            raise DateFilterError(f"{field}: start is after end", field=field)
        return DateRange(start, end)

    raise DateFilterError(
        f"{field}: expected an ISO string or {{start, end}} object, got {type(raw).__name__}",
        field=field,
    )
