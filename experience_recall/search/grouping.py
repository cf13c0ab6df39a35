"""
Result grouping by calendar bucket or experiencer.

Buckets are keyed on the UTC created timestamp and kept in the order their
first member appears in the input.
"""

from collections import OrderedDict
from typing import Callable, Dict, List, Sequence, TypeVar

from experience_recall.errors import ValidationError
from experience_recall.records.models import ExperienceRecord
from experience_recall.utils.dates import to_utc

GROUP_BY_OPTIONS = ('day', 'week', 'month', 'experiencer')

T = TypeVar('T')


def group_key(record: ExperienceRecord, group_by: str) -> str:
    """Bucket key for a record: '2024-01-15', '2024-W03', '2024-01' or 'Alice & Bob'."""
    if group_by == 'experiencer':
        return record.experiencer
    created = to_utc(record.created)
    if group_by == 'day':
        return created.strftime('%Y-%m-%d')
    if group_by == 'week':
        year, week, _ = created.isocalendar()
        return f"{year}-W{week:02d}"
    if group_by == 'month':
        return created.strftime('%Y-%m')
    raise ValidationError(
        f"group_by must be one of {', '.join(GROUP_BY_OPTIONS)}, got {group_by!r}",
        field='group_by',
    )


def group_items(items: Sequence[T], group_by: str,
                record_of: Callable[[T], ExperienceRecord]) -> "OrderedDict[str, List[T]]":
    groups: "OrderedDict[str, List[T]]" = OrderedDict()
    for item in items:
        groups.setdefault(group_key(record_of(item), group_by), []).append(item)
    return groups


def group_counts(records: Sequence[ExperienceRecord], group_by: str) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for record in records:
        key = group_key(record, group_by)
        counts[key] = counts.get(key, 0) + 1
    return counts
