"""
Experience record models.

This module defines the typed record consumed by the recall engine:
- id: opaque, stable identifier
- seven qualities (embodied, focus, mood, purpose, space, time, presence),
  each either a manifestation sentence or explicitly absent
- who: ordered, non-empty list of participants
- citation: optional verbatim quote
- created / occurred / updated timestamps
- reflects: ids of the records this one comments on

Records are produced by the capture layer; this module only converts them
between dicts, JSONL files and typed objects.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from experience_recall.errors import ValidationError
from experience_recall.utils.dates import parse_timestamp

logger = logging.getLogger(__name__)

QUALITY_NAMES = ('embodied', 'focus', 'mood', 'purpose', 'space', 'time', 'presence')


@dataclass(frozen=True)
class Quality:
    """
    A single experiential quality: a manifestation string, or absent.

    Any manifestation string counts as present, including an empty one.
    """
    manifestation: Optional[str] = None

    @classmethod
    def absent(cls) -> 'Quality':
        return ABSENT

    @classmethod
    def of(cls, manifestation: str) -> 'Quality':
        if not isinstance(manifestation, str):
            raise ValidationError(
                f"Quality manifestation must be a string, got {type(manifestation).__name__}"
            )
        return cls(manifestation)

    @classmethod
    def from_value(cls, value: Any, name: str = 'quality') -> 'Quality':
        """Convert a raw stored value (str, False or None) into a Quality."""
        if isinstance(value, Quality):
            return value
        if value is None or value is False:
            return ABSENT
        if isinstance(value, str):
            return cls(value)
        raise ValidationError(
            f"Quality '{name}' must be a string or absent (false/null), got {value!r}",
            field=name,
        )

    @property
    def present(self) -> bool:
        return self.manifestation is not None

    def contains(self, needle: str) -> bool:
        """Case-insensitive substring check; always False when absent."""
        if self.manifestation is None:
            return False
        return needle.lower() in self.manifestation.lower()

    def to_value(self):
        return self.manifestation if self.present else False

    def __str__(self) -> str:
        return self.manifestation if self.present else '<absent>'


ABSENT = Quality()


@dataclass
class ExperienceRecord:
    """A captured first-person experience with its seven qualities."""
    id: str
    created: datetime
    who: List[str]
    embodied: Quality = ABSENT
    focus: Quality = ABSENT
    mood: Quality = ABSENT
    purpose: Quality = ABSENT
    space: Quality = ABSENT
    time: Quality = ABSENT
    presence: Quality = ABSENT
    citation: Optional[str] = None
    occurred: Optional[datetime] = None
    updated: Optional[datetime] = None
    reflects: List[str] = field(default_factory=list)
    type: str = 'experience'
    perspective: Optional[str] = None
    processing: Optional[str] = None
    anchor: Optional[str] = None

    def quality(self, name: str) -> Quality:
        if name not in QUALITY_NAMES:
            raise ValidationError(f"Unknown quality: {name}", field=name)
        return getattr(self, name)

    def qualities(self) -> Dict[str, Quality]:
        return {name: getattr(self, name) for name in QUALITY_NAMES}

    def has_quality_data(self) -> bool:
        return any(q.present for q in self.qualities().values())

    @property
    def occurred_at(self) -> datetime:
        """User-asserted event time, falling back to the capture time."""
        return self.occurred or self.created

    @property
    def updated_at(self) -> datetime:
        return self.updated or self.created

    @property
    def experiencer(self) -> str:
        return ' & '.join(self.who)

    def searchable_text(self) -> str:
        """Concatenate present manifestations and the citation for text search."""
        parts = [q.manifestation for q in self.qualities().values() if q.present and q.manifestation]
        if self.citation:
            parts.append(self.citation)
        return ' '.join(parts)


def create_experience_record(data: Dict[str, Any]) -> ExperienceRecord:
    """
    Build a typed record from a stored dict.

    Accepts the flat layout (quality keys at top level) and the older nested
    layout where qualities live under 'experienceQualities' or 'qualities'.
    'when' is accepted as an alias of 'occurred', 'experiencer' as a single
    participant when 'who' is missing.

    Args:
        data: Record dictionary

    Returns:
        ExperienceRecord instance

    Raises:
        ValidationError: If a required field is missing or has the wrong type
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Record must be an object, got {type(data).__name__}")

    record_id = data.get('id')
    if not isinstance(record_id, str) or not record_id:
        raise ValidationError("Record id must be a non-empty string", field='id')

    if 'created' not in data:
        raise ValidationError(f"Record {record_id} is missing 'created'", field='created')
    created = _parse_record_time(data['created'], record_id, 'created')

    who = data.get('who')
    if who is None and data.get('experiencer'):
        who = [data['experiencer']]
    if isinstance(who, str):
        who = [who]
    if not isinstance(who, list) or not who or not all(isinstance(w, str) and w for w in who):
        raise ValidationError(
            f"Record {record_id}: 'who' must be a non-empty list of strings", field='who'
        )

    nested = data.get('experienceQualities') or data.get('qualities') or {}
    if not isinstance(nested, dict):
        raise ValidationError(f"Record {record_id}: qualities must be an object", field='qualities')
    qualities = {}
    for name in QUALITY_NAMES:
        raw = data[name] if name in data else nested.get(name)
        qualities[name] = Quality.from_value(raw, name)

    occurred_raw = data.get('occurred', data.get('when'))
    occurred = _parse_record_time(occurred_raw, record_id, 'occurred') if occurred_raw else None
    updated = _parse_record_time(data['updated'], record_id, 'updated') if data.get('updated') else None

    reflects = data.get('reflects') or []
    if not isinstance(reflects, list) or not all(isinstance(r, str) for r in reflects):
        raise ValidationError(
            f"Record {record_id}: 'reflects' must be a list of ids", field='reflects'
        )

    citation = data.get('citation')
    if citation is not None and not isinstance(citation, str):
        raise ValidationError(f"Record {record_id}: 'citation' must be a string", field='citation')

    return ExperienceRecord(
        id=record_id,
        created=created,
        who=list(who),
        citation=citation or None,
        occurred=occurred,
        updated=updated,
        reflects=list(reflects),
        type=data.get('type') or 'experience',
        perspective=data.get('perspective'),
        processing=data.get('processing'),
        anchor=data.get('anchor') or data.get('emoji'),
        **qualities,
    )


def record_to_dict(record: ExperienceRecord) -> Dict[str, Any]:
    """Serialize a record to the flat dict layout (absent qualities become false)."""
    result: Dict[str, Any] = {
        'id': record.id,
        'created': record.created.isoformat(),
        'who': list(record.who),
    }
    for name, quality in record.qualities().items():
        result[name] = quality.to_value()
    if record.citation:
        result['citation'] = record.citation
    if record.occurred:
        result['occurred'] = record.occurred.isoformat()
    if record.updated:
        result['updated'] = record.updated.isoformat()
    result['reflects'] = list(record.reflects)
    result['type'] = record.type
    for optional in ('perspective', 'processing', 'anchor'):
        value = getattr(record, optional)
        if value:
            result[optional] = value
    return result


def write_experience_records(records: Iterable[ExperienceRecord], output_path: Path) -> None:
    """
    Write records to a JSONL file.

    Args:
        records: Records to write
        output_path: Path to output JSONL file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        for record in records:
            f.write(json.dumps(record_to_dict(record), ensure_ascii=False) + "\n")


def read_experience_records(input_path: Path) -> List[ExperienceRecord]:
    """
    Read records from a JSONL file.

    Args:
        input_path: Path to input JSONL file

    Returns:
        List of records in file order

    Raises:
        FileNotFoundError: If input file doesn't exist
        ValidationError: If a line is not valid JSON or not a valid record
    """
    input_path = Path(input_path)
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    records = []
    with open(input_path, "r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Invalid JSON at line {line_num}: {e}")
            records.append(create_experience_record(entry))

    logger.debug(f"Read {len(records)} records from {input_path}")
    return records


def _parse_record_time(value: Any, record_id: str, field_name: str) -> datetime:
    try:
        return parse_timestamp(value)
    except ValueError as e:
        raise ValidationError(f"Record {record_id}: invalid '{field_name}': {e}", field=field_name)
