"""
Records Module

Typed experience records and read-only record sources.
"""

from .models import (
    ABSENT,
    QUALITY_NAMES,
    ExperienceRecord,
    Quality,
    create_experience_record,
    read_experience_records,
    record_to_dict,
    write_experience_records,
)
from .source import InMemoryRecordSource, JsonlRecordSource, RecordSource

__all__ = [
    'ABSENT',
    'QUALITY_NAMES',
    'ExperienceRecord',
    'Quality',
    'create_experience_record',
    'read_experience_records',
    'record_to_dict',
    'write_experience_records',
    'RecordSource',
    'InMemoryRecordSource',
    'JsonlRecordSource',
]
