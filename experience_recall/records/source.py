"""
Record sources.

The recall engine never mutates records; it reads them through a
RecordSource, which the capture/persistence layer implements.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from .models import ExperienceRecord, read_experience_records

logger = logging.getLogger(__name__)


class RecordSource(Protocol):
    """Read-only view over the stored experience records."""

    def all_records(self) -> List[ExperienceRecord]:
        """Return every stored record."""

    def get(self, record_id: str) -> Optional[ExperienceRecord]:
        """Return one record by id, or None."""


class InMemoryRecordSource:
    """RecordSource over a fixed snapshot of records."""

    def __init__(self, records: Sequence[ExperienceRecord] = ()):
        self._records = list(records)
        self._by_id: Dict[str, ExperienceRecord] = {r.id: r for r in self._records}

    def all_records(self) -> List[ExperienceRecord]:
        return list(self._records)

    def get(self, record_id: str) -> Optional[ExperienceRecord]:
        return self._by_id.get(record_id)


class JsonlRecordSource:
    """
    RecordSource backed by a JSONL file written by the capture layer.

    The file is re-read when its modification time changes, so readers see
    the latest atomically replaced snapshot.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._mtime: Optional[float] = None
        self._snapshot = InMemoryRecordSource()

    def _refresh(self) -> InMemoryRecordSource:
        with self._lock:
            if not self.path.exists():
                if self._mtime is not None:
                    logger.warning(f"Record file disappeared: {self.path}")
                self._mtime = None
                self._snapshot = InMemoryRecordSource()
                return self._snapshot
            mtime = self.path.stat().st_mtime
            if mtime != self._mtime:
                records = read_experience_records(self.path)
                self._snapshot = InMemoryRecordSource(records)
                self._mtime = mtime
                logger.info(f"Loaded {len(records)} records from {self.path}")
            return self._snapshot

    def all_records(self) -> List[ExperienceRecord]:
        return self._refresh().all_records()

    def get(self, record_id: str) -> Optional[ExperienceRecord]:
        return self._refresh().get(record_id)
