"""
Embedding index maintenance.

Keeps one EmbeddingRecord per experience record in a vector store: generated
when a record is captured, regenerated when its searchable text changes, and
deleted when the record is released. Unlike search, indexing is a write path:
provider and store failures propagate to the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from experience_recall.embeddings.metadata import EmbeddingRecord, content_hash
from experience_recall.embeddings.service import EmbeddingService
from experience_recall.errors import ProviderError
from experience_recall.records.models import ExperienceRecord
from experience_recall.search.vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


@dataclass
class IndexReport:
    """Outcome of a rebuild."""
    indexed: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.indexed + self.unchanged + self.skipped + len(self.failed)


class EmbeddingIndex:
    """Synchronises record embeddings into a vector store."""

    def __init__(self, embeddings: EmbeddingService, store: BaseVectorStore):
        self.embeddings = embeddings
        self.store = store

    def is_current(self, record: ExperienceRecord) -> bool:
        """True when the stored vector was generated from the record's current text."""
        existing = self.store.get(record.id)
        if existing is None:
            return False
        return (existing.metadata.get('content_hash') == content_hash(record.searchable_text())
                and existing.metadata.get('provider') == self.embeddings.name())

    def index_record(self, record: ExperienceRecord, force: bool = False) -> Optional[EmbeddingRecord]:
        """
        Generate and store the embedding for one record.

        Args:
            record: Record to index
            force: Regenerate even when the stored vector is current

        Returns:
            The new EmbeddingRecord, or None if the record has no searchable
            text or its vector is already current

        Raises:
            ProviderError: If the provider could not produce a real embedding
            StoreError: If the store rejects the write
        """
        text = record.searchable_text()
        if not text:
            logger.debug(f"Record {record.id} has no searchable text, removing any stored vector")
            self.store.delete(record.id)
            return None

        if not force and self.is_current(record):
            return None

        result = self.embeddings.embed_with_status(text)
        if result.degraded:
            raise ProviderError(
                f"Could not embed record {record.id} with {self.embeddings.name()}: {result.error}"
            )

        embedding = EmbeddingRecord(
            source_id=record.id,
            vector=result.vector,
            provider=self.embeddings.name(),
            content_hash=content_hash(text),
        )
        self.store.upsert(record.id, embedding.vector, embedding.to_metadata())
        logger.debug(f"Indexed record {record.id} ({embedding.dimensions} dimensions)")
        return embedding

    def remove_record(self, record_id: str) -> bool:
        """Delete a released record's vector."""
        removed = self.store.delete(record_id)
        if removed:
            logger.debug(f"Removed vector for record {record_id}")
        return removed

    def rebuild(self, records: Iterable[ExperienceRecord], clear: bool = True) -> IndexReport:
        """
        Re-index many records.

        Args:
            records: Records to index
            clear: Drop every stored vector first (full rebuild); otherwise only
                new or changed records are embedded

        Returns:
            IndexReport; per-record provider failures are collected rather than raised
        """
        if clear:
            self.store.clear()

        report = IndexReport()
        for record in records:
            if not record.searchable_text():
                report.skipped += 1
                continue
            try:
                embedding = self.index_record(record, force=clear)
            except ProviderError as e:
                logger.warning(str(e))
                report.failed.append(record.id)
                continue
            if embedding is None:
                report.unchanged += 1
            else:
                report.indexed += 1

        logger.info(
            f"Index rebuild: {report.indexed} indexed, {report.unchanged} unchanged, "
            f"{report.skipped} skipped, {len(report.failed)} failed"
        )
        return report
