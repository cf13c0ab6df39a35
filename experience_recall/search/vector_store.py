"""
Vector store interface and the local numpy-backed implementation.

The local store keeps every vector in memory, answers queries by brute-force
cosine similarity, and persists to a JSON snapshot that is written to a
temporary file and atomically moved into place.
"""

import json
import logging
import math
import os
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from numbers import Real
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from experience_recall.errors import StoreError, ValidationError

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"


@dataclass
class VectorMatch:
    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)


def validate_vector(vector: Any, dimensions: Optional[int] = None) -> List[float]:
    """
    Check a vector before it touches a store.

    Raises:
        ValidationError: If the vector is empty, holds non-finite or non-numeric
            values, or its length differs from dimensions
    """
    if isinstance(vector, np.ndarray):
        if vector.ndim != 1:
            raise ValidationError(f"Vector must be 1D, got shape {vector.shape}", field='vector')
        vector = vector.tolist()
    if isinstance(vector, (str, bytes)) or not isinstance(vector, Sequence):
        raise ValidationError("Vector must be a sequence of numbers", field='vector')
    if len(vector) == 0:
        raise ValidationError("Vector must not be empty", field='vector')
    for value in vector:
        if isinstance(value, bool) or not isinstance(value, Real):
            raise ValidationError(f"Vector contains a non-numeric value: {value!r}", field='vector')
        if not math.isfinite(value):
            raise ValidationError("Vector contains NaN or infinite values", field='vector')
    if dimensions is not None and len(vector) != dimensions:
        raise ValidationError(
            f"Vector dimension {len(vector)} doesn't match expected {dimensions}",
            field='vector',
        )
    return [float(v) for v in vector]


def validate_id(vector_id: Any) -> str:
    if not isinstance(vector_id, str) or not vector_id.strip():
        raise ValidationError("Vector id must be a non-empty string", field='id')
    return vector_id


def validate_metadata(metadata: Any) -> Dict[str, Any]:
    if metadata is None:
        return {}
    if not isinstance(metadata, dict):
        raise ValidationError("Metadata must be a dictionary", field='metadata')
    return metadata


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns exactly 0.0 when either vector has zero norm.

    Raises:
        ValidationError: If the vectors differ in length
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValidationError(f"Vector length mismatch: {a.shape[0]} vs {b.shape[0]}")
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def matches_filter(metadata: Dict[str, Any], metadata_filter: Optional[Dict[str, Any]]) -> bool:
    """Equality filter; a list value matches any of its items."""
    if not metadata_filter:
        return True
    for key, expected in metadata_filter.items():
        actual = metadata.get(key)
        if isinstance(expected, (list, tuple, set)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


class BaseVectorStore(ABC):
    """Common interface for local and remote vector stores."""

    def initialize(self) -> None:
        """Prepare the store (load snapshot, ensure collection)."""

    @abstractmethod
    def upsert(self, vector_id: str, vector: Sequence[float],
               metadata: Optional[Dict[str, Any]] = None) -> None:
        """Insert or replace one vector."""

    @abstractmethod
    def search(self, query_vector: Sequence[float],
               metadata_filter: Optional[Dict[str, Any]] = None,
               limit: int = 10) -> List[VectorMatch]:
        """Return up to limit matches sorted by score descending."""

    @abstractmethod
    def delete(self, vector_id: str) -> bool:
        """Remove one vector; returns whether it existed."""

    @abstractmethod
    def get(self, vector_id: str) -> Optional[VectorMatch]:
        """Return the stored entry (score 1.0) or None."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored vectors."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every vector."""

    def is_available(self) -> bool:
        return True

    @abstractmethod
    def name(self) -> str:
        """Store name for logs and health output."""

    @staticmethod
    def _validate_limit(limit: int) -> int:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError("limit must be a positive integer", field='limit')
        return limit


class LocalVectorStore(BaseVectorStore):
    """
    In-memory vector store with JSON snapshot persistence.

    Writes (upsert, delete, clear, save) are serialised with a lock so snapshot
    files never interleave. The dimension is fixed at construction or by the
    first upsert.
    """

    def __init__(
        self,
        dimensions: Optional[int] = None,
        persist_path: Optional[Path] = None,
        autosave: bool = True
    ):
        """
        Args:
            dimensions: Expected vector dimension (taken from the first upsert if None)
            persist_path: JSON snapshot location; None keeps the store in memory only
            autosave: Write the snapshot after every mutation
        """
        self.dimensions = dimensions
        self.persist_path = Path(persist_path) if persist_path else None
        self.autosave = autosave

        self.vectors: Optional[np.ndarray] = None
        self.metadata: List[Dict[str, Any]] = []
        self.ids: List[str] = []
        self._id_to_index: Dict[str, int] = {}
        self._lock = threading.Lock()

        logger.info(f"Initialized LocalVectorStore (dimensions={dimensions}, path={self.persist_path})")

    def name(self) -> str:
        return 'local'

    def initialize(self) -> None:
        if self.persist_path and self.persist_path.exists():
            self.load()

    def _reindex(self) -> None:
        self._id_to_index = {vector_id: i for i, vector_id in enumerate(self.ids)}

    def upsert(self, vector_id: str, vector: Sequence[float],
               metadata: Optional[Dict[str, Any]] = None) -> None:
        vector_id = validate_id(vector_id)
        metadata = validate_metadata(metadata)
        with self._lock:
            values = validate_vector(vector, self.dimensions)
            row = np.asarray(values, dtype=np.float32)
            dimensions = self.dimensions if self.dimensions is not None else row.shape[0]

            ids = list(self.ids)
            entries = list(self.metadata)
            if vector_id in self._id_to_index:
                idx = self._id_to_index[vector_id]
                vectors = self.vectors.copy()
                vectors[idx] = row
                entries[idx] = dict(metadata)
            else:
                if self.vectors is None:
                    vectors = row.reshape(1, -1)
                else:
                    vectors = np.vstack([self.vectors, row.reshape(1, -1)])
                entries.append(dict(metadata))
                ids.append(vector_id)

            self._commit(dimensions, ids, vectors, entries)

    def search(self, query_vector: Sequence[float],
               metadata_filter: Optional[Dict[str, Any]] = None,
               limit: int = 10) -> List[VectorMatch]:
        limit = self._validate_limit(limit)
        query = np.asarray(validate_vector(query_vector, self.dimensions), dtype=np.float32)

        with self._lock:
            if self.vectors is None or not self.ids:
                return []
            vectors = self.vectors
            ids = list(self.ids)
            metadata = list(self.metadata)

        start_time = time.time()
        query_norm = np.linalg.norm(query)
        norms = np.linalg.norm(vectors, axis=1)

        if query_norm == 0:
            similarities = np.zeros(len(ids), dtype=np.float32)
            candidates = range(len(ids))
        else:
            safe_norms = np.where(norms == 0, 1, norms)
            similarities = np.dot(vectors, query) / (safe_norms * query_norm)
            candidates = [i for i in range(len(ids)) if norms[i] != 0]

        candidates = [i for i in candidates if matches_filter(metadata[i], metadata_filter)]
        candidates.sort(key=lambda i: float(similarities[i]), reverse=True)

        results = [
            VectorMatch(id=ids[i], score=float(similarities[i]), metadata=dict(metadata[i]))
            for i in candidates[:limit]
        ]

        elapsed_ms = (time.time() - start_time) * 1000
        if elapsed_ms > 50:
            logger.warning(f"Search took {elapsed_ms:.2f}ms over {len(ids)} vectors")
        return results

    def get(self, vector_id: str) -> Optional[VectorMatch]:
        with self._lock:
            idx = self._id_to_index.get(vector_id)
            if idx is None:
                return None
            return VectorMatch(vector_id, 1.0, dict(self.metadata[idx]))

    def get_vector(self, vector_id: str) -> Optional[List[float]]:
        with self._lock:
            idx = self._id_to_index.get(vector_id)
            if idx is None:
                return None
            return self.vectors[idx].tolist()

    def delete(self, vector_id: str) -> bool:
        with self._lock:
            if vector_id not in self._id_to_index:
                return False
            idx = self._id_to_index[vector_id]
            vectors = np.delete(self.vectors, idx, axis=0)
            ids = self.ids[:idx] + self.ids[idx + 1:]
            entries = self.metadata[:idx] + self.metadata[idx + 1:]
            self._commit(self.dimensions, ids, vectors if ids else None, entries)
            return True

    def count(self) -> int:
        with self._lock:
            return len(self.ids)

    def clear(self) -> None:
        with self._lock:
            self._commit(self.dimensions, [], None, [])
        logger.info("Cleared vector store")

    def _commit(self, dimensions: Optional[int], ids: List[str],
                vectors: Optional[np.ndarray], metadata: List[Dict[str, Any]]) -> None:
        """Persist the new state when autosaving, then swap it in. Caller holds the lock."""
        if self.autosave and self.persist_path:
            self._write_snapshot(self.persist_path, dimensions, ids, vectors, metadata)

        if self.dimensions is None and dimensions is not None:
            logger.info(f"Set embedding dimension to {dimensions}")
        self.dimensions = dimensions
        self.ids = ids
        self.vectors = vectors
        self.metadata = metadata
        self._reindex()

    def save(self, path: Optional[Path] = None) -> None:
        with self._lock:
            save_path = Path(path) if path else self.persist_path
            if save_path is None:
                raise ValueError("No save path provided")
            self._write_snapshot(save_path, self.dimensions, self.ids, self.vectors, self.metadata)

    @staticmethod
    def _write_snapshot(save_path: Path, dimensions: Optional[int], ids: List[str],
                        vectors: Optional[np.ndarray], metadata: List[Dict[str, Any]]) -> None:
        data = {
            'version': SNAPSHOT_VERSION,
            'dimensions': dimensions,
            'entries': [
                {'id': vector_id, 'vector': vectors[i].tolist(), 'metadata': metadata[i]}
                for i, vector_id in enumerate(ids)
            ],
        }
        tmp_path = save_path.with_name(save_path.name + '.tmp')
        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f)
            os.replace(tmp_path, save_path)
        except OSError as e:
            raise StoreError(f"Failed to write vector snapshot {save_path}: {e}") from e
        logger.debug(f"Saved vector store to {save_path} ({len(ids)} vectors)")

    def load(self, path: Optional[Path] = None) -> None:
        """
        Load a JSON snapshot, replacing current contents.

        Entries whose dimension differs from the store's are dropped.

        Raises:
            FileNotFoundError: If the snapshot does not exist
            StoreError: If the snapshot is not valid JSON
        """
        load_path = Path(path) if path else self.persist_path
        if load_path is None:
            raise ValueError("No load path provided")
        if not load_path.exists():
            raise FileNotFoundError(f"Vector store file not found: {load_path}")

        try:
            with open(load_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupt vector snapshot {load_path}: {e}") from e

        dimensions = self.dimensions or data.get('dimensions')
        ids, rows, metadata = [], [], []
        dropped = 0
        for entry in data.get('entries', []):
            vector = entry.get('vector') or []
            if dimensions is None:
                dimensions = len(vector)
            if len(vector) != dimensions:
                dropped += 1
                continue
            ids.append(entry['id'])
            rows.append(vector)
            metadata.append(entry.get('metadata') or {})

        if dropped:
            logger.warning(
                f"Dropped {dropped} vectors from {load_path} with dimension != {dimensions}"
            )

        with self._lock:
            self.dimensions = dimensions
            self.ids = ids
            self.metadata = metadata
            self.vectors = np.asarray(rows, dtype=np.float32) if rows else None
            self._reindex()

        logger.info(f"Loaded vector store from {load_path} ({len(ids)} vectors)")
