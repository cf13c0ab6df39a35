"""
Embedding records and content hashing.

An EmbeddingRecord ties one vector to the record it was generated from, the
provider that produced it, and a hash of the text it was generated for, so
that the index can tell when a record's text changed.
"""

import hashlib
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List

from experience_recall.utils.dates import parse_timestamp, utc_now

logger = logging.getLogger(__name__)


def content_hash(text: str) -> str:
    """SHA-256 of the searchable text."""
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


@dataclass
class EmbeddingRecord:
    """Vector for a single experience record."""
    source_id: str
    vector: List[float]
    provider: str
    content_hash: str
    generated: datetime = field(default_factory=utc_now)

    @property
    def dimensions(self) -> int:
        return len(self.vector)

    def to_metadata(self) -> Dict[str, Any]:
        """Payload stored alongside the vector in a vector store."""
        return {
            'source_id': self.source_id,
            'provider': self.provider,
            'content_hash': self.content_hash,
            'generated': self.generated.isoformat(),
        }

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['generated'] = self.generated.isoformat()
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EmbeddingRecord':
        return cls(
            source_id=data['source_id'],
            vector=list(data['vector']),
            provider=data.get('provider', 'unknown'),
            content_hash=data.get('content_hash', ''),
            generated=parse_timestamp(data['generated']) if data.get('generated') else utc_now(),
        )
