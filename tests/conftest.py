import time
from typing import Dict, List, Optional

import pytest

from experience_recall.embeddings import EmbeddingProvider
from experience_recall.errors import ProviderError
from experience_recall.records import create_experience_record


KEYWORD_VECTORS = {
    'ocean': [1.0, 0.0, 0.0],
    'code': [0.0, 1.0, 0.0],
    'tired': [0.0, 0.0, 1.0],
}


class KeywordProvider(EmbeddingProvider):
    """Deterministic 3-d embeddings: one axis per known keyword."""

    def __init__(self):
        super().__init__()
        self.calls: List[str] = []

    def generate_embedding(self, text: str) -> List[float]:
        self.calls.append(text)
        vector = [0.0, 0.0, 0.0]
        for keyword, axis in KEYWORD_VECTORS.items():
            if keyword in text.lower():
                vector = [a + b for a, b in zip(vector, axis)]
        return vector

    def dimensions(self) -> int:
        return 3

    def name(self) -> str:
        return 'keyword'


class FailingProvider(EmbeddingProvider):
    def __init__(self, dimensions: int = 3):
        super().__init__()
        self._dimensions = dimensions
        self.calls = 0

    def generate_embedding(self, text: str) -> List[float]:
        self.calls += 1
        raise ProviderError("provider down", status=503, body="unavailable")

    def dimensions(self) -> int:
        return self._dimensions

    def name(self) -> str:
        return 'failing'


class SlowProvider(KeywordProvider):
    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    def generate_embedding(self, text: str) -> List[float]:
        time.sleep(self.delay)
        return super().generate_embedding(text)

    def name(self) -> str:
        return 'slow'


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Optional[Dict] = None, text: str = ''):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.content = b'{}' if payload is not None else b''

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def make_record():
    def _make(record_id: str, created: str = '2024-01-15T10:00:00Z', who=None, **fields):
        data = {'id': record_id, 'created': created, 'who': who or ['human']}
        data.update(fields)
        return create_experience_record(data)
    return _make
