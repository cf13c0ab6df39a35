from typing import List

from .base import EmbeddingProvider, validate_text


class NoneProvider(EmbeddingProvider):
    """
    No-op provider: returns a zero vector and is always available.

    Used when no real provider can be reached. The zero vector carries no
    similarity signal, so search falls back to lexical scoring.
    """

    def __init__(self, dimensions: int = 1):
        super().__init__()
        if dimensions < 1:
            raise ValueError("dimensions must be >= 1")
        self._dimensions = dimensions

    def generate_embedding(self, text: str) -> List[float]:
        validate_text(text)
        return [0.0] * self._dimensions

    def dimensions(self) -> int:
        return self._dimensions

    def name(self) -> str:
        return 'none'

    def is_available(self) -> bool:
        return True
