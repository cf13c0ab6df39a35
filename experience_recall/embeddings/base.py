"""
Embedding provider interface.

Every provider turns one text into one vector of a fixed, provider-specific
dimension. Providers are constructed explicitly and injected; see
factory.create_provider for environment-driven selection.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import List, Sequence

from experience_recall.errors import ValidationError

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 1_000_000


def validate_text(text: str) -> None:
    """
    Reject empty or oversized input before it reaches a provider.

    Raises:
        ValidationError: If text is empty, not a string, or longer than 1M characters
    """
    if not isinstance(text, str) or not text:
        raise ValidationError("Text cannot be empty", field='text')
    if len(text) > MAX_TEXT_LENGTH:
        raise ValidationError("Text exceeds maximum length of 1M characters", field='text')


def normalize_vector(vector: Sequence[float]) -> List[float]:
    """Scale to unit length; zero vectors are returned unchanged."""
    magnitude = math.sqrt(sum(v * v for v in vector))
    if magnitude == 0:
        return list(vector)
    return [v / magnitude for v in vector]


class EmbeddingProvider(ABC):
    """Base class for embedding providers."""

    def __init__(self):
        self.initialized = False

    def initialize(self) -> None:
        """Prepare the provider (load models, check credentials)."""
        self.initialized = True

    @abstractmethod
    def generate_embedding(self, text: str) -> List[float]:
        """Return the embedding for a single text."""

    @abstractmethod
    def dimensions(self) -> int:
        """Length of every vector this provider returns."""

    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name, e.g. 'OpenAI-text-embedding-3-large'."""

    def is_available(self) -> bool:
        """Probe the provider with a tiny request; never raises."""
        try:
            if not self.initialized:
                self.initialize()
            vector = self.generate_embedding('test')
            return len(vector) > 0
        except Exception as e:
            logger.debug(f"Provider {self.name()} unavailable: {e}")
            return False

    def cleanup(self) -> None:
        """Release held resources."""
        self.initialized = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name()!r}, dimensions={self.dimensions()})"
