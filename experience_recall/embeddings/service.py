"""
EmbeddingService: cache, rate limiting, timeouts and circuit breaking around a
provider.

generate_embedding() never raises on provider trouble. When the provider times
out, errors, or its circuit is open, the service returns the zero vector sized
to the active provider's dimension and logs a warning.
"""

import hashlib
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Optional

from experience_recall.errors import CircuitOpenError
from experience_recall.reliability import (
    CircuitBreaker,
    CircuitBreakerConfig,
    RateLimiter,
    call_with_timeout,
)

from .base import EmbeddingProvider, validate_text
from .none_provider import NoneProvider

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_TIMEOUT = 20.0
DEFAULT_CACHE_SIZE = 1000


@dataclass
class EmbeddingResult:
    vector: List[float]
    degraded: bool = False
    cached: bool = False
    error: Optional[str] = None


class EmbeddingService:
    """Cross-cutting wrapper used by search and indexing."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        cache_size: int = DEFAULT_CACHE_SIZE,
        timeout: Optional[float] = DEFAULT_EMBEDDING_TIMEOUT,
        rate_limiter: Optional[RateLimiter] = None,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        self.provider = provider
        self.cache_size = cache_size
        self.timeout = timeout
        self.rate_limiter = rate_limiter or RateLimiter(0.0)
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            f"embedding:{provider.name()}", CircuitBreakerConfig()
        )
        self._fallback = NoneProvider(dimensions=provider.dimensions())
        self._cache: "OrderedDict[str, List[float]]" = OrderedDict()
        self._cache_lock = threading.Lock()

    @classmethod
    def from_config(cls, provider: EmbeddingProvider, config) -> 'EmbeddingService':
        """Build a service using the 'embedding' and 'resilience' config sections."""
        embedding = config.embedding
        resilience = config.resilience
        return cls(
            provider,
            cache_size=int(embedding.get('cache_size', DEFAULT_CACHE_SIZE)),
            timeout=float(resilience.get('embedding_timeout', DEFAULT_EMBEDDING_TIMEOUT)),
            rate_limiter=RateLimiter.per_second(float(embedding.get('requests_per_second', 0) or 0)),
            circuit_breaker=CircuitBreaker(
                f"embedding:{provider.name()}",
                CircuitBreakerConfig(
                    failure_threshold=int(resilience.get('failure_threshold', 3)),
                    reset_timeout_seconds=float(resilience.get('reset_timeout', 30.0)),
                ),
            ),
        )

    def dimensions(self) -> int:
        return self.provider.dimensions()

    def name(self) -> str:
        return self.provider.name()

    @staticmethod
    def cache_key(text: str) -> str:
        return hashlib.sha256(text.encode('utf-8')).hexdigest()

    def _cache_get(self, key: str) -> Optional[List[float]]:
        with self._cache_lock:
            vector = self._cache.get(key)
            if vector is not None:
                self._cache.move_to_end(key)
            return vector

    def _cache_put(self, key: str, vector: List[float]) -> None:
        if self.cache_size <= 0:
            return
        with self._cache_lock:
            self._cache[key] = vector
            self._cache.move_to_end(key)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    def _fallback_vector(self, text: str) -> List[float]:
        if self._fallback.dimensions() != self.provider.dimensions():
            self._fallback = NoneProvider(dimensions=self.provider.dimensions())
        return self._fallback.generate_embedding(text)

    def _call_provider(self, text: str) -> List[float]:
        self.rate_limiter.acquire()
        return call_with_timeout(
            self.provider.generate_embedding, self.timeout, text,
            operation=f"Embedding via {self.provider.name()}"
        )

    def embed_with_status(self, text: str) -> EmbeddingResult:
        """
        Embed text and report whether the result is a degraded fallback.

        Raises:
            ValidationError: If text is empty or too long
        """
        validate_text(text)
        key = self.cache_key(text)
        cached = self._cache_get(key)
        if cached is not None:
            return EmbeddingResult(list(cached), cached=True)

        try:
            vector = self.circuit_breaker.execute(self._call_provider, text)
        except CircuitOpenError as e:
            logger.warning(f"Embedding skipped, {e}")
            return EmbeddingResult(self._fallback_vector(text), degraded=True, error=str(e))
        except Exception as e:
            logger.warning(f"Embedding via {self.provider.name()} failed, using fallback: {e}")
            return EmbeddingResult(self._fallback_vector(text), degraded=True, error=str(e))

        vector = list(vector)
        if len(vector) != self.provider.dimensions():
            message = (f"Provider {self.provider.name()} returned {len(vector)} dimensions, "
                       f"expected {self.provider.dimensions()}")
            logger.warning(message)
            return EmbeddingResult(self._fallback_vector(text), degraded=True, error=message)

        self._cache_put(key, vector)
        return EmbeddingResult(vector)

    def generate_embedding(self, text: str) -> List[float]:
        return self.embed_with_status(text).vector
