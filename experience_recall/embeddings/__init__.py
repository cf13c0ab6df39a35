"""
Embeddings Module

Provider interface and implementations, provider selection, and the
EmbeddingService wrapper (cache, rate limit, timeout, circuit breaker, fallback).
"""

from .base import EmbeddingProvider, normalize_vector, validate_text
from .factory import PROVIDER_PRIORITY, build_provider, create_provider, detect_provider_type
from .local_provider import LocalProvider
from .metadata import EmbeddingRecord, content_hash
from .none_provider import NoneProvider
from .remote_providers import OpenAIProvider, VoyageProvider
from .service import EmbeddingResult, EmbeddingService

__all__ = [
    'EmbeddingProvider',
    'normalize_vector',
    'validate_text',
    'PROVIDER_PRIORITY',
    'build_provider',
    'create_provider',
    'detect_provider_type',
    'LocalProvider',
    'EmbeddingRecord',
    'content_hash',
    'NoneProvider',
    'OpenAIProvider',
    'VoyageProvider',
    'EmbeddingResult',
    'EmbeddingService',
]
