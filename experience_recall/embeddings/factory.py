"""
Provider selection.

An explicit choice (config 'embedding.provider' or RECALL_EMBEDDING_PROVIDER)
wins; otherwise credentials decide: OpenAI key, then Voyage key, then the local
model. The chosen provider is probed and, if unavailable, the fixed priority
openai -> voyage -> local -> none is walked from the next entry on.
"""

import logging
import os
from typing import Any, Callable, Dict, Mapping, Optional

from experience_recall.errors import ValidationError

from .base import EmbeddingProvider
from .local_provider import LocalProvider
from .none_provider import NoneProvider
from .remote_providers import OpenAIProvider, VoyageProvider

logger = logging.getLogger(__name__)

PROVIDER_PRIORITY = ('openai', 'voyage', 'local', 'none')


def _int_or_none(value: Any) -> Optional[int]:
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Expected an integer dimension, got {value!r}", field='dimensions')


def _build_openai(settings: Dict[str, Any], env: Mapping[str, str]) -> EmbeddingProvider:
    return OpenAIProvider(
        api_key=settings.get('openai_api_key') or env.get('OPENAI_API_KEY'),
        model=env.get('OPENAI_MODEL') or settings.get('openai_model'),
        dimensions=_int_or_none(env.get('OPENAI_DIMENSIONS') or settings.get('openai_dimensions')),
        timeout=float(settings.get('timeout', 20.0)),
    )


def _build_voyage(settings: Dict[str, Any], env: Mapping[str, str]) -> EmbeddingProvider:
    return VoyageProvider(
        api_key=settings.get('voyage_api_key') or env.get('VOYAGE_API_KEY'),
        model=env.get('VOYAGE_MODEL') or settings.get('voyage_model'),
        dimensions=_int_or_none(env.get('VOYAGE_DIMENSIONS') or settings.get('voyage_dimensions')),
        input_type=settings.get('voyage_input_type'),
        timeout=float(settings.get('timeout', 20.0)),
    )


def _build_local(settings: Dict[str, Any], env: Mapping[str, str]) -> EmbeddingProvider:
    return LocalProvider(model=settings.get('model'), device=settings.get('device'))


def _build_none(settings: Dict[str, Any], env: Mapping[str, str]) -> EmbeddingProvider:
    return NoneProvider()


PROVIDER_BUILDERS: Dict[str, Callable[[Dict[str, Any], Mapping[str, str]], EmbeddingProvider]] = {
    'openai': _build_openai,
    'voyage': _build_voyage,
    'local': _build_local,
    'none': _build_none,
}


def detect_provider_type(settings: Optional[Dict[str, Any]] = None,
                         env: Optional[Mapping[str, str]] = None) -> str:
    """Return the provider name that would be tried first."""
    settings = settings or {}
    env = os.environ if env is None else env

    explicit = env.get('RECALL_EMBEDDING_PROVIDER') or settings.get('provider')
    if explicit and explicit != 'auto':
        explicit = explicit.lower()
        if explicit not in PROVIDER_BUILDERS:
            raise ValidationError(
                f"Unknown embedding provider '{explicit}' "
                f"(expected one of {', '.join(PROVIDER_PRIORITY)})",
                field='provider',
            )
        return explicit

    if settings.get('openai_api_key') or env.get('OPENAI_API_KEY'):
        return 'openai'
    if settings.get('voyage_api_key') or env.get('VOYAGE_API_KEY'):
        return 'voyage'
    return 'local'


def build_provider(provider_type: str, settings: Optional[Dict[str, Any]] = None,
                   env: Optional[Mapping[str, str]] = None) -> EmbeddingProvider:
    """Construct a provider by name without probing it."""
    if provider_type not in PROVIDER_BUILDERS:
        raise ValidationError(f"Unknown embedding provider '{provider_type}'", field='provider')
    return PROVIDER_BUILDERS[provider_type](settings or {}, os.environ if env is None else env)


def create_provider(settings: Optional[Dict[str, Any]] = None,
                    env: Optional[Mapping[str, str]] = None,
                    probe: bool = True) -> EmbeddingProvider:
    """
    Select, construct and (optionally) probe an embedding provider.

    Args:
        settings: The 'embedding' config section
        env: Environment mapping (defaults to os.environ)
        probe: Check is_available() and fall back along the priority list

    Returns:
        A usable provider; NoneProvider when nothing else is available
    """
    settings = settings or {}
    env = os.environ if env is None else env

    chosen = detect_provider_type(settings, env)
    start = PROVIDER_PRIORITY.index(chosen)

    for provider_type in PROVIDER_PRIORITY[start:]:
        try:
            provider = build_provider(provider_type, settings, env)
        except ValueError as e:
            logger.warning(f"Cannot construct provider '{provider_type}': {e}")
            continue
        if not probe or provider_type == 'none':
            logger.info(f"Using embedding provider: {provider.name()}")
            return provider
        if provider.is_available():
            logger.info(f"Using embedding provider: {provider.name()}")
            return provider
        logger.warning(f"Provider '{provider_type}' is not available, trying next")
        provider.cleanup()

    return NoneProvider()
