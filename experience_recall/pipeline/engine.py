"""
Application wiring for the recall engine.

Builds the embedding provider, EmbeddingService, vector store, index and
search orchestrator from a Config, so the CLI and HTTP API share one setup.

Usage:
    engine = RecallEngine.from_config(load_config())
    response = engine.search({"text": "debugging", "group_by": "day"})
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from experience_recall.config import Config
from experience_recall.embeddings import EmbeddingProvider, EmbeddingService, create_provider
from experience_recall.index import EmbeddingIndex, IndexReport
from experience_recall.metrics import MetricsLogger
from experience_recall.records import JsonlRecordSource, RecordSource
from experience_recall.reliability import CircuitBreaker, CircuitBreakerConfig
from experience_recall.search import (
    BaseVectorStore,
    LocalVectorStore,
    RemoteVectorStore,
    SearchOrchestrator,
    SearchQuery,
    SearchResponse,
)

logger = logging.getLogger(__name__)


def create_store(config: Config, dimensions: int) -> BaseVectorStore:
    """
    Build the configured vector store for the active provider dimension.

    A remote store that cannot be reached falls back to the local store.
    """
    store_config = config.vector_store
    resilience = config.resilience

    if store_config.get('type') == 'remote':
        store = RemoteVectorStore(
            url=store_config.get('url'),
            api_key=store_config.get('api_key'),
            collection_name=store_config.get('collection', 'experiences'),
            dimensions=dimensions,
            timeout=float(resilience.get('search_timeout', store_config.get('timeout', 10.0))),
            circuit_breaker=CircuitBreaker(
                f"store:{store_config.get('collection', 'experiences')}",
                CircuitBreakerConfig(
                    failure_threshold=int(resilience.get('failure_threshold', 3)),
                    reset_timeout_seconds=float(resilience.get('reset_timeout', 30.0)),
                ),
            ),
        )
        if store.is_available():
            store.initialize()
            logger.info(f"Using vector store: {store.name()}")
            return store
        logger.warning(f"Remote vector store at {store.url} is not available, using local store")

    vectors_path = config.paths.get('vectors')
    store = LocalVectorStore(dimensions=dimensions, persist_path=Path(vectors_path) if vectors_path else None)
    store.initialize()
    logger.info(f"Using vector store: {store.name()}")
    return store


class RecallEngine:
    """Everything needed to search and index one record collection."""

    def __init__(
        self,
        records: RecordSource,
        embeddings: EmbeddingService,
        store: BaseVectorStore,
        config: Optional[Config] = None,
        metrics_logger: Optional[MetricsLogger] = None
    ):
        self.config = config or Config()
        self.records = records
        self.embeddings = embeddings
        self.store = store
        self.index = EmbeddingIndex(embeddings, store)
        self.orchestrator = SearchOrchestrator(
            records, embeddings=embeddings, store=store,
            config=self.config, metrics_logger=metrics_logger,
        )

    @classmethod
    def from_config(
        cls,
        config: Config,
        records_path: Optional[Path] = None,
        provider: Optional[EmbeddingProvider] = None
    ) -> 'RecallEngine':
        """
        Wire an engine from configuration.

        Args:
            config: Loaded Config
            records_path: JSONL records file (defaults to paths.records)
            provider: Explicit provider; otherwise selected by create_provider
        """
        provider = provider or create_provider(config.embedding)
        embeddings = EmbeddingService.from_config(provider, config)
        store = create_store(config, provider.dimensions())
        records_path = Path(records_path or config.paths.get('records', 'data/experiences.jsonl'))
        return cls(
            records=JsonlRecordSource(records_path),
            embeddings=embeddings,
            store=store,
            config=config,
            metrics_logger=MetricsLogger.from_config(config),
        )

    def search(self, query: Union[SearchQuery, Dict[str, Any], None] = None) -> SearchResponse:
        return self.orchestrator.search(query)

    def reindex(self, clear: bool = True) -> IndexReport:
        return self.index.rebuild(self.records.all_records(), clear=clear)

    def health(self) -> Dict[str, Any]:
        """Dependency status for health checks."""
        return {
            'provider': self.embeddings.name(),
            'dimensions': self.embeddings.dimensions(),
            'provider_circuit': self.embeddings.circuit_breaker.state.value,
            'store': self.store.name(),
            'store_available': self.store.is_available(),
            'records': len(self.records.all_records()),
        }
