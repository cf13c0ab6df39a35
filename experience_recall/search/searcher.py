"""
Search orchestrator.

Composes the relationship resolver, structural and date filters, lexical and
vector relevance, the quality filter engine, sorting, grouping and pagination
into one read-only search call.

Malformed queries always raise ValidationError. Failures of the embedding
provider or vector store never do: the search continues on lexical relevance
and the response lists what was degraded.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from experience_recall.embeddings.service import EmbeddingService
from experience_recall.errors import ValidationError
from experience_recall.filters.quality_filter import (
    QualityFilterExpression,
    evaluate_quality_filter,
    parse_quality_filter,
)
from experience_recall.metrics import LatencyMetrics, MetricsLogger, SearchMetrics
from experience_recall.records.models import ExperienceRecord
from experience_recall.records.source import InMemoryRecordSource, RecordSource
from experience_recall.utils.dates import to_utc

from .date_filter import DateRange, parse_date_filter
from .grouping import GROUP_BY_OPTIONS, group_counts, group_items
from .relationships import resolve_related
from .scoring import composite_score, lexical_score
from .vector_store import BaseVectorStore

logger = logging.getLogger(__name__)

SORT_OPTIONS = ('relevance', 'created', 'updated')
DEFAULT_SNIPPET_LENGTH = 200
DEFAULT_VECTOR_THRESHOLD = 0.4


@dataclass
class SearchQuery:
    """Parameters of a single search. Every field is optional."""
    text: Optional[str] = None
    types: Optional[List[str]] = None
    who: Optional[str] = None
    perspective: Optional[str] = None
    processing: Optional[str] = None
    created: Any = None
    occurred: Any = None
    qualities: Optional[Dict[str, Any]] = None
    related_to: Optional[str] = None
    group_by: Optional[str] = None
    sort: Optional[str] = None
    limit: Optional[int] = None
    offset: int = 0
    timeout: Optional[float] = None
    include_full_content: bool = False
    vector_threshold: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SearchQuery':
        """Build a query from a plain dict; camelCase keys are accepted."""
        aliases = {
            'query': 'text',
            'type': 'types',
            'groupBy': 'group_by',
            'relatedTo': 'related_to',
            'reflected_by': 'related_to',
            'includeFullContent': 'include_full_content',
            'vectorThreshold': 'vector_threshold',
        }
        known = set(cls.__dataclass_fields__)
        kwargs = {}
        for key, value in data.items():
            key = aliases.get(key, key)
            if key not in known:
                raise ValidationError(f"Unknown search parameter: {key}", field=key)
            kwargs[key] = value
        return cls(**kwargs)

    def normalized_text(self) -> str:
        return self.text.strip() if isinstance(self.text, str) else ''


@dataclass
class SearchResult:
    id: str
    snippet: str
    relevance_score: float
    breakdown: Dict[str, Optional[float]]
    record: ExperienceRecord

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'snippet': self.snippet,
            'relevance_score': round(self.relevance_score, 6),
            'breakdown': self.breakdown,
            'created': self.record.created.isoformat(),
            'who': list(self.record.who),
        }


@dataclass
class SearchGroup:
    key: str
    count: int
    results: List[SearchResult]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'count': self.count,
            'results': [r.to_dict() for r in self.results],
        }


@dataclass
class SearchResponse:
    results: List[SearchResult] = field(default_factory=list)
    total: int = 0
    groups: Optional[List[SearchGroup]] = None
    group_counts: Dict[str, int] = field(default_factory=dict)
    degraded: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'results': [r.to_dict() for r in self.results],
            'total': self.total,
            'groups': [g.to_dict() for g in self.groups] if self.groups is not None else None,
            'group_counts': dict(self.group_counts),
            'degraded': list(self.degraded),
        }


@dataclass
class _ParsedQuery:
    text: str
    types: Optional[List[str]]
    quality_filter: Optional[QualityFilterExpression]
    created: Optional[DateRange]
    occurred: Optional[DateRange]
    sort: str
    limit: Optional[int]
    offset: int
    vector_threshold: Optional[float] = None


def _optional_string(value: Any, field_name: str) -> None:
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", field=field_name)


def _non_negative_int(value: Any, field_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field_name} must be a non-negative integer", field=field_name)


def parse_search_query(query: SearchQuery) -> _ParsedQuery:
    """
    Validate every field of a query up front.

    Raises:
        ValidationError: Naming the first malformed field
    """
    for name in ('text', 'who', 'perspective', 'processing', 'related_to'):
        _optional_string(getattr(query, name), name)

    types = query.types
    if isinstance(types, str):
        types = [types]
    if types is not None:
        if not isinstance(types, list) or not all(isinstance(t, str) and t for t in types):
            raise ValidationError("types must be a list of strings", field='types')
        types = types or None

    quality_filter = None
    if query.qualities is not None:
        quality_filter = parse_quality_filter(query.qualities)

    if query.group_by is not None and query.group_by not in GROUP_BY_OPTIONS:
        raise ValidationError(
            f"group_by must be one of {', '.join(GROUP_BY_OPTIONS)}", field='group_by'
        )

    text = query.normalized_text()
    sort = query.sort or ('relevance' if text else 'created')
    if sort not in SORT_OPTIONS:
        raise ValidationError(f"sort must be one of {', '.join(SORT_OPTIONS)}", field='sort')

    if query.limit is not None:
        _non_negative_int(query.limit, 'limit')
    _non_negative_int(query.offset, 'offset')

    if query.timeout is not None:
        if isinstance(query.timeout, bool) or not isinstance(query.timeout, (int, float)) or query.timeout <= 0:
            raise ValidationError("timeout must be a positive number of seconds", field='timeout')

    threshold = query.vector_threshold
    if threshold is not None:
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or not 0 <= threshold <= 1:
            raise ValidationError("vector_threshold must be a number between 0 and 1",
                                  field='vector_threshold')

    return _ParsedQuery(
        text=text,
        types=types,
        quality_filter=quality_filter,
        created=parse_date_filter(query.created, 'created'),
        occurred=parse_date_filter(query.occurred, 'occurred'),
        sort=sort,
        limit=query.limit,
        offset=query.offset,
        vector_threshold=threshold,
    )


class SearchOrchestrator:
    """
    Ranked, filtered, grouped search over experience records.

    Records come from a RecordSource (or a plain sequence); the embedding
    service and vector store are optional. Without them, or when they fail,
    ranking uses lexical relevance only.
    """

    def __init__(
        self,
        records: Union[RecordSource, Sequence[ExperienceRecord]],
        embeddings: Optional[EmbeddingService] = None,
        store: Optional[BaseVectorStore] = None,
        config=None,
        metrics_logger: Optional[MetricsLogger] = None
    ):
        if hasattr(records, 'all_records'):
            self.records = records
        else:
            self.records = InMemoryRecordSource(records)
        self.embeddings = embeddings
        self.store = store
        self.metrics_logger = metrics_logger

        search_config = config.search if config is not None else {}
        self.snippet_length = int(search_config.get('snippet_length', DEFAULT_SNIPPET_LENGTH))
        self.default_limit = search_config.get('default_limit')
        self.vector_threshold = float(search_config.get('vector_threshold', DEFAULT_VECTOR_THRESHOLD))

    def search(self, query: Union[SearchQuery, Dict[str, Any], None] = None) -> SearchResponse:
        """
        Run a search.

        Args:
            query: SearchQuery or equivalent dict; None returns everything

        Returns:
            SearchResponse with the requested page, pre-pagination total,
            groups (when group_by is set) and degraded dependency names

        Raises:
            ValidationError: If any query field is malformed
        """
        if query is None:
            query = SearchQuery()
        elif isinstance(query, dict):
            query = SearchQuery.from_dict(query)

        started = time.monotonic()
        parsed = parse_search_query(query)
        if parsed.limit is None and self.default_limit is not None:
            parsed.limit = int(self.default_limit)
        if parsed.vector_threshold is None:
            parsed.vector_threshold = self.vector_threshold

        metrics = SearchMetrics(
            request_id=str(uuid.uuid4()),
            query_length=len(parsed.text),
            has_quality_filter=parsed.quality_filter is not None,
            group_by=query.group_by,
        )
        latency = LatencyMetrics()
        degraded: List[str] = []

        all_records = self.records.all_records()
        metrics.candidates_total = len(all_records)

        step = time.monotonic()
        candidates = all_records
        if query.related_to is not None:
            related = resolve_related(query.related_to, all_records)
            if not related:
                logger.info(f"No records related to '{query.related_to}'")
                return self._finish(SearchResponse(), metrics, latency, started)
            candidates = [r for r in candidates if r.id in related]

        candidates = [r for r in candidates if self._matches_structure(r, query, parsed)]
        latency.filter_time_ms = (time.monotonic() - step) * 1000

        step = time.monotonic()
        scored = []
        if parsed.text:
            vector_scores = self._vector_scores(parsed.text, candidates, query, started,
                                                degraded, latency, metrics)
            for record in candidates:
                lexical = lexical_score(record.searchable_text(), parsed.text)
                vector = vector_scores.get(record.id)
                # vector-only matches must clear the similarity threshold
                if lexical == 0 and (vector is None or vector < parsed.vector_threshold):
                    continue
                score = composite_score(lexical, vector)
                if score <= 0:
                    continue
                scored.append((record, score, {'lexical': lexical, 'vector': vector}))
        else:
            scored = [(record, 1.0, {'lexical': None, 'vector': None}) for record in candidates]

        if parsed.quality_filter is not None:
            scored = [item for item in scored if evaluate_quality_filter(item[0], parsed.quality_filter)]
        metrics.candidates_after_filters = len(scored)

        scored = self._sort(scored, parsed.sort)
        latency.rank_time_ms = (time.monotonic() - step) * 1000

        results = [
            SearchResult(
                id=record.id,
                snippet=self._snippet(record, query.include_full_content),
                relevance_score=score,
                breakdown=breakdown,
                record=record,
            )
            for record, score, breakdown in scored
        ]

        response = SearchResponse(total=len(results), degraded=degraded)
        page = results[parsed.offset:]
        if parsed.limit is not None:
            page = page[:parsed.limit]
        response.results = page

        if query.group_by:
            response.group_counts = group_counts([r.record for r in results], query.group_by)
            buckets = group_items(page, query.group_by, lambda r: r.record)
            response.groups = [
                SearchGroup(key=key, count=response.group_counts[key], results=items)
                for key, items in buckets.items()
            ]

        return self._finish(response, metrics, latency, started)

    def _matches_structure(self, record: ExperienceRecord, query: SearchQuery, parsed: _ParsedQuery) -> bool:
        if parsed.types is not None and record.type not in parsed.types:
            return False
        if query.who is not None and query.who not in record.who:
            return False
        if query.perspective is not None and record.perspective != query.perspective:
            return False
        if query.processing is not None and record.processing != query.processing:
            return False
        if parsed.created is not None and not parsed.created.contains(record.created):
            return False
        if parsed.occurred is not None and not parsed.occurred.contains(record.occurred_at):
            return False
        return True

    def _vector_scores(self, text: str, candidates: List[ExperienceRecord], query: SearchQuery,
                       started: float, degraded: List[str], latency: LatencyMetrics,
                       metrics: SearchMetrics) -> Dict[str, float]:
        if self.embeddings is None or self.store is None or not candidates:
            return {}

        if query.timeout is not None and time.monotonic() - started >= query.timeout:
            logger.warning("Search budget exhausted before vector scoring, using lexical relevance")
            degraded.append('timeout')
            return {}

        step = time.monotonic()
        result = self.embeddings.embed_with_status(text)
        latency.embed_time_ms = (time.monotonic() - step) * 1000
        if result.degraded:
            degraded.append('embedding')
            return {}
        if not any(result.vector):
            return {}

        step = time.monotonic()
        try:
            matches = self.store.search(result.vector, limit=max(len(candidates), 1))
        except Exception as e:
            logger.warning(f"Vector search via {self.store.name()} failed, using lexical relevance: {e}")
            degraded.append('vector_store')
            return {}
        finally:
            latency.vector_time_ms = (time.monotonic() - step) * 1000

        candidate_ids = {r.id for r in candidates}
        scores = {m.id: m.score for m in matches if m.id in candidate_ids}
        metrics.vector_scored = len(scores)
        return scores

    @staticmethod
    def _sort(scored, sort: str):
        if sort == 'created':
            return sorted(scored, key=lambda item: to_utc(item[0].created), reverse=True)
        if sort == 'updated':
            return sorted(scored, key=lambda item: to_utc(item[0].updated_at), reverse=True)
        return sorted(scored, key=lambda item: (item[1], to_utc(item[0].created)), reverse=True)

    def _snippet(self, record: ExperienceRecord, full: bool) -> str:
        text = record.searchable_text()
        if full or len(text) <= self.snippet_length:
            return text
        return text[:self.snippet_length] + '...'

    def _finish(self, response: SearchResponse, metrics: SearchMetrics,
                latency: LatencyMetrics, started: float) -> SearchResponse:
        latency.total_time_ms = (time.monotonic() - started) * 1000
        metrics.latency = latency
        metrics.results_total = response.total
        metrics.results_returned = len(response.results)
        metrics.degraded = list(response.degraded)
        if response.degraded:
            logger.info(f"Search {metrics.request_id} degraded: {', '.join(response.degraded)}")
        if self.metrics_logger is not None:
            self.metrics_logger.log(metrics)
        return response
