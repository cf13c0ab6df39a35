"""
Metric data models for observability.

Defines dataclasses for tracking per-search counts, latency and degradation.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from experience_recall.utils.dates import utc_now


@dataclass
class LatencyMetrics:
    """Latency breakdown for one search."""
    filter_time_ms: float = 0.0
    embed_time_ms: float = 0.0
    vector_time_ms: float = 0.0
    rank_time_ms: float = 0.0
    total_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SearchMetrics:
    """Complete metrics for a single search request."""
    request_id: str = ""
    timestamp: str = ""
    engine_version: str = "1.0.0"
    query_length: int = 0
    has_quality_filter: bool = False
    group_by: Optional[str] = None
    candidates_total: int = 0
    candidates_after_filters: int = 0
    results_total: int = 0
    results_returned: int = 0
    vector_scored: int = 0
    degraded: List[str] = field(default_factory=list)
    latency: Optional[LatencyMetrics] = None
    success: bool = True
    error: Optional[str] = None

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = utc_now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        if self.latency:
            result['latency'] = self.latency.to_dict()
        return result
