"""
Metrics Module

Per-search metrics and the JSONL metrics logger.
"""

from .logger import MetricsLogger
from .models import LatencyMetrics, SearchMetrics

__all__ = [
    'MetricsLogger',
    'LatencyMetrics',
    'SearchMetrics',
]
