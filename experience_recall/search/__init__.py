"""
Search Module

Vector stores, relationship resolution, relevance scoring and the search
orchestrator.
"""

from .date_filter import DateRange, parse_date_filter
from .grouping import GROUP_BY_OPTIONS, group_key
from .relationships import RelationshipGraph, resolve_related
from .remote_store import RemoteVectorStore
from .scoring import composite_score, lexical_score
from .searcher import (
    SearchGroup,
    SearchOrchestrator,
    SearchQuery,
    SearchResponse,
    SearchResult,
)
from .vector_store import BaseVectorStore, LocalVectorStore, VectorMatch, cosine_similarity

__all__ = [
    'DateRange',
    'parse_date_filter',
    'GROUP_BY_OPTIONS',
    'group_key',
    'RelationshipGraph',
    'resolve_related',
    'RemoteVectorStore',
    'composite_score',
    'lexical_score',
    'SearchGroup',
    'SearchOrchestrator',
    'SearchQuery',
    'SearchResponse',
    'SearchResult',
    'BaseVectorStore',
    'LocalVectorStore',
    'VectorMatch',
    'cosine_similarity',
]
