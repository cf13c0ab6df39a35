"""
Qdrant-compatible HTTP vector store.

Point ids are UUIDv5 values derived from the record id; the record id itself
travels in the payload under 'record_id'. If the configured collection already
exists with a different vector size, a dimension-suffixed collection is used
instead so vectors of different sizes never share a collection.
"""

import logging
import os
import uuid
from typing import Any, Dict, List, Optional, Sequence

import requests

from experience_recall.errors import StoreError
from experience_recall.reliability import CircuitBreaker, CircuitBreakerConfig

from .vector_store import (
    BaseVectorStore,
    VectorMatch,
    validate_id,
    validate_metadata,
    validate_vector,
)

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:6333"
DEFAULT_COLLECTION = "experiences"
DEFAULT_TIMEOUT = 10.0
RECORD_ID_KEY = "record_id"


def point_id_for(record_id: str) -> str:
    """Stable UUID for a record id."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, record_id))


def convert_filter(metadata_filter: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Translate an equality map into a Qdrant 'must' filter."""
    if not metadata_filter:
        return None
    conditions = []
    for key, value in metadata_filter.items():
        if isinstance(value, (list, tuple, set)):
            conditions.append({'key': key, 'match': {'any': list(value)}})
        else:
            conditions.append({'key': key, 'match': {'value': value}})
    return {'must': conditions}


class RemoteVectorStore(BaseVectorStore):
    """Vector store backed by a Qdrant HTTP API."""

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        collection_name: str = DEFAULT_COLLECTION,
        dimensions: Optional[int] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        """
        Args:
            url: Base URL (defaults to QDRANT_URL or http://localhost:6333)
            api_key: Sent as the 'api-key' header (defaults to QDRANT_API_KEY)
            collection_name: Preferred collection name
            dimensions: Active provider dimension
            timeout: Per-request timeout in seconds
            session: requests.Session to use (injectable for tests)
        """
        self.url = (url or os.environ.get('QDRANT_URL') or DEFAULT_URL).rstrip('/')
        self.api_key = api_key or os.environ.get('QDRANT_API_KEY')
        self.base_collection = collection_name
        self.collection_name = collection_name
        self.dimensions = dimensions
        self.timeout = timeout
        self.session = session or requests.Session()
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            f"store:{collection_name}", CircuitBreakerConfig()
        )
        self._collection_ready = False
        self.initialized = False

    def name(self) -> str:
        return f"qdrant-{self.collection_name}"

    def _request(self, path: str, method: str = 'GET', body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.circuit_breaker.execute(self._send, path, method, body)

    def _send(self, path: str, method: str, body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        url = f"{self.url}{path}"
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['api-key'] = self.api_key

        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method, url,
                json=body if method != 'GET' else None,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {url} - {e}")
            raise StoreError(f"Qdrant request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise StoreError(
                f"Qdrant request failed: {response.status_code} - {response.text}",
                status=response.status_code,
                body=response.text,
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise StoreError("Invalid JSON from Qdrant", status=response.status_code) from e

    def _collection_size(self, collection: str) -> Optional[int]:
        info = self._request(f"/collections/{collection}")
        return (((info.get('result') or {}).get('config') or {}).get('params') or {}).get('vectors', {}).get('size')

    def _existing_collections(self) -> List[str]:
        response = self._request('/collections')
        collections = (response.get('result') or {}).get('collections') or []
        return [c.get('name') for c in collections]

    def initialize(self) -> None:
        """
        Resolve which collection to use and create it when the dimension is known.

        Raises:
            StoreError: If Qdrant cannot be reached or rejects a request
        """
        if self.initialized:
            return
        existing = self._existing_collections()

        if self.base_collection in existing:
            size = self._collection_size(self.base_collection)
            if self.dimensions is None or size == self.dimensions:
                self.collection_name = self.base_collection
                self.dimensions = size
                self._collection_ready = True
            else:
                self.collection_name = f"{self.base_collection}_{self.dimensions}"
                logger.warning(
                    f"Collection '{self.base_collection}' has dimension {size}, "
                    f"using '{self.collection_name}' for dimension {self.dimensions}"
                )
                self._collection_ready = self.collection_name in existing

        if not self._collection_ready and self.dimensions:
            self._create_collection(self.dimensions)

        self.initialized = True
        logger.info(f"Qdrant collection '{self.collection_name}' ready")

    def _create_collection(self, dimensions: int) -> None:
        self._request(
            f"/collections/{self.collection_name}", 'PUT',
            {'vectors': {'size': dimensions, 'distance': 'Cosine'}}
        )
        self.dimensions = dimensions
        self._collection_ready = True
        logger.info(f"Created Qdrant collection '{self.collection_name}' (size={dimensions})")

    def _ensure_ready(self, dimensions: int) -> None:
        if not self.initialized:
            self.initialize()
        if not self._collection_ready:
            self._create_collection(dimensions)

    def upsert(self, vector_id: str, vector: Sequence[float],
               metadata: Optional[Dict[str, Any]] = None) -> None:
        vector_id = validate_id(vector_id)
        metadata = validate_metadata(metadata)
        values = validate_vector(vector, self.dimensions)
        self._ensure_ready(len(values))
        # an existing collection may have fixed the dimension
        validate_vector(values, self.dimensions)

        payload = dict(metadata)
        payload[RECORD_ID_KEY] = vector_id
        self._request(
            f"/collections/{self.collection_name}/points", 'PUT',
            {'points': [{'id': point_id_for(vector_id), 'vector': values, 'payload': payload}]}
        )

    def search(self, query_vector: Sequence[float],
               metadata_filter: Optional[Dict[str, Any]] = None,
               limit: int = 10) -> List[VectorMatch]:
        limit = self._validate_limit(limit)
        values = validate_vector(query_vector, self.dimensions)
        self._ensure_ready(len(values))
        # an existing collection may have fixed the dimension
        validate_vector(values, self.dimensions)

        body: Dict[str, Any] = {'vector': values, 'limit': limit, 'with_payload': True}
        qdrant_filter = convert_filter(metadata_filter)
        if qdrant_filter:
            body['filter'] = qdrant_filter

        response = self._request(f"/collections/{self.collection_name}/points/search", 'POST', body)
        matches = []
        for hit in response.get('result') or []:
            payload = dict(hit.get('payload') or {})
            record_id = payload.pop(RECORD_ID_KEY, None) or str(hit.get('id'))
            matches.append(VectorMatch(record_id, float(hit.get('score', 0.0)), payload))
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    def get(self, vector_id: str) -> Optional[VectorMatch]:
        vector_id = validate_id(vector_id)
        if not self.initialized:
            self.initialize()
        if not self._collection_ready:
            return None
        response = self._request(
            f"/collections/{self.collection_name}/points", 'POST',
            {'ids': [point_id_for(vector_id)], 'with_payload': True}
        )
        points = response.get('result') or []
        if not points:
            return None
        payload = dict(points[0].get('payload') or {})
        payload.pop(RECORD_ID_KEY, None)
        return VectorMatch(vector_id, 1.0, payload)

    def delete(self, vector_id: str) -> bool:
        existed = self.get(vector_id) is not None
        if not existed:
            return False
        self._request(
            f"/collections/{self.collection_name}/points/delete", 'POST',
            {'points': [point_id_for(vector_id)]}
        )
        return True

    def count(self) -> int:
        if not self.initialized:
            self.initialize()
        if not self._collection_ready:
            return 0
        response = self._request(
            f"/collections/{self.collection_name}/points/count", 'POST', {'exact': True}
        )
        return int((response.get('result') or {}).get('count', 0))

    def clear(self) -> None:
        """Drop the collection and recreate it empty."""
        if not self.initialized:
            self.initialize()
        if self._collection_ready:
            self.drop_collection()
        if self.dimensions:
            self._create_collection(self.dimensions)

    def drop_collection(self) -> None:
        self._request(f"/collections/{self.collection_name}", 'DELETE')
        self._collection_ready = False
        logger.info(f"Dropped Qdrant collection '{self.collection_name}'")

    def is_available(self) -> bool:
        try:
            self._existing_collections()
            return True
        except Exception as e:
            logger.debug(f"Qdrant unavailable at {self.url}: {e}")
            return False
