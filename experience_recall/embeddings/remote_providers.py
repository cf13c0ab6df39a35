"""
HTTP embedding providers (OpenAI and Voyage AI).

Both speak the same shape: POST {base}/embeddings with bearer auth and a JSON
body {input, model, ...}; the vector is data[0].embedding.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from experience_recall.errors import ProviderError, ProviderUnavailableError

from .base import EmbeddingProvider, validate_text

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENAI_DEFAULT_MODEL = "text-embedding-3-large"
OPENAI_MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

VOYAGE_BASE_URL = "https://api.voyageai.com/v1"
VOYAGE_DEFAULT_MODEL = "voyage-3-large"
VOYAGE_DEFAULT_DIMENSIONS = 1024


class HTTPEmbeddingProvider(EmbeddingProvider):
    """Shared request handling for bearer-authenticated embedding APIs."""

    label = "HTTP"

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: str,
        timeout: float = 20.0,
        session: Optional[requests.Session] = None
    ):
        super().__init__()
        self.api_key = api_key or ''
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def initialize(self) -> None:
        if not self.api_key:
            raise ProviderUnavailableError(f"{self.label} API key is required")
        self.initialized = True

    def _request_body(self, text: str) -> Dict[str, Any]:
        return {'input': text, 'model': self.model}

    def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/embeddings"
        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
        }
        try:
            response = self.session.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {url} - {e}")
            raise ProviderError(f"{self.label} request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise ProviderError(
                f"{self.label} API error: {response.status_code} - {response.text}",
                status=response.status_code,
                body=response.text,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from {self.label} API", status=response.status_code) from e

    def generate_embedding(self, text: str) -> List[float]:
        validate_text(text)
        if not self.initialized:
            self.initialize()

        data = self._post(self._request_body(text))
        try:
            embedding = data['data'][0]['embedding']
        except (KeyError, IndexError, TypeError):
            raise ProviderError(f"Invalid response from {self.label} API")
        if not isinstance(embedding, list) or not embedding:
            raise ProviderError(f"Invalid response from {self.label} API")
        return [float(v) for v in embedding]

    def is_available(self) -> bool:
        if not self.api_key:
            return False
        return super().is_available()

    def name(self) -> str:
        return f"{self.label}-{self.model}"


class OpenAIProvider(HTTPEmbeddingProvider):
    """OpenAI embeddings API."""

    label = "OpenAI"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        base_url: str = OPENAI_BASE_URL,
        timeout: float = 20.0,
        session: Optional[requests.Session] = None
    ):
        super().__init__(api_key, model or OPENAI_DEFAULT_MODEL, base_url, timeout, session)
        self._dimensions = dimensions

    def _request_body(self, text: str) -> Dict[str, Any]:
        body = super()._request_body(text)
        # Only the text-embedding-3 family accepts a reduced dimension.
        if self._dimensions and 'text-embedding-3' in self.model:
            body['dimensions'] = self._dimensions
        return body

    def dimensions(self) -> int:
        if self._dimensions and 'text-embedding-3' in self.model:
            return self._dimensions
        return OPENAI_MODEL_DIMENSIONS.get(self.model, 1536)


class VoyageProvider(HTTPEmbeddingProvider):
    """Voyage AI embeddings API."""

    label = "VoyageAI"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        input_type: Optional[str] = None,
        base_url: str = VOYAGE_BASE_URL,
        timeout: float = 20.0,
        session: Optional[requests.Session] = None
    ):
        super().__init__(api_key, model or VOYAGE_DEFAULT_MODEL, base_url, timeout, session)
        self._dimensions = dimensions or VOYAGE_DEFAULT_DIMENSIONS
        if input_type not in (None, 'query', 'document'):
            raise ValueError("input_type must be 'query', 'document' or None")
        self.input_type = input_type

    def _request_body(self, text: str) -> Dict[str, Any]:
        body = super()._request_body(text)
        body['output_dimension'] = self._dimensions
        if self.input_type:
            body['input_type'] = self.input_type
        return body

    def dimensions(self) -> int:
        return self._dimensions
