"""
On-device embeddings with sentence-transformers.

The model is loaded lazily in initialize(), so constructing the provider is
cheap and environments without the library can still fall back to another
provider.
"""

import logging
from typing import List, Optional

from experience_recall.errors import ProviderError, ProviderUnavailableError

from .base import EmbeddingProvider, validate_text

logger = logging.getLogger(__name__)

MODEL_ALIASES = {
    "baseline": "all-MiniLM-L6-v2",
    "multilingual-384": "paraphrase-multilingual-MiniLM-L12-v2",
    "multilingual-768": "paraphrase-multilingual-mpnet-base-v2",
}
DEFAULT_MODEL = "all-MiniLM-L6-v2"
DEFAULT_DIMENSIONS = 384


class LocalProvider(EmbeddingProvider):
    """sentence-transformers model running in-process."""

    def __init__(
        self,
        model: Optional[str] = None,
        device: Optional[str] = None,
        dimensions: Optional[int] = None
    ):
        """
        Args:
            model: Model name or alias (defaults to all-MiniLM-L6-v2)
            device: 'cpu', 'cuda', or None for auto-detection
            dimensions: Expected dimension before the model is loaded
        """
        super().__init__()
        model = model or DEFAULT_MODEL
        self.model_name = MODEL_ALIASES.get(model, model)
        if self.model_name != model:
            logger.info(f"Resolved model alias '{model}' to '{self.model_name}'")
        self.device = device
        self._model = None
        self._dimensions = dimensions or DEFAULT_DIMENSIONS

    def initialize(self) -> None:
        if self._model is not None:
            return
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise ProviderUnavailableError(
                "sentence-transformers is required for the local provider"
            ) from e

        logger.info(f"Loading embedding model: {self.model_name}")
        try:
            self._model = SentenceTransformer(self.model_name, device=self.device)
        except Exception as e:
            logger.error(f"Failed to load model {self.model_name}: {e}")
            raise ProviderUnavailableError(f"Failed to load model {self.model_name}: {e}") from e
        self._model.eval()
        self._dimensions = self._model.get_sentence_embedding_dimension()
        logger.info(f"Model loaded successfully. Embedding dimension: {self._dimensions}")
        self.initialized = True

    def generate_embedding(self, text: str) -> List[float]:
        validate_text(text)
        if self._model is None:
            self.initialize()
        try:
            embedding = self._model.encode(text, convert_to_numpy=True, normalize_embeddings=True)
        except Exception as e:
            raise ProviderError(f"Local embedding failed: {e}") from e
        return embedding.tolist()

    def dimensions(self) -> int:
        return self._dimensions

    def name(self) -> str:
        return f"Local-{self.model_name}"

    def cleanup(self) -> None:
        self._model = None
        super().cleanup()
