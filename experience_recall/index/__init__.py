"""
Index Module

Keeps record embeddings in sync with the vector store.
"""

from .builder import EmbeddingIndex, IndexReport

__all__ = ['EmbeddingIndex', 'IndexReport']
