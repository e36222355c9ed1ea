"""Vector index for content embeddings."""

from contentflow.vectorstore.base import VectorIndex, VectorPayload, VectorSearchResult
from contentflow.vectorstore.config import VectorStoreConfig

__all__ = [
    "VectorIndex",
    "VectorPayload",
    "VectorSearchResult",
    "VectorStoreConfig",
]
