"""
Abstract vector index interface and shared data structures.

The pipeline only needs ``upsert``; ``search`` and ``delete`` back the
similarity search and maintenance commands.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class VectorPayload:
    """Searchable metadata stored next to a content embedding."""

    summary: str
    category: str | None = None
    language: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class VectorSearchResult:
    """
    Result from a vector similarity search.

    Attributes:
        content_id: Id of the matched content record
        score: Cosine similarity (0.0-1.0, higher is more similar)
        payload: Stored summary/category/language
    """

    content_id: str
    score: float
    payload: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # 1 - cosine distance is negative for opposed vectors
        self.score = min(1.0, max(0.0, self.score))


class VectorIndex(ABC):
    """Storage for content embeddings keyed by content id."""

    @abstractmethod
    async def upsert(
        self,
        content_id: str,
        vector: list[float],
        payload: VectorPayload,
    ) -> str:
        """
        Insert or replace the embedding for one content record.

        Returns:
            The vector id assigned by the index.

        Raises:
            VectorStoreUnavailableError: If the index cannot store the vector.
        """
        ...

    @abstractmethod
    async def search(
        self,
        vector: list[float],
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[VectorSearchResult]:
        """Return the most similar content, best match first.

        None for limit or threshold selects the index defaults.
        """
        ...

    @abstractmethod
    async def delete(self, content_ids: list[str]) -> int:
        """Delete embeddings for the given content ids. Returns rows removed."""
        ...
