"""
pgvector implementation of the VectorIndex interface.

Embeddings live in their own table keyed by content id, so re-enriching a
record replaces its vector in place. Similarity uses the pgvector ``<=>``
cosine distance operator with an HNSW index.
"""

import json
import logging
import uuid
from typing import Any

import asyncpg

from contentflow.pipeline.errors import VectorStoreUnavailableError
from contentflow.storage.database import Database
from contentflow.vectorstore.base import VectorIndex, VectorPayload, VectorSearchResult
from contentflow.vectorstore.config import VectorStoreConfig

logger = logging.getLogger(__name__)


def _to_pgvector(vector: list[float]) -> str:
    """Format a vector as a pgvector text literal."""
    return "[" + ",".join(str(float(v)) for v in vector) + "]"


class PgVectorIndex(VectorIndex):
    """
    VectorIndex backed by a pgvector table.

    Usage:
        index = PgVectorIndex(database)
        await index.create_table()
        vector_id = await index.upsert(content.id, embedding, payload)
        hits = await index.search(query_embedding, limit=5, threshold=0.6)
    """

    def __init__(
        self,
        database: Database,
        config: VectorStoreConfig | None = None,
    ) -> None:
        self._db = database
        self._config = config or VectorStoreConfig()
        self._table = self._config.table_name

    @property
    def table_name(self) -> str:
        return self._table

    async def create_table(self) -> None:
        """Create the embeddings table and HNSW index (idempotent)."""
        await self._db.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                vector_id   TEXT PRIMARY KEY,
                content_id  TEXT NOT NULL UNIQUE,
                embedding   vector({self._config.dimensions}) NOT NULL,
                payload     JSONB NOT NULL DEFAULT '{{}}',
                created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );

            CREATE INDEX IF NOT EXISTS idx_{self._table}_embedding
                ON {self._table} USING hnsw (embedding vector_cosine_ops);
            """
        )
        logger.info("Vector table %s ensured", self._table)

    async def upsert(
        self,
        content_id: str,
        vector: list[float],
        payload: VectorPayload,
    ) -> str:
        if len(vector) != self._config.dimensions:
            raise VectorStoreUnavailableError(
                f"Vector has {len(vector)} dimensions, index expects "
                f"{self._config.dimensions}"
            )

        sql = f"""
            INSERT INTO {self._table} (vector_id, content_id, embedding, payload)
            VALUES ($1, $2, $3, $4::jsonb)
            ON CONFLICT (content_id) DO UPDATE SET
                embedding = EXCLUDED.embedding,
                payload = EXCLUDED.payload,
                updated_at = NOW()
            RETURNING vector_id
        """
        try:
            vector_id = await self._db.fetchval(
                sql,
                str(uuid.uuid4()),
                content_id,
                _to_pgvector(vector),
                json.dumps(payload.to_dict()),
            )
        except (asyncpg.PostgresError, OSError) as e:
            raise VectorStoreUnavailableError(
                f"Vector upsert failed for content {content_id}: {e}"
            ) from e

        logger.debug("Upserted vector %s for content %s", vector_id, content_id)
        return vector_id

    async def search(
        self,
        vector: list[float],
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[VectorSearchResult]:
        """
        Search for similar content using cosine similarity.

        Args:
            vector: Query embedding
            limit: Maximum results (default from config)
            threshold: Minimum similarity 0.0-1.0 (default from config)

        Returns:
            Results sorted by similarity, best first
        """
        limit = limit if limit is not None else self._config.default_limit
        threshold = (
            threshold if threshold is not None else self._config.default_threshold
        )

        sql = f"""
            SELECT
                content_id,
                payload,
                1 - (embedding <=> $1) AS similarity
            FROM {self._table}
            WHERE 1 - (embedding <=> $1) >= $2
            ORDER BY embedding <=> $1
            LIMIT $3
        """
        rows = await self._db.fetch(sql, _to_pgvector(vector), threshold, limit)
        return [self._row_to_result(row) for row in rows]

    async def delete(self, content_ids: list[str]) -> int:
        if not content_ids:
            return 0

        rows = await self._db.fetch(
            f"DELETE FROM {self._table} WHERE content_id = ANY($1) RETURNING vector_id",
            content_ids,
        )
        logger.info("Deleted %d/%d vectors", len(rows), len(content_ids))
        return len(rows)

    async def count(self) -> int:
        return await self._db.fetchval(f"SELECT COUNT(*) FROM {self._table}")

    def _row_to_result(self, row: Any) -> VectorSearchResult:
        payload = row["payload"]
        if isinstance(payload, str):
            payload = json.loads(payload)
        return VectorSearchResult(
            content_id=row["content_id"],
            score=float(row["similarity"]),
            payload=dict(payload) if payload else {},
        )
