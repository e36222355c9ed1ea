"""Content repository backed by asyncpg.

The (source_id, external_id) unique index is the correctness boundary for
ingestion: concurrent syncs of the same source race on INSERT and the loser
gets a DuplicateExternalIdError, which the deduplicator turns into a read.
"""

import json
import logging
import uuid
from datetime import datetime
from typing import Any, Sequence

import asyncpg

from contentflow.ai.schemas import AiAnalysisResult
from contentflow.content.schemas import Content, ContentStatus
from contentflow.pipeline.errors import DuplicateExternalIdError
from contentflow.storage.database import Database

logger = logging.getLogger(__name__)

# Columns allowed in update_content(). id, source_id and external_id are
# immutable; timestamps are DB-managed.
_UPDATABLE_FIELDS = frozenset({
    "text",
    "raw_data",
    "status",
    "is_vectorized",
    "embedding_model",
    "vector_id",
    "ai_analysis",
})

_JSONB_FIELDS = frozenset({"raw_data", "ai_analysis"})

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS content (
    id              TEXT PRIMARY KEY,
    source_id       TEXT NOT NULL REFERENCES sources(id) ON DELETE CASCADE,
    external_id     TEXT NOT NULL,
    text            TEXT NOT NULL,
    raw_data        JSONB NOT NULL DEFAULT '{}',
    source_date     TIMESTAMPTZ,
    status          TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'ready', 'enrichment_failed')),
    is_vectorized   BOOLEAN NOT NULL DEFAULT FALSE,
    embedding_model TEXT,
    vector_id       TEXT,
    ai_analysis     JSONB,
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_content_source_external
    ON content(source_id, external_id);

CREATE INDEX IF NOT EXISTS idx_content_source_recent
    ON content(source_id, source_date DESC NULLS LAST, created_at DESC);

CREATE INDEX IF NOT EXISTS idx_content_status
    ON content(status) WHERE status <> 'ready';
"""


def _loads(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


def _record_to_content(record) -> Content:
    """Convert an asyncpg Record to a Content dataclass."""
    analysis = _loads(record["ai_analysis"])
    raw_data = _loads(record["raw_data"])
    return Content(
        id=record["id"],
        source_id=record["source_id"],
        external_id=record["external_id"],
        text=record["text"],
        raw_data=dict(raw_data) if raw_data else {},
        source_date=record["source_date"],
        status=ContentStatus(record["status"]),
        is_vectorized=record["is_vectorized"],
        embedding_model=record["embedding_model"],
        vector_id=record["vector_id"],
        ai_analysis=AiAnalysisResult.model_validate(analysis) if analysis else None,
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


def _encode_field(name: str, value: Any) -> Any:
    if isinstance(value, AiAnalysisResult):
        value = value.to_json_dict()
    if isinstance(value, ContentStatus):
        return value.value
    if name in _JSONB_FIELDS and value is not None:
        return json.dumps(value)
    return value


class ContentRepository:
    """
    Repository for content records.

    Provides insert-with-conflict-detection, lookups used by the watermark
    and deduplicator, partial updates for enrichment transitions, and
    status queries used by re-enrichment.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the content table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Content table ensured")

    async def create_content(
        self,
        source_id: str,
        external_id: str,
        text: str,
        raw_data: dict[str, Any],
        source_date: datetime | None = None,
    ) -> Content:
        """
        Insert a new content row in the pending state.

        Raises:
            DuplicateExternalIdError: If (source_id, external_id) already exists.
        """
        try:
            row = await self._db.fetchrow(
                """
                INSERT INTO content (
                    id, source_id, external_id, text, raw_data, source_date, status
                ) VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7)
                RETURNING *
                """,
                str(uuid.uuid4()),
                source_id,
                external_id,
                text,
                json.dumps(raw_data or {}),
                source_date,
                ContentStatus.PENDING.value,
            )
        except asyncpg.UniqueViolationError as e:
            raise DuplicateExternalIdError(source_id, external_id) from e
        return _record_to_content(row)

    async def find_by_external_id(
        self, source_id: str, external_id: str
    ) -> Content | None:
        row = await self._db.fetchrow(
            "SELECT * FROM content WHERE source_id = $1 AND external_id = $2",
            source_id,
            external_id,
        )
        return _record_to_content(row) if row else None

    async def find_most_recent_for_source(self, source_id: str) -> Content | None:
        """Most recent content by upstream date, ties broken by insertion time."""
        row = await self._db.fetchrow(
            """
            SELECT * FROM content
            WHERE source_id = $1
            ORDER BY source_date DESC NULLS LAST, created_at DESC
            LIMIT 1
            """,
            source_id,
        )
        return _record_to_content(row) if row else None

    async def get_by_id(self, content_id: str) -> Content | None:
        row = await self._db.fetchrow(
            "SELECT * FROM content WHERE id = $1",
            content_id,
        )
        return _record_to_content(row) if row else None

    async def update_content(self, content_id: str, **fields: Any) -> Content:
        """
        Update specific columns of a content row.

        Args:
            content_id: Content to update.
            **fields: Column names mapped to new values. AiAnalysisResult and
                ContentStatus values are encoded automatically.

        Returns:
            The updated Content.

        Raises:
            ValueError: If no fields are given, a field is not updatable,
                or the row does not exist.
        """
        if not fields:
            raise ValueError("No updates provided")

        invalid = set(fields) - _UPDATABLE_FIELDS
        if invalid:
            raise ValueError(
                f"Invalid fields for update: {sorted(invalid)}. "
                f"Allowed: {sorted(_UPDATABLE_FIELDS)}"
            )

        set_parts: list[str] = []
        params: list[Any] = []
        for idx, (name, value) in enumerate(fields.items(), start=1):
            params.append(_encode_field(name, value))
            cast = "::jsonb" if name in _JSONB_FIELDS else ""
            set_parts.append(f"{name} = ${idx}{cast}")

        params.append(content_id)
        sql = f"""
            UPDATE content
            SET {', '.join(set_parts)}, updated_at = NOW()
            WHERE id = ${len(params)}
            RETURNING *
        """
        row = await self._db.fetchrow(sql, *params)
        if row is None:
            raise ValueError(f"Content {content_id} not found")
        return _record_to_content(row)

    async def list_by_status(
        self,
        statuses: Sequence[ContentStatus],
        source_id: str | None = None,
        limit: int = 100,
    ) -> list[Content]:
        """Fetch content in the given states, oldest first."""
        values = [ContentStatus(s).value for s in statuses]
        if source_id is None:
            rows = await self._db.fetch(
                """
                SELECT * FROM content
                WHERE status = ANY($1::text[])
                ORDER BY created_at ASC
                LIMIT $2
                """,
                values,
                limit,
            )
        else:
            rows = await self._db.fetch(
                """
                SELECT * FROM content
                WHERE status = ANY($1::text[]) AND source_id = $2
                ORDER BY created_at ASC
                LIMIT $3
                """,
                values,
                source_id,
                limit,
            )
        return [_record_to_content(r) for r in rows]

    async def count_by_status(self, source_id: str | None = None) -> dict[str, int]:
        """Row counts per status, e.g. {"ready": 120, "pending": 3}."""
        if source_id is None:
            rows = await self._db.fetch(
                "SELECT status, COUNT(*) AS n FROM content GROUP BY status"
            )
        else:
            rows = await self._db.fetch(
                """
                SELECT status, COUNT(*) AS n FROM content
                WHERE source_id = $1
                GROUP BY status
                """,
                source_id,
            )
        return {r["status"]: r["n"] for r in rows}
