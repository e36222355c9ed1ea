"""Database repository for the sources table."""

import json
import logging
import uuid
from datetime import datetime

from contentflow.sources.schemas import Source, SourceType
from contentflow.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS sources (
    id           TEXT PRIMARY KEY,
    type         TEXT NOT NULL
        CHECK (type IN ('telegram', 'twitter', 'rss', 'youtube', 'instagram')),
    external_id  TEXT NOT NULL,
    name         TEXT,
    is_active    BOOLEAN NOT NULL DEFAULT TRUE,
    last_sync_at TIMESTAMPTZ,
    metadata     JSONB NOT NULL DEFAULT '{}',
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (type, external_id)
);

CREATE INDEX IF NOT EXISTS idx_sources_type_active
    ON sources(type, is_active) WHERE is_active = TRUE;
"""

_UPSERT_SQL = """
INSERT INTO sources (id, type, external_id, name, is_active, metadata)
VALUES ($1, $2, $3, $4, $5, $6::jsonb)
ON CONFLICT (type, external_id) DO UPDATE SET
    name = EXCLUDED.name,
    is_active = EXCLUDED.is_active,
    metadata = EXCLUDED.metadata,
    updated_at = NOW()
RETURNING *
"""


def _record_to_source(record) -> Source:
    """Convert an asyncpg Record to a Source dataclass."""
    metadata = record["metadata"]
    if isinstance(metadata, str):
        metadata = json.loads(metadata)
    return Source(
        id=record["id"],
        type=SourceType(record["type"]),
        external_id=record["external_id"],
        name=record["name"],
        is_active=record["is_active"],
        last_sync_at=record["last_sync_at"],
        metadata=dict(metadata) if metadata else {},
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class SourcesRepository:
    """CRUD operations for the sources table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the sources table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Sources table ensured")

    async def upsert(
        self,
        source_type: SourceType,
        external_id: str,
        name: str | None = None,
        is_active: bool = True,
        metadata: dict | None = None,
    ) -> Source:
        """Register a source, or update name/metadata of an existing one.

        The (type, external_id) pair identifies a source; re-registering keeps
        the original id so existing content stays attached.
        """
        row = await self._db.fetchrow(
            _UPSERT_SQL,
            str(uuid.uuid4()),
            source_type.value,
            external_id,
            name,
            is_active,
            json.dumps(metadata or {}),
        )
        return _record_to_source(row)

    async def get(self, source_id: str) -> Source | None:
        """Fetch a single source by id."""
        row = await self._db.fetchrow(
            "SELECT * FROM sources WHERE id = $1",
            source_id,
        )
        return _record_to_source(row) if row else None

    async def get_by_external_id(
        self, source_type: SourceType, external_id: str
    ) -> Source | None:
        """Fetch a single source by type and upstream identifier."""
        row = await self._db.fetchrow(
            "SELECT * FROM sources WHERE type = $1 AND external_id = $2",
            source_type.value,
            external_id,
        )
        return _record_to_source(row) if row else None

    async def list_active(
        self, source_type: SourceType | None = None
    ) -> list[Source]:
        """Fetch all active sources, optionally for one type."""
        if source_type is None:
            rows = await self._db.fetch(
                "SELECT * FROM sources WHERE is_active = TRUE ORDER BY type, external_id"
            )
        else:
            rows = await self._db.fetch(
                """
                SELECT * FROM sources
                WHERE is_active = TRUE AND type = $1
                ORDER BY external_id
                """,
                source_type.value,
            )
        return [_record_to_source(r) for r in rows]

    async def touch_last_sync(self, source_id: str, timestamp: datetime) -> None:
        """Record the time of the last completed sync."""
        await self._db.execute(
            """
            UPDATE sources SET last_sync_at = $2, updated_at = NOW()
            WHERE id = $1
            """,
            source_id,
            timestamp,
        )

    async def set_active(self, source_id: str, is_active: bool) -> bool:
        """Toggle the active flag. Returns True if a row was updated."""
        result = await self._db.execute(
            """
            UPDATE sources SET is_active = $2, updated_at = NOW()
            WHERE id = $1 AND is_active IS DISTINCT FROM $2
            """,
            source_id,
            is_active,
        )
        return result.endswith("1")
