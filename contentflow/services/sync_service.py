"""
Sync service - wires the pipeline to its concrete collaborators.

Owns the database pool, repositories, AI backend, vector index and fetch
strategy resolver, and exposes the operations used by the CLI and the sync
worker.
"""

from typing import Any

import structlog

from contentflow.ai.base import AiBackend
from contentflow.ai.openai_backend import OpenAIBackend
from contentflow.config.settings import Settings, get_settings
from contentflow.content.repository import ContentRepository
from contentflow.content.schemas import ContentStatus
from contentflow.fetchers.registry import StrategyResolver, build_default_resolver
from contentflow.pipeline import (
    ContentDeduplicator,
    EnrichmentSequencer,
    PipelineConfig,
    ReenrichmentService,
    ReenrichResult,
    SyncOrchestrator,
    SyncResult,
    WatermarkTracker,
)
from contentflow.sources.repository import SourcesRepository
from contentflow.sources.schemas import Source, SourceType
from contentflow.storage.database import Database
from contentflow.vectorstore.base import VectorIndex, VectorSearchResult
from contentflow.vectorstore.pgvector_index import PgVectorIndex

logger = structlog.get_logger(__name__)


class SyncService:
    """
    Facade over the sync and enrichment pipeline.

    Every collaborator can be injected; anything omitted is built from
    settings. Call connect() (or use ``async with``) before any operation.

    Usage:
        async with SyncService() as service:
            result = await service.sync_source(source_id, limit=20)
    """

    def __init__(
        self,
        database: Database | None = None,
        ai_backend: AiBackend | None = None,
        vector_index: VectorIndex | None = None,
        resolver: StrategyResolver | None = None,
        sources_repository: SourcesRepository | None = None,
        content_repository: ContentRepository | None = None,
        pipeline_config: PipelineConfig | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._config = pipeline_config or PipelineConfig()
        self._database = database or Database(str(self._settings.database_url))

        self._sources = sources_repository or SourcesRepository(self._database)
        self._content = content_repository or ContentRepository(self._database)
        self._ai = ai_backend or OpenAIBackend()
        self._vectors = vector_index or PgVectorIndex(self._database)
        self._resolver = resolver or build_default_resolver(self._settings)

        self._sequencer = EnrichmentSequencer(
            self._ai, self._vectors, self._content, config=self._config
        )
        self._orchestrator = SyncOrchestrator(
            self._sources,
            self._resolver,
            WatermarkTracker(self._content),
            ContentDeduplicator(self._content),
            self._sequencer,
            config=self._config,
        )
        self._reenrichment = ReenrichmentService(
            self._content, self._sequencer, config=self._config
        )

    @property
    def sources(self) -> SourcesRepository:
        return self._sources

    @property
    def content(self) -> ContentRepository:
        return self._content

    @property
    def orchestrator(self) -> SyncOrchestrator:
        return self._orchestrator

    async def connect(self) -> None:
        await self._database.connect()

    async def close(self) -> None:
        await self._resolver.close()
        await self._ai.close()
        await self._database.close()

    async def __aenter__(self) -> "SyncService":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def init_schema(self) -> None:
        """Create all tables and indexes (idempotent)."""
        await self._sources.create_table()
        await self._content.create_table()
        if isinstance(self._vectors, PgVectorIndex):
            await self._vectors.create_table()
        logger.info("Schema initialized")

    async def add_source(
        self,
        source_type: SourceType,
        external_id: str,
        name: str | None = None,
        username: str | None = None,
        metadata: dict | None = None,
    ) -> Source:
        """Register a source or update an existing one with the same identity."""
        metadata = dict(metadata or {})
        if username:
            metadata["username"] = username.lstrip("@")
        source = await self._sources.upsert(
            source_type, external_id, name=name, metadata=metadata
        )
        logger.info(
            "Source registered",
            source_id=source.id,
            source_type=source.type.value,
            external_id=source.external_id,
        )
        return source

    async def sync_source(self, source_id: str, limit: int | None = None) -> SyncResult:
        return await self._orchestrator.sync_source(source_id, limit=limit)

    async def sync_active(
        self,
        source_type: SourceType | None = None,
        limit: int | None = None,
    ) -> list[SyncResult]:
        """Sync every active source, optionally only those of one type."""
        sources = await self._sources.list_active(source_type)
        logger.info("Syncing active sources", count=len(sources))
        return await self._orchestrator.sync_sources(
            [s.id for s in sources], limit=limit
        )

    async def reenrich(
        self,
        source_id: str | None = None,
        include_pending: bool = False,
        limit: int | None = None,
    ) -> ReenrichResult:
        """Retry enrichment of failed (and optionally pending) content."""
        statuses = [ContentStatus.ENRICHMENT_FAILED]
        if include_pending:
            statuses.append(ContentStatus.PENDING)
        return await self._reenrichment.reenrich(
            source_id=source_id, statuses=statuses, limit=limit
        )

    async def search_similar(
        self,
        text: str,
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[VectorSearchResult]:
        """Embed a query through the AI backend and search the vector index."""
        embedding = await self._ai.generate_embedding(text)
        return await self._vectors.search(
            embedding.embedding, limit=limit, threshold=threshold
        )

    async def health_check(self) -> dict[str, Any]:
        """Database reachability, content counts and AI breaker state."""
        db_ok = await self._database.health_check()
        health: dict[str, Any] = {
            "status": "healthy" if db_ok else "unhealthy",
            "database": db_ok,
            "fetchers": [t.value for t in self._resolver.registered_types],
            "ai_backend": self._ai.name,
        }
        if db_ok:
            health["content"] = await self._content.count_by_status()
        if isinstance(self._ai, OpenAIBackend):
            health["circuit_breakers"] = [
                self._ai.analysis_breaker.snapshot(),
                self._ai.embedding_breaker.snapshot(),
            ]
        return health
