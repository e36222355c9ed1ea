"""In-memory collaborators for pipeline tests."""

import uuid
from datetime import datetime, timezone
from typing import Any, Sequence

import pytest

from contentflow.ai.base import AiBackend
from contentflow.ai.schemas import AiAnalysisResult, EmbeddingResult
from contentflow.content.schemas import Content, ContentStatus
from contentflow.fetchers.registry import StrategyResolver
from contentflow.fetchers.static import StaticFetchStrategy
from contentflow.pipeline import (
    ContentDeduplicator,
    EnrichmentSequencer,
    PipelineConfig,
    SyncOrchestrator,
    WatermarkTracker,
)
from contentflow.pipeline.errors import (
    AnalysisFailedError,
    DuplicateExternalIdError,
    EmbeddingFailedError,
    VectorStoreUnavailableError,
)
from contentflow.sources.schemas import Source
from contentflow.vectorstore.base import VectorIndex, VectorPayload, VectorSearchResult


class FakeContentRepository:
    """Dict-backed ContentRepository enforcing the (source_id, external_id) key."""

    def __init__(self) -> None:
        self.rows: dict[str, Content] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.fail_updates_with: Exception | None = None
        self._seq = 0
        self._order: dict[str, int] = {}

    async def create_content(
        self,
        source_id: str,
        external_id: str,
        text: str,
        raw_data: dict[str, Any],
        source_date: datetime | None = None,
    ) -> Content:
        for row in self.rows.values():
            if row.source_id == source_id and row.external_id == external_id:
                raise DuplicateExternalIdError(source_id, external_id)
        content = Content(
            id=str(uuid.uuid4()),
            source_id=source_id,
            external_id=external_id,
            text=text,
            raw_data=dict(raw_data),
            source_date=source_date,
            created_at=datetime.now(timezone.utc),
        )
        self.rows[content.id] = content
        self._seq += 1
        self._order[content.id] = self._seq
        return content

    async def find_by_external_id(self, source_id: str, external_id: str) -> Content | None:
        for row in self.rows.values():
            if row.source_id == source_id and row.external_id == external_id:
                return row
        return None

    async def find_most_recent_for_source(self, source_id: str) -> Content | None:
        rows = [r for r in self.rows.values() if r.source_id == source_id]
        if not rows:
            return None
        floor = datetime.min.replace(tzinfo=timezone.utc)
        return max(rows, key=lambda r: (r.source_date or floor, self._order[r.id]))

    async def get_by_id(self, content_id: str) -> Content | None:
        return self.rows.get(content_id)

    async def update_content(self, content_id: str, **fields: Any) -> Content:
        if self.fail_updates_with is not None:
            raise self.fail_updates_with
        self.updates.append((content_id, fields))
        row = self.rows[content_id]
        for name, value in fields.items():
            setattr(row, name, value)
        return row

    async def list_by_status(
        self,
        statuses: Sequence[ContentStatus],
        source_id: str | None = None,
        limit: int = 100,
    ) -> list[Content]:
        rows = [
            r
            for r in sorted(self.rows.values(), key=lambda r: self._order[r.id])
            if r.status in statuses and (source_id is None or r.source_id == source_id)
        ]
        return rows[:limit]

    def add(self, content: Content) -> Content:
        """Seed a row directly, bypassing the uniqueness check."""
        self.rows[content.id] = content
        self._seq += 1
        self._order[content.id] = self._seq
        return content

    def for_source(self, source_id: str) -> list[Content]:
        return [r for r in self.rows.values() if r.source_id == source_id]


class FakeSourcesRepository:
    def __init__(self, sources: list[Source] | None = None) -> None:
        self.sources = {s.id: s for s in sources or []}
        self.touched: list[str] = []
        self.fail_touch = False

    async def get(self, source_id: str) -> Source | None:
        return self.sources.get(source_id)

    async def touch_last_sync(self, source_id: str, timestamp: datetime) -> None:
        if self.fail_touch:
            raise ConnectionError("database gone")
        self.touched.append(source_id)
        self.sources[source_id].last_sync_at = timestamp


class FakeAiBackend(AiBackend):
    """Deterministic backend; texts listed in fail_* raise the matching error."""

    def __init__(self, dimensions: int = 4) -> None:
        self.dimensions = dimensions
        self.fail_analysis_for: set[str] = set()
        self.fail_embedding = False
        self.analyzed: list[str] = []
        self.embedded: list[str] = []

    @property
    def name(self) -> str:
        return "fake"

    async def analyze_text(self, text: str) -> AiAnalysisResult:
        self.analyzed.append(text)
        if text in self.fail_analysis_for:
            raise AnalysisFailedError("model refused")
        return AiAnalysisResult(
            summary=f"summary of {text}",
            sentiment="neutral",
            keywords=["news"],
            category="general",
            language="en",
        )

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        self.embedded.append(text)
        if self.fail_embedding:
            raise EmbeddingFailedError("rate limited")
        return EmbeddingResult(
            embedding=[0.1] * self.dimensions,
            model="fake-embedding",
            dimensions=self.dimensions,
        )


class FakeVectorIndex(VectorIndex):
    def __init__(self) -> None:
        self.vectors: dict[str, tuple[list[float], VectorPayload]] = {}
        self.available = True

    async def upsert(self, content_id: str, vector: list[float], payload: VectorPayload) -> str:
        if not self.available:
            raise VectorStoreUnavailableError("connection refused")
        self.vectors[content_id] = (vector, payload)
        return f"vec-{content_id}"

    async def search(
        self,
        vector: list[float],
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[VectorSearchResult]:
        return [
            VectorSearchResult(content_id=cid, score=1.0, payload=payload.to_dict())
            for cid, (_, payload) in list(self.vectors.items())[: limit or 10]
        ]

    async def delete(self, content_ids: list[str]) -> int:
        removed = 0
        for cid in content_ids:
            if self.vectors.pop(cid, None) is not None:
                removed += 1
        return removed


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig(stage_timeout_seconds=5)


@pytest.fixture
def content_repo() -> FakeContentRepository:
    return FakeContentRepository()


@pytest.fixture
def sources_repo(telegram_source: Source) -> FakeSourcesRepository:
    return FakeSourcesRepository([telegram_source])


@pytest.fixture
def ai_backend() -> FakeAiBackend:
    return FakeAiBackend()


@pytest.fixture
def vector_index() -> FakeVectorIndex:
    return FakeVectorIndex()


@pytest.fixture
def fetcher() -> StaticFetchStrategy:
    return StaticFetchStrategy()


@pytest.fixture
def resolver(fetcher: StaticFetchStrategy) -> StrategyResolver:
    resolver = StrategyResolver()
    resolver.register(fetcher)
    return resolver


@pytest.fixture
def sequencer(
    ai_backend: FakeAiBackend,
    vector_index: FakeVectorIndex,
    content_repo: FakeContentRepository,
    pipeline_config: PipelineConfig,
) -> EnrichmentSequencer:
    return EnrichmentSequencer(ai_backend, vector_index, content_repo, config=pipeline_config)


@pytest.fixture
def orchestrator(
    sources_repo: FakeSourcesRepository,
    resolver: StrategyResolver,
    content_repo: FakeContentRepository,
    sequencer: EnrichmentSequencer,
    pipeline_config: PipelineConfig,
) -> SyncOrchestrator:
    return SyncOrchestrator(
        sources_repo,
        resolver,
        WatermarkTracker(content_repo),
        ContentDeduplicator(content_repo),
        sequencer,
        config=pipeline_config,
    )
