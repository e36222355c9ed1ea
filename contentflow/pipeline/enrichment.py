"""
Enrichment stage sequencer.

Drives one freshly created content record through:

    analyze -> embed(summary) -> vector upsert -> finalize

    pending --(analysis+embedding ok, upsert ok)-----> ready
    pending --(analysis+embedding ok, upsert fails)--> ready, is_vectorized=False
    pending --(analysis or embedding fails)----------> enrichment_failed

Backends signal failure with AnalysisFailedError, EmbeddingFailedError or
VectorStoreUnavailableError, but any exception from a stage is treated the
same way. An embedding failure keeps the analysis on the failed row.
Enrichment failures are returned in the outcome; only a failure of the status
update itself propagates to the caller.
"""

import asyncio
import time
from typing import TYPE_CHECKING, Any, Awaitable, TypeVar

import structlog

from contentflow.ai.base import AiBackend
from contentflow.ai.schemas import AiAnalysisResult
from contentflow.content.schemas import Content, ContentStatus
from contentflow.observability.metrics import get_metrics
from contentflow.pipeline.config import PipelineConfig
from contentflow.pipeline.schemas import EnrichmentOutcome
from contentflow.vectorstore.base import VectorIndex, VectorPayload

if TYPE_CHECKING:
    from contentflow.content.repository import ContentRepository

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class EnrichmentSequencer:
    """
    Runs the enrichment stages for a content record.

    Usage:
        sequencer = EnrichmentSequencer(ai_backend, vector_index, content_repo)
        outcome = await sequencer.enrich(content, raw_text)
        if not outcome.succeeded:
            errors.append(outcome.error)
    """

    def __init__(
        self,
        ai_backend: AiBackend,
        vector_index: VectorIndex,
        content_repository: "ContentRepository",
        config: PipelineConfig | None = None,
    ) -> None:
        self._ai = ai_backend
        self._vectors = vector_index
        self._content = content_repository
        self._config = config or PipelineConfig()
        self._metrics = get_metrics()

    async def _timed(self, stage: str, awaitable: Awaitable[T]) -> T:
        """Await a stage under the configured timeout and record its latency."""
        start = time.perf_counter()
        try:
            timeout = self._config.stage_timeout_seconds
            if timeout:
                return await asyncio.wait_for(awaitable, timeout=timeout)
            return await awaitable
        finally:
            self._metrics.record_stage_latency(stage, time.perf_counter() - start)

    async def enrich(self, content: Content, raw_text: str) -> EnrichmentOutcome:
        """
        Analyze, embed, index and finalize one content record.

        Args:
            content: The pending content row.
            raw_text: Text to analyze (the message body).

        Returns:
            EnrichmentOutcome with the terminal status.
        """
        log = logger.bind(content_id=content.id, external_id=content.external_id)

        # Stage 1: analysis
        try:
            analysis = await self._timed("analyze", self._ai.analyze_text(raw_text))
        except Exception as e:
            error = _describe("Analysis failed", e)
            log.warning("Enrichment analysis failed", error=error)
            return await self._mark_failed(content, error)

        # Stage 2: embedding of the summary
        try:
            embedding = await self._timed(
                "embed", self._ai.generate_embedding(analysis.summary)
            )
        except Exception as e:
            error = _describe("Embedding failed", e)
            log.warning("Enrichment embedding failed", error=error)
            return await self._mark_failed(content, error, analysis=analysis)

        # Stage 3: vector upsert, non-fatal
        warnings: list[str] = []
        vector_id: str | None = None
        try:
            vector_id = await self._timed(
                "vector_upsert",
                self._vectors.upsert(
                    content.id,
                    embedding.embedding,
                    VectorPayload(
                        summary=analysis.summary,
                        category=analysis.category,
                        language=analysis.language,
                    ),
                ),
            )
        except Exception as e:
            warning = _describe("Vector upsert failed", e)
            log.warning("Vector index unavailable, continuing", error=warning)
            warnings.append(warning)
            self._metrics.record_vector_failure()

        # Stage 4: finalize
        start = time.perf_counter()
        await self._content.update_content(
            content.id,
            ai_analysis=analysis,
            is_vectorized=vector_id is not None,
            embedding_model=embedding.model,
            vector_id=vector_id,
            status=ContentStatus.READY,
        )
        self._metrics.record_stage_latency("finalize", time.perf_counter() - start)
        self._metrics.record_enrichment(ContentStatus.READY.value)

        log.info("Content enriched", vectorized=vector_id is not None)
        return EnrichmentOutcome(
            content_id=content.id,
            status=ContentStatus.READY,
            analysis=analysis,
            vector_id=vector_id,
            warnings=warnings,
        )

    async def _mark_failed(
        self,
        content: Content,
        error: str,
        analysis: AiAnalysisResult | None = None,
    ) -> EnrichmentOutcome:
        # An analysis computed before a later stage failed is kept on the row
        fields: dict[str, Any] = {"status": ContentStatus.ENRICHMENT_FAILED}
        if analysis is not None:
            fields["ai_analysis"] = analysis
        await self._content.update_content(content.id, **fields)
        self._metrics.record_enrichment(ContentStatus.ENRICHMENT_FAILED.value)
        return EnrichmentOutcome(
            content_id=content.id,
            status=ContentStatus.ENRICHMENT_FAILED,
            analysis=analysis,
            error=error,
        )


def _describe(prefix: str, exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return f"{prefix}: timed out"
    return f"{prefix}: {exc}"
