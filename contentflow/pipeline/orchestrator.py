"""
Sync orchestrator.

One ``sync_source`` call runs a whole incremental sync for a source:

1. Load the source and resolve its fetch strategy (fatal if either fails)
2. Fetch the latest messages from offset 0
3. Drop messages at or below the watermark
4. For each remaining message, in fetch order: get-or-create the content
   row and, when it is new, run the enrichment sequence
5. Record last sync time and return the run statistics

Per-message failures never abort the batch; they are collected in
``SyncResult.errors`` tagged with the message id.
"""

import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable

import structlog
from opentelemetry.trace import Span

from contentflow.fetchers.base import RawMessage
from contentflow.observability.metrics import get_metrics
from contentflow.observability.tracing import get_tracer, record_sync_result, traced
from contentflow.pipeline.config import PipelineConfig
from contentflow.pipeline.deduplicator import ContentDeduplicator
from contentflow.pipeline.enrichment import EnrichmentSequencer
from contentflow.pipeline.errors import (
    EmptyContentError,
    InvalidSourceError,
    SourceNotFoundError,
    UnsupportedSourceTypeError,
)
from contentflow.pipeline.schemas import SyncResult
from contentflow.pipeline.watermark import WatermarkTracker
from contentflow.sources.schemas import Source

if TYPE_CHECKING:
    from contentflow.fetchers.registry import StrategyResolver
    from contentflow.sources.repository import SourcesRepository

logger = structlog.get_logger(__name__)

# Errors that make a whole sync impossible; raised before any message is touched
FATAL_SYNC_ERRORS = (SourceNotFoundError, UnsupportedSourceTypeError, InvalidSourceError)


class SyncOrchestrator:
    """
    Coordinates fetch, dedup and enrichment for one source at a time.

    Usage:
        orchestrator = SyncOrchestrator(
            sources_repository, resolver, watermark, deduplicator, sequencer
        )
        result = await orchestrator.sync_source(source_id, limit=20)
        print(result.to_dict())
    """

    def __init__(
        self,
        sources_repository: "SourcesRepository",
        resolver: "StrategyResolver",
        watermark: WatermarkTracker,
        deduplicator: ContentDeduplicator,
        sequencer: EnrichmentSequencer,
        config: PipelineConfig | None = None,
    ) -> None:
        self._sources = sources_repository
        self._resolver = resolver
        self._watermark = watermark
        self._dedup = deduplicator
        self._sequencer = sequencer
        self._config = config or PipelineConfig()
        self._metrics = get_metrics()
        self._tracer = get_tracer("contentflow.pipeline")

    async def sync_source(self, source_id: str, limit: int | None = None) -> SyncResult:
        """
        Run one incremental sync.

        Args:
            source_id: Id of the source to sync.
            limit: Maximum messages to fetch; the configured default when None.

        Returns:
            SyncResult with counts and per-message errors.

        Raises:
            SourceNotFoundError: Unknown source id.
            UnsupportedSourceTypeError: No strategy for the source type.
            InvalidSourceError: The source has no fetchable peer.
        """
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()

        source = await self._sources.get(source_id)
        if source is None:
            raise SourceNotFoundError(source_id)

        strategy = self._resolver.resolve(source.type)

        peer = source.fetch_handle or source.external_id
        if not peer:
            raise InvalidSourceError(
                f"Source {source_id} has neither a username nor an external id"
            )

        if limit is None:
            limit = self._config.default_fetch_limit

        log = logger.bind(source_id=source.id, source_type=source.type.value, peer=peer)
        result = SyncResult(
            source_id=source.id,
            source_name=source.display_name,
            started_at=started_at,
        )

        with traced(
            self._tracer,
            "sync_source",
            {"source.id": source.id, "source.type": source.type.value, "limit": limit},
        ) as span:
            log.info("Starting sync", limit=limit)
            try:
                messages = await strategy.fetch(peer, limit)
            except Exception as e:
                log.error("Fetch failed", error=str(e))
                self._metrics.record_fetch_error(source.type.value)
                result.errors.append(f"Fetch failed: {e}")
                return self._finish(source, result, start, span, fetch_failed=True)

            result.messages_processed = len(messages)

            if self._config.use_watermark:
                watermark = await self._watermark.highest_ingested_sequence(source.id)
                messages, below = self._watermark.filter_new(messages, watermark)
                if below:
                    log.debug(
                        "Dropped messages at or below watermark",
                        watermark=watermark,
                        count=below,
                    )
                self._metrics.record_skip(source.type.value, "watermark", below)

            for message in messages:
                await self._process_message(source, message, result)

            try:
                await self._sources.touch_last_sync(source.id, datetime.now(timezone.utc))
            except Exception as e:
                log.warning("Failed to record last sync time", error=str(e))

            return self._finish(source, result, start, span)

    async def _process_message(
        self, source: Source, message: RawMessage, result: SyncResult
    ) -> None:
        source_type = source.type.value
        created = False
        try:
            outcome = await self._dedup.get_or_create(source, message)
            if not outcome.is_new:
                self._metrics.record_skip(source_type, "duplicate")
                return

            result.content_created += 1
            created = True
            enrichment = await self._sequencer.enrich(outcome.content, message.body)
            if enrichment.error:
                result.errors.append(f"Message {message.id}: {enrichment.error}")
        except EmptyContentError:
            logger.debug(
                "Skipping message without text",
                source_id=source.id,
                message_id=message.id,
            )
            self._metrics.record_skip(source_type, "empty")
        except Exception as e:
            logger.error(
                "Failed to process message",
                source_id=source.id,
                message_id=message.id,
                error=str(e),
            )
            if not created:
                self._metrics.record_skip(source_type, "error")
            result.errors.append(f"Message {message.id}: {e}")

    def _finish(
        self,
        source: Source,
        result: SyncResult,
        start: float,
        span: Span,
        fetch_failed: bool = False,
    ) -> SyncResult:
        result.content_skipped = result.messages_processed - result.content_created
        result.finished_at = datetime.now(timezone.utc)
        duration = time.perf_counter() - start
        result.duration_ms = int(duration * 1000)
        record_sync_result(span, result)

        if fetch_failed:
            outcome = "failed"
        elif result.errors:
            outcome = "partial"
        else:
            outcome = "success"
        self._metrics.record_sync(
            source.type.value,
            outcome,
            fetched=result.messages_processed,
            created=result.content_created,
            duration=duration,
        )

        logger.info(
            "Sync completed",
            source_id=source.id,
            processed=result.messages_processed,
            created=result.content_created,
            skipped=result.content_skipped,
            errors=len(result.errors),
            duration_ms=result.duration_ms,
        )
        return result

    async def sync_sources(
        self, source_ids: Iterable[str], limit: int | None = None
    ) -> list[SyncResult]:
        """
        Sync several sources one after another.

        A source that cannot be synced at all (unknown, unsupported, no peer)
        yields an error-only SyncResult instead of aborting the others.
        """
        results = []
        for source_id in source_ids:
            try:
                results.append(await self.sync_source(source_id, limit=limit))
            except FATAL_SYNC_ERRORS as e:
                logger.error("Sync rejected", source_id=source_id, error=str(e))
                now = datetime.now(timezone.utc)
                results.append(
                    SyncResult(
                        source_id=source_id,
                        errors=[str(e)],
                        started_at=now,
                        finished_at=now,
                        duration_ms=0,
                    )
                )
        return results
