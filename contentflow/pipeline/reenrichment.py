"""
Operator-triggered re-enrichment.

Syncs never revisit existing rows, so content whose enrichment failed (or
that was left pending by a crash mid-sequence) stays that way until an
operator runs this service. It replays the enrichment sequence on the
stored text of each row.
"""

from typing import TYPE_CHECKING, Sequence

import structlog

from contentflow.content.schemas import ContentStatus
from contentflow.pipeline.config import PipelineConfig
from contentflow.pipeline.enrichment import EnrichmentSequencer
from contentflow.pipeline.schemas import ReenrichResult

if TYPE_CHECKING:
    from contentflow.content.repository import ContentRepository

logger = structlog.get_logger(__name__)


class ReenrichmentService:
    """Re-runs enrichment for content stuck outside the ready state."""

    def __init__(
        self,
        content_repository: "ContentRepository",
        sequencer: EnrichmentSequencer,
        config: PipelineConfig | None = None,
    ) -> None:
        self._content = content_repository
        self._sequencer = sequencer
        self._config = config or PipelineConfig()

    async def reenrich(
        self,
        source_id: str | None = None,
        statuses: Sequence[ContentStatus] = (ContentStatus.ENRICHMENT_FAILED,),
        limit: int | None = None,
    ) -> ReenrichResult:
        """
        Re-enrich up to ``limit`` rows in the given states, oldest first.

        Args:
            source_id: Restrict to one source.
            statuses: States to pick up. READY is rejected.
            limit: Maximum rows; the configured batch limit when None.
        """
        if ContentStatus.READY in statuses:
            raise ValueError("Refusing to re-enrich content that is already ready")

        if limit is None:
            limit = self._config.reenrich_batch_limit
        rows = await self._content.list_by_status(statuses, source_id=source_id, limit=limit)
        result = ReenrichResult()

        for content in rows:
            result.attempted += 1
            try:
                outcome = await self._sequencer.enrich(content, content.text)
            except Exception as e:
                logger.error("Re-enrichment failed", content_id=content.id, error=str(e))
                result.failed += 1
                result.errors.append(f"Content {content.id}: {e}")
                continue

            if outcome.succeeded:
                result.ready += 1
            else:
                result.failed += 1
                result.errors.append(f"Content {content.id}: {outcome.error}")

        logger.info(
            "Re-enrichment finished",
            source_id=source_id,
            attempted=result.attempted,
            ready=result.ready,
            failed=result.failed,
        )
        return result
