"""
Watermark pre-filter for incremental syncs.

The watermark is the upstream message id of the most recently ingested
content for a source. Messages at or below it are dropped before any
database round trip. This is an optimization only: the deduplicator's
conflict handling is what guarantees exactly-once ingestion, so a wrong
watermark can cost work but never correctness.
"""

from typing import TYPE_CHECKING, Sequence

import structlog

from contentflow.fetchers.base import RawMessage

if TYPE_CHECKING:
    from contentflow.content.repository import ContentRepository

logger = structlog.get_logger(__name__)


def parse_sequence(external_id: str) -> int:
    """Trailing integer after the last ':' of an external id, or 0."""
    _, sep, tail = external_id.rpartition(":")
    if not sep:
        return 0
    try:
        return int(tail)
    except ValueError:
        return 0


class WatermarkTracker:
    """Computes and applies the per-source ingestion watermark."""

    def __init__(self, content_repository: "ContentRepository") -> None:
        self._content = content_repository

    async def highest_ingested_sequence(self, source_id: str) -> int:
        """
        Upstream id of the most recent content for a source.

        Returns 0 when the source has no content, the stored external id
        does not end in an integer, or the lookup itself fails. A zero
        watermark lets every fetched message through to the deduplicator.
        """
        try:
            latest = await self._content.find_most_recent_for_source(source_id)
        except Exception as e:
            logger.warning("Watermark lookup failed", source_id=source_id, error=str(e))
            return 0
        if latest is None:
            return 0
        sequence = parse_sequence(latest.external_id)
        if sequence == 0:
            logger.debug(
                "Unparseable watermark",
                source_id=source_id,
                external_id=latest.external_id,
            )
        return sequence

    @staticmethod
    def filter_new(
        messages: Sequence[RawMessage], watermark: int
    ) -> tuple[list[RawMessage], int]:
        """Split a batch into messages above the watermark and a count of the rest.

        Fetch order is preserved.
        """
        if watermark <= 0:
            return list(messages), 0
        fresh = [m for m in messages if m.id > watermark]
        return fresh, len(messages) - len(fresh)
