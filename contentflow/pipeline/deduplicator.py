"""
Get-or-create for content records.

Two syncs of the same source can race on the same message. Both attempt
the INSERT; the unique index lets exactly one win and the loser reads the
winner's row back. Existence checks before the insert would be racy, so
there are none.
"""

from typing import TYPE_CHECKING

import structlog

from contentflow.fetchers.base import RawMessage
from contentflow.pipeline.errors import DuplicateExternalIdError, EmptyContentError
from contentflow.pipeline.schemas import GetOrCreateResult
from contentflow.sources.schemas import Source

if TYPE_CHECKING:
    from contentflow.content.repository import ContentRepository

logger = structlog.get_logger(__name__)


def build_external_id(source_external_id: str, message_id: int) -> str:
    """Stable content identity: ``"{source external id}:{message id}"``."""
    return f"{source_external_id}:{message_id}"


class ContentDeduplicator:
    """Turns raw messages into content rows exactly once."""

    def __init__(self, content_repository: "ContentRepository") -> None:
        self._content = content_repository

    async def get_or_create(
        self, source: Source, message: RawMessage
    ) -> GetOrCreateResult:
        """
        Create a pending content row for a message, or return the existing one.

        Raises:
            EmptyContentError: If the message has no text. No row is created.
            DuplicateExternalIdError: If the insert conflicted but the
                conflicting row could not be read back.
        """
        if not message.has_text:
            raise EmptyContentError(message.id)

        external_id = build_external_id(source.external_id, message.id)
        try:
            content = await self._content.create_content(
                source_id=source.id,
                external_id=external_id,
                text=message.body,
                raw_data=message.raw,
                source_date=message.origin_timestamp,
            )
        except DuplicateExternalIdError:
            existing = await self._content.find_by_external_id(source.id, external_id)
            if existing is None:
                # Row vanished between the conflicting insert and the read
                raise
            logger.debug(
                "Content already ingested",
                source_id=source.id,
                external_id=external_id,
            )
            return GetOrCreateResult(content=existing, is_new=False)

        return GetOrCreateResult(content=content, is_new=True)
