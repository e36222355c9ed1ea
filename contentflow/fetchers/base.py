"""
Abstract fetch strategy interface and the raw message model.

A fetch strategy turns an upstream handle (channel username, feed URL) into a
batch of RawMessage objects. Strategies know nothing about content records,
deduplication or enrichment.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from contentflow.sources.schemas import SourceType


@dataclass
class RawMessage:
    """
    One upstream message as returned by a fetch strategy.

    Attributes:
        id: Upstream sequence number, monotonically increasing per source
        body: Message text; None or blank for media-only messages
        origin_unix_seconds: Upstream publication time
        raw: The full upstream payload, stored verbatim as raw_data
    """

    id: int
    body: str | None = None
    origin_unix_seconds: int | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def origin_timestamp(self) -> datetime | None:
        """Publication time as an aware UTC datetime."""
        if self.origin_unix_seconds is None:
            return None
        return datetime.fromtimestamp(self.origin_unix_seconds, tz=timezone.utc)

    @property
    def has_text(self) -> bool:
        return bool(self.body and self.body.strip())


class SourceFetchStrategy(ABC):
    """Fetches recent messages for one source type."""

    @property
    @abstractmethod
    def source_type(self) -> SourceType:
        """Source type this strategy serves."""
        ...

    @abstractmethod
    async def fetch(self, peer: str, limit: int | None = None) -> list[RawMessage]:
        """
        Fetch the most recent messages for a peer, starting at offset 0.

        Args:
            peer: Upstream handle (e.g. channel username)
            limit: Maximum messages; the strategy default applies when None

        Raises:
            FetchFailedError: If the upstream call fails.
        """
        ...

    async def close(self) -> None:
        """Release transport resources. Default is a no-op."""
        return None
