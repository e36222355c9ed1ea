"""Data models for the sources module."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class SourceType(str, Enum):
    """Supported upstream source types."""

    TELEGRAM = "telegram"
    TWITTER = "twitter"
    RSS = "rss"
    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"


@dataclass
class Source:
    """An upstream origin of content (a channel, feed, account).

    ``external_id`` is the stable upstream identifier and the prefix of every
    content external id derived from this source. ``metadata`` is an opaque
    source-type-specific document; the pipeline only reads it through the
    typed accessors below.
    """

    id: str
    type: SourceType
    external_id: str
    name: str | None = None
    is_active: bool = True
    last_sync_at: datetime | None = None
    metadata: dict = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def display_name(self) -> str:
        """Human-readable name, falling back to the external id."""
        return self.name or self.external_id

    @property
    def fetch_handle(self) -> str | None:
        """Preferred fetch handle from metadata (e.g. a channel username)."""
        username = self.metadata.get("username")
        if isinstance(username, str) and username.strip():
            return username.strip()
        return None
