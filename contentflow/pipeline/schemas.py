"""Result types returned by the pipeline components."""

from dataclasses import dataclass, field
from datetime import datetime

from contentflow.ai.schemas import AiAnalysisResult
from contentflow.content.schemas import Content, ContentStatus


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class SyncResult:
    """
    Statistics for one sync run of one source.

    messages_processed == content_created + content_skipped always holds.
    """

    source_id: str
    source_name: str | None = None
    messages_processed: int = 0
    content_created: int = 0
    content_skipped: int = 0
    errors: list[str] = field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration_ms: int | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        """Wire representation with camelCase keys."""
        return {
            "sourceId": self.source_id,
            "sourceName": self.source_name,
            "messagesProcessed": self.messages_processed,
            "contentCreated": self.content_created,
            "contentSkipped": self.content_skipped,
            "errors": list(self.errors),
            "startedAt": _iso(self.started_at),
            "finishedAt": _iso(self.finished_at),
            "durationMs": self.duration_ms,
        }


@dataclass
class GetOrCreateResult:
    """Content row for a raw message and whether this call created it."""

    content: Content
    is_new: bool


@dataclass
class EnrichmentOutcome:
    """Terminal state of one enrichment sequence."""

    content_id: str
    status: ContentStatus
    analysis: AiAnalysisResult | None = None
    vector_id: str | None = None
    error: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == ContentStatus.READY


@dataclass
class ReenrichResult:
    """Totals for one operator-triggered re-enrichment run."""

    attempted: int = 0
    ready: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "ready": self.ready,
            "failed": self.failed,
            "errors": list(self.errors),
        }
