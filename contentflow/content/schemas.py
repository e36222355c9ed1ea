"""Data models for ingested content."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from contentflow.ai.schemas import AiAnalysisResult


class ContentStatus(str, Enum):
    """Enrichment state of a content record.

    pending -> ready              (analysis and embedding succeeded)
    pending -> enrichment_failed  (analysis or embedding raised)
    """

    PENDING = "pending"
    READY = "ready"
    ENRICHMENT_FAILED = "enrichment_failed"


@dataclass
class Content:
    """The durable ingested unit derived from one upstream message.

    (source_id, external_id) is unique. ``external_id`` is always
    ``"{source.external_id}:{message id}"``.
    """

    id: str
    source_id: str
    external_id: str
    text: str
    raw_data: dict[str, Any] = field(default_factory=dict)
    source_date: datetime | None = None
    status: ContentStatus = ContentStatus.PENDING
    is_vectorized: bool = False
    embedding_model: str | None = None
    vector_id: str | None = None
    ai_analysis: AiAnalysisResult | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
