"""
Incremental source sync and content enrichment pipeline.

This module provides:
- SyncOrchestrator: Runs one source sync end to end
- WatermarkTracker: Pre-filters messages that were already ingested
- ContentDeduplicator: Get-or-create of content rows by external id
- EnrichmentSequencer: Analysis, embedding and vector indexing of new content
- ReenrichmentService: Operator-triggered retry of failed enrichment
- SyncResult / ReenrichResult: Run statistics
"""

# errors must load first: repositories and fetchers import it during
# their own package initialization
from contentflow.pipeline.errors import (
    AnalysisFailedError,
    DuplicateExternalIdError,
    EmbeddingFailedError,
    EmptyContentError,
    FetchFailedError,
    InvalidSourceError,
    PipelineError,
    SourceNotFoundError,
    UnsupportedSourceTypeError,
    VectorStoreUnavailableError,
)
from contentflow.pipeline.config import PipelineConfig
from contentflow.pipeline.deduplicator import ContentDeduplicator, build_external_id
from contentflow.pipeline.enrichment import EnrichmentSequencer
from contentflow.pipeline.orchestrator import SyncOrchestrator
from contentflow.pipeline.reenrichment import ReenrichmentService
from contentflow.pipeline.schemas import (
    EnrichmentOutcome,
    GetOrCreateResult,
    ReenrichResult,
    SyncResult,
)
from contentflow.pipeline.watermark import WatermarkTracker

__all__ = [
    "AnalysisFailedError",
    "ContentDeduplicator",
    "DuplicateExternalIdError",
    "EmbeddingFailedError",
    "EmptyContentError",
    "EnrichmentOutcome",
    "EnrichmentSequencer",
    "FetchFailedError",
    "GetOrCreateResult",
    "InvalidSourceError",
    "PipelineConfig",
    "PipelineError",
    "ReenrichResult",
    "ReenrichmentService",
    "SourceNotFoundError",
    "SyncOrchestrator",
    "SyncResult",
    "UnsupportedSourceTypeError",
    "VectorStoreUnavailableError",
    "WatermarkTracker",
    "build_external_id",
]
