"""
Error taxonomy for the sync and enrichment pipeline.

Fatal precondition errors (SourceNotFoundError, UnsupportedSourceTypeError,
InvalidSourceError) abort a sync before any message is processed. Everything
else is either recovered locally or recorded per message in SyncResult.errors.
"""


class PipelineError(Exception):
    """Base exception for pipeline errors."""


class SourceNotFoundError(PipelineError):
    """Raised when a sync is requested for an unknown source id."""

    def __init__(self, source_id: str):
        super().__init__(f"Source not found: {source_id}")
        self.source_id = source_id


class UnsupportedSourceTypeError(PipelineError):
    """Raised when no fetch strategy is registered for a source type."""

    def __init__(self, source_type: str):
        super().__init__(f"Unsupported source type: {source_type}")
        self.source_type = source_type


class InvalidSourceError(PipelineError):
    """Raised when a source has neither a fetch handle nor an external id."""


class FetchFailedError(PipelineError):
    """Raised by fetch strategies when the upstream call fails."""


class EmptyContentError(PipelineError):
    """Raised for raw messages without text; counted as skipped, not failed."""

    def __init__(self, message_id: int):
        super().__init__(f"Message {message_id} has no text content")
        self.message_id = message_id


class DuplicateExternalIdError(PipelineError):
    """Raised by the content repository on a (source_id, external_id) conflict."""

    def __init__(self, source_id: str, external_id: str):
        super().__init__(
            f"Content {external_id} already exists for source {source_id}"
        )
        self.source_id = source_id
        self.external_id = external_id


class AnalysisFailedError(PipelineError):
    """Raised by an AI backend when text analysis fails."""


class EmbeddingFailedError(PipelineError):
    """Raised by an AI backend when embedding generation fails."""


class VectorStoreUnavailableError(PipelineError):
    """Raised by a vector index when an upsert cannot be stored."""
