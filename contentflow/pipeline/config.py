"""Configuration for the sync and enrichment pipeline.

All settings can be overridden via PIPELINE_* environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineConfig(BaseSettings):
    """Tuning for SyncOrchestrator and EnrichmentSequencer."""

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_fetch_limit: int | None = Field(
        default=50,
        ge=1,
        description="Limit passed to the fetch strategy when the caller gives none",
    )
    use_watermark: bool = Field(
        default=True,
        description="Drop fetched messages at or below the highest ingested id",
    )
    stage_timeout_seconds: float = Field(
        default=120.0,
        ge=0.0,
        description="Timeout per AI enrichment stage; 0 disables",
    )
    reenrich_batch_limit: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Default number of rows picked up by one re-enrichment run",
    )
