"""
Configuration for the sync job queue and worker.

All settings can be overridden via SYNC_QUEUE_* environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncQueueConfig(BaseSettings):
    """Redis stream names, reclaim behaviour and worker tuning."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_QUEUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Redis stream configuration
    stream_name: str = Field(
        default="sync_jobs",
        description="Redis stream name for sync jobs",
    )
    consumer_group: str = Field(
        default="sync_workers",
        description="Consumer group name for sync workers",
    )
    dlq_stream_name: str = Field(
        default="sync_jobs:dlq",
        description="Dead letter queue stream name",
    )
    max_stream_length: int = Field(
        default=10_000,
        ge=100,
        description="Maximum stream length before trimming",
    )

    # Reclaim
    idle_timeout_ms: int = Field(
        default=300_000,
        ge=1_000,
        description="Idle time before an unacknowledged job is redelivered",
    )
    max_delivery_attempts: int = Field(
        default=3,
        ge=1,
        description="Deliveries before a job goes to the DLQ",
    )

    # Worker
    block_ms: int = Field(
        default=5000,
        ge=100,
        description="XREADGROUP block time in milliseconds",
    )
    backoff_base_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="First reconnect delay in seconds",
    )
    backoff_max_delay: float = Field(
        default=60.0,
        ge=0.0,
        description="Reconnect delay ceiling in seconds",
    )
    max_consecutive_failures: int = Field(
        default=10,
        ge=1,
        description="Reconnect attempts before the worker gives up",
    )
