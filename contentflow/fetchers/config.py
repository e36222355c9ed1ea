"""
Configuration for upstream fetch strategies.

All settings can be overridden via FETCHER_* environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FetcherConfig(BaseSettings):
    """HTTP settings for talking to the parser service."""

    model_config = SettingsConfigDict(
        env_prefix="FETCHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    parser_url: str | None = Field(
        default=None,
        description="Parser service base URL; falls back to PARSER_SERVICE_URL",
    )
    telegram_messages_path: str = Field(
        default="/telegram/messages",
        description="Path of the parser endpoint returning channel messages",
    )
    telegram_default_limit: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Messages fetched per sync when no limit is given",
    )
    session_name: str | None = Field(
        default=None,
        description="Named parser session to fetch through",
    )

    # HTTP behaviour
    timeout: float = Field(
        default=30.0,
        ge=1.0,
        description="Request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries on 429/5xx and transport errors",
    )
    max_backoff_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Ceiling for exponential retry backoff",
    )
