"""Configuration for AI analysis and embedding backends.

All settings can be overridden via AI_* environment variables.
"""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AiConfig(BaseSettings):
    """Configuration for the OpenAI backend.

    Example:
        AI_OPENAI_API_KEY=sk-...
        AI_ANALYSIS_MODEL=gpt-4o
    """

    model_config = SettingsConfigDict(
        env_prefix="AI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    openai_api_key: SecretStr | None = Field(
        default=None,
        description="OpenAI API key",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Override for OpenAI-compatible endpoints",
    )

    # Model selection
    analysis_model: str = Field(
        default="gpt-4o-mini",
        description="Chat model used for structured text analysis",
    )
    analysis_temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for analysis",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model",
    )
    embedding_dimensions: int = Field(
        default=1536,
        ge=1,
        description="Expected embedding vector size",
    )
    max_input_chars: int = Field(
        default=16000,
        ge=100,
        description="Input text is truncated to this many characters",
    )

    # Circuit breaker settings
    circuit_failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive failures before opening circuit",
    )
    circuit_recovery_timeout: float = Field(
        default=60.0,
        ge=1.0,
        description="Seconds before attempting recovery probe",
    )

    request_timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Timeout in seconds for provider API calls",
    )
