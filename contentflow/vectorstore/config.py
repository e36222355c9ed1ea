"""
Configuration for the vector index.

Uses Pydantic BaseSettings for environment variable support.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class VectorStoreConfig(BaseSettings):
    """
    Configuration for PgVectorIndex.

    All settings can be overridden via environment variables with
    VECTORSTORE_ prefix (e.g., VECTORSTORE_DEFAULT_LIMIT=20).
    """

    model_config = SettingsConfigDict(
        env_prefix="VECTORSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    table_name: str = Field(
        default="content_vectors",
        pattern=r"^[a-z_][a-z0-9_]*$",
        description="Table holding content embeddings",
    )
    dimensions: int = Field(
        default=1536,
        ge=1,
        le=16000,
        description="Embedding vector size (text-embedding-3-small)",
    )

    # Search defaults
    default_limit: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Default number of results to return",
    )
    default_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Default minimum cosine similarity",
    )
