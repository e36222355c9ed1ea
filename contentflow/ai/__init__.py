"""AI analysis and embedding backends."""

from contentflow.ai.base import AiBackend
from contentflow.ai.config import AiConfig
from contentflow.ai.schemas import (
    AiAnalysisResult,
    EmbeddingResult,
    ExtractedEntities,
    FactCheck,
)

__all__ = [
    "AiAnalysisResult",
    "AiBackend",
    "AiConfig",
    "EmbeddingResult",
    "ExtractedEntities",
    "FactCheck",
]
