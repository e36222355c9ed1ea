"""Abstract AI backend interface."""

from abc import ABC, abstractmethod

from contentflow.ai.schemas import AiAnalysisResult, EmbeddingResult


class AiBackend(ABC):
    """
    Text analysis and embedding capability consumed by the pipeline.

    Implementations must raise AnalysisFailedError / EmbeddingFailedError
    rather than returning placeholder results, so the enrichment sequencer
    can mark content as enrichment_failed.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name used in logs and metrics."""
        ...

    @abstractmethod
    async def analyze_text(self, text: str) -> AiAnalysisResult:
        """
        Produce summary, sentiment, keywords, entities and fact-check data.

        Raises:
            AnalysisFailedError: If the provider call or response parsing fails.
        """
        ...

    @abstractmethod
    async def generate_embedding(self, text: str) -> EmbeddingResult:
        """
        Embed text into a fixed-dimension vector.

        Raises:
            EmbeddingFailedError: If the provider call fails.
        """
        ...

    async def close(self) -> None:
        """Release provider resources. Default is a no-op."""
        return None
