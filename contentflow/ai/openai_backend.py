"""OpenAI implementation of the AI backend.

Analysis uses a JSON-mode chat completion validated into AiAnalysisResult;
embeddings use the embeddings endpoint. Both calls go through a per-endpoint
circuit breaker so a provider outage fails fast instead of stalling every
message of a sync run on the request timeout.

The SDK import is deferred to first use so the package imports cleanly when
no API key is configured.
"""

import json
from typing import Any

import structlog
from pydantic import ValidationError

from contentflow.ai.base import AiBackend
from contentflow.ai.circuit_breaker import CircuitOpenError, CircuitBreaker
from contentflow.ai.config import AiConfig
from contentflow.ai.prompts import ANALYSIS_SYSTEM_PROMPT, ANALYSIS_USER_PROMPT
from contentflow.ai.schemas import AiAnalysisResult, EmbeddingResult
from contentflow.pipeline.errors import AnalysisFailedError, EmbeddingFailedError

logger = structlog.get_logger(__name__)


class OpenAIBackend(AiBackend):
    """AiBackend backed by the OpenAI API.

    Args:
        config: AI configuration. Defaults to AiConfig() from the environment.
        client: Pre-built ``openai.AsyncOpenAI`` (or compatible) client.
    """

    def __init__(self, config: AiConfig | None = None, client: Any = None) -> None:
        self._config = config or AiConfig()
        self._client = client
        self._analysis_breaker = CircuitBreaker(
            failure_threshold=self._config.circuit_failure_threshold,
            recovery_timeout=self._config.circuit_recovery_timeout,
            name="openai_analysis",
        )
        self._embedding_breaker = CircuitBreaker(
            failure_threshold=self._config.circuit_failure_threshold,
            recovery_timeout=self._config.circuit_recovery_timeout,
            name="openai_embedding",
        )

    @property
    def name(self) -> str:
        return "openai"

    @property
    def analysis_breaker(self) -> CircuitBreaker:
        return self._analysis_breaker

    @property
    def embedding_breaker(self) -> CircuitBreaker:
        return self._embedding_breaker

    def _get_client(self) -> Any:
        """Lazy-initialize the OpenAI async client."""
        if self._client is None:
            import openai

            api_key = self._config.openai_api_key
            if api_key is None:
                logger.warning("AI_OPENAI_API_KEY is not set")
            self._client = openai.AsyncOpenAI(
                api_key=api_key.get_secret_value() if api_key else None,
                base_url=self._config.openai_base_url,
                timeout=self._config.request_timeout,
            )
        return self._client

    def _truncate(self, text: str) -> str:
        return text[: self._config.max_input_chars]

    async def analyze_text(self, text: str) -> AiAnalysisResult:
        async def _call() -> str | None:
            client = self._get_client()
            response = await client.chat.completions.create(
                model=self._config.analysis_model,
                messages=[
                    {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": ANALYSIS_USER_PROMPT.format(text=self._truncate(text)),
                    },
                ],
                temperature=self._config.analysis_temperature,
                response_format={"type": "json_object"},
            )
            return response.choices[0].message.content

        try:
            raw = await self._analysis_breaker.call(_call)
        except CircuitOpenError as e:
            raise AnalysisFailedError(str(e)) from e
        except Exception as e:
            logger.error("OpenAI analysis request failed", error=str(e))
            raise AnalysisFailedError(f"Analysis request failed: {e}") from e

        return self._parse_analysis(raw)

    def _parse_analysis(self, raw: str | None) -> AiAnalysisResult:
        """Validate a JSON-mode response body into AiAnalysisResult."""
        if not raw:
            raise AnalysisFailedError("Analysis response was empty")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise AnalysisFailedError(f"Analysis response is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise AnalysisFailedError("Analysis response is not a JSON object")
        try:
            return AiAnalysisResult.model_validate(data)
        except ValidationError as e:
            raise AnalysisFailedError(f"Analysis response failed validation: {e}") from e

    async def generate_embedding(self, text: str) -> EmbeddingResult:
        model = self._config.embedding_model

        async def _call() -> list[float]:
            client = self._get_client()
            kwargs: dict[str, Any] = {"model": model, "input": self._truncate(text)}
            # Only the v3 family accepts an explicit output size
            if model.startswith("text-embedding-3"):
                kwargs["dimensions"] = self._config.embedding_dimensions
            response = await client.embeddings.create(**kwargs)
            return list(response.data[0].embedding)

        try:
            vector = await self._embedding_breaker.call(_call)
        except CircuitOpenError as e:
            raise EmbeddingFailedError(str(e)) from e
        except Exception as e:
            logger.error("OpenAI embedding request failed", error=str(e))
            raise EmbeddingFailedError(f"Embedding request failed: {e}") from e

        logger.debug("Generated embedding", model=model, dimensions=len(vector))
        try:
            return EmbeddingResult(
                embedding=vector,
                model=model,
                dimensions=self._config.embedding_dimensions,
            )
        except ValidationError as e:
            raise EmbeddingFailedError(f"Unexpected embedding shape: {e}") from e

    async def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None
