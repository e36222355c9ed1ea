"""Shared fixtures for AI backend tests."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from contentflow.ai.config import AiConfig


@pytest.fixture
def ai_config() -> AiConfig:
    return AiConfig(
        openai_api_key="sk-test",
        embedding_dimensions=3,
        circuit_failure_threshold=2,
        circuit_recovery_timeout=30.0,
    )


@pytest.fixture
def analysis_payload() -> dict:
    return {
        "summary": "The central bank kept rates unchanged.",
        "sentiment": "Neutral",
        "keywords": ["Rates", " ", "central bank"],
        "entities": {"organizations": ["Fed"], "people": [], "tickers": [], "locations": ["US"]},
        "category": "economy",
        "language": "en",
        "factCheck": {"verdict": "verified", "score": 0.9, "explanation": "Matches statement"},
    }


@pytest.fixture
def mock_openai(analysis_payload: dict) -> MagicMock:
    """AsyncOpenAI stand-in with chat and embeddings endpoints."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=SimpleNamespace(
            choices=[
                SimpleNamespace(message=SimpleNamespace(content=json.dumps(analysis_payload)))
            ]
        )
    )
    client.embeddings.create = AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(embedding=[0.1, 0.2, 0.3])])
    )
    client.close = AsyncMock()
    return client
