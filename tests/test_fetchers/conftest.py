"""Shared fixtures for fetch strategy tests."""

import json
from typing import Callable

import httpx
import pytest

from contentflow.fetchers.config import FetcherConfig
from contentflow.fetchers.http_client import HTTPClient, RetryConfig
from contentflow.fetchers.telegram import TelegramFetchStrategy


@pytest.fixture
def fetcher_config() -> FetcherConfig:
    return FetcherConfig(max_retries=2, telegram_default_limit=50)


@pytest.fixture
def parser_messages() -> list[dict]:
    """Messages as the parser service returns them, newest first."""
    return [
        {"id": 12, "message": "Third post", "date": 1_700_000_300, "views": 40},
        {"id": 11, "message": "", "date": 1_700_000_200},
        {"id": 10, "message": "First post", "date": 1_700_000_100},
    ]


@pytest.fixture
def make_strategy(fetcher_config: FetcherConfig) -> Callable[..., TelegramFetchStrategy]:
    """Build a strategy whose HTTP traffic goes to ``handler``."""

    def _make(handler) -> TelegramFetchStrategy:
        http = HTTPClient(
            retry_config=RetryConfig(max_retries=2, base_delay=0.0),
            transport=httpx.MockTransport(handler),
        )
        return TelegramFetchStrategy(
            "http://parser.test/", config=fetcher_config, http_client=http
        )

    return _make


def json_handler(payload, status_code: int = 200, seen: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, content=json.dumps(payload).encode())

    return handler
