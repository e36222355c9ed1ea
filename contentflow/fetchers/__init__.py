"""Fetch strategies that pull raw messages from upstream sources."""

from contentflow.fetchers.base import RawMessage, SourceFetchStrategy
from contentflow.fetchers.config import FetcherConfig
from contentflow.fetchers.registry import StrategyResolver, build_default_resolver
from contentflow.fetchers.static import StaticFetchStrategy
from contentflow.fetchers.telegram import TelegramFetchStrategy

__all__ = [
    "FetcherConfig",
    "RawMessage",
    "SourceFetchStrategy",
    "StaticFetchStrategy",
    "StrategyResolver",
    "TelegramFetchStrategy",
    "build_default_resolver",
]
