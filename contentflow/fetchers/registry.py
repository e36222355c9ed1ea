"""
Source-type to fetch strategy registry.

Populated once at startup; the orchestrator resolves a strategy per sync.
"""

import structlog

from contentflow.config.settings import Settings
from contentflow.fetchers.base import SourceFetchStrategy
from contentflow.fetchers.config import FetcherConfig
from contentflow.fetchers.telegram import TelegramFetchStrategy
from contentflow.pipeline.errors import UnsupportedSourceTypeError
from contentflow.sources.schemas import SourceType

logger = structlog.get_logger(__name__)


class StrategyResolver:
    """Maps each SourceType to the strategy that can fetch it."""

    def __init__(self) -> None:
        self._strategies: dict[SourceType, SourceFetchStrategy] = {}

    def register(
        self,
        strategy: SourceFetchStrategy,
        source_type: SourceType | None = None,
    ) -> None:
        """Register a strategy under its own type, or an explicit one."""
        key = source_type or strategy.source_type
        if key in self._strategies:
            logger.warning("Replacing fetch strategy", source_type=key.value)
        self._strategies[key] = strategy

    def resolve(self, source_type: SourceType | str) -> SourceFetchStrategy:
        """
        Look up the strategy for a source type.

        Raises:
            UnsupportedSourceTypeError: If nothing is registered for the type.
        """
        try:
            key = SourceType(source_type)
        except ValueError:
            raise UnsupportedSourceTypeError(str(source_type)) from None
        strategy = self._strategies.get(key)
        if strategy is None:
            raise UnsupportedSourceTypeError(key.value)
        return strategy

    def supports(self, source_type: SourceType) -> bool:
        return source_type in self._strategies

    @property
    def registered_types(self) -> list[SourceType]:
        return list(self._strategies)

    async def close(self) -> None:
        for strategy in self._strategies.values():
            await strategy.close()


def build_default_resolver(
    settings: Settings,
    config: FetcherConfig | None = None,
) -> StrategyResolver:
    """Resolver with every strategy this deployment can serve."""
    config = config or FetcherConfig()
    resolver = StrategyResolver()
    resolver.register(
        TelegramFetchStrategy(
            base_url=config.parser_url or settings.parser_service_url,
            config=config,
        )
    )
    return resolver
