"""Tests for StrategyResolver and the static strategy."""

from unittest.mock import AsyncMock

import pytest

from contentflow.fetchers.registry import StrategyResolver, build_default_resolver
from contentflow.fetchers.static import StaticFetchStrategy
from contentflow.fetchers.telegram import TelegramFetchStrategy
from contentflow.pipeline.errors import UnsupportedSourceTypeError
from contentflow.sources.schemas import SourceType
from tests.conftest import _make_message


class TestStrategyResolver:

    def test_resolves_registered_type(self):
        resolver = StrategyResolver()
        strategy = StaticFetchStrategy()
        resolver.register(strategy)

        assert resolver.resolve(SourceType.TELEGRAM) is strategy
        assert resolver.resolve("telegram") is strategy
        assert resolver.supports(SourceType.TELEGRAM)
        assert resolver.registered_types == [SourceType.TELEGRAM]

    def test_explicit_type_overrides_strategy_type(self):
        resolver = StrategyResolver()
        strategy = StaticFetchStrategy()
        resolver.register(strategy, source_type=SourceType.RSS)

        assert resolver.resolve(SourceType.RSS) is strategy
        assert not resolver.supports(SourceType.TELEGRAM)

    def test_unregistered_type_raises(self):
        resolver = StrategyResolver()
        resolver.register(StaticFetchStrategy())

        with pytest.raises(UnsupportedSourceTypeError, match="youtube"):
            resolver.resolve(SourceType.YOUTUBE)

    def test_unknown_type_string_raises(self):
        with pytest.raises(UnsupportedSourceTypeError, match="myspace"):
            StrategyResolver().resolve("myspace")

    @pytest.mark.asyncio
    async def test_close_closes_every_strategy(self):
        resolver = StrategyResolver()
        a, b = StaticFetchStrategy(), StaticFetchStrategy(source_type=SourceType.RSS)
        a.close = AsyncMock()
        b.close = AsyncMock()
        resolver.register(a)
        resolver.register(b)

        await resolver.close()

        a.close.assert_awaited_once()
        b.close.assert_awaited_once()

    def test_default_resolver_serves_telegram(self, test_settings):
        resolver = build_default_resolver(test_settings)

        assert resolver.registered_types == [SourceType.TELEGRAM]
        assert isinstance(resolver.resolve(SourceType.TELEGRAM), TelegramFetchStrategy)


class TestStaticFetchStrategy:

    @pytest.mark.asyncio
    async def test_applies_limit_and_records_calls(self):
        strategy = StaticFetchStrategy([_make_message(i) for i in range(5)])

        messages = await strategy.fetch("chan", 2)

        assert [m.id for m in messages] == [0, 1]
        assert strategy.calls == [("chan", 2)]

    @pytest.mark.asyncio
    async def test_per_peer_batches(self):
        strategy = StaticFetchStrategy([_make_message(1)])
        strategy.set_messages([_make_message(9)], peer="other")

        assert [m.id for m in await strategy.fetch("other")] == [9]
        assert [m.id for m in await strategy.fetch("chan")] == [1]
