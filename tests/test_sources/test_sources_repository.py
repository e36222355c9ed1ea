"""Tests for SourcesRepository and the Source model."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from contentflow.sources.repository import SourcesRepository
from contentflow.sources.schemas import Source, SourceType


class TestSourceModel:

    def test_display_name_falls_back_to_external_id(self):
        assert Source(id="1", type=SourceType.RSS, external_id="feed").display_name == "feed"

    def test_fetch_handle_from_metadata(self):
        source = Source(
            id="1", type=SourceType.TELEGRAM, external_id="-100", metadata={"username": " chan "}
        )
        assert source.fetch_handle == "chan"

    @pytest.mark.parametrize("metadata", [{}, {"username": ""}, {"username": 42}])
    def test_fetch_handle_missing(self, metadata):
        source = Source(id="1", type=SourceType.TELEGRAM, external_id="-100", metadata=metadata)
        assert source.fetch_handle is None


class TestUpsert:

    @pytest.mark.asyncio
    async def test_passes_identity_and_metadata(
        self, mock_database: AsyncMock, source_row: dict
    ) -> None:
        mock_database.fetchrow.return_value = source_row
        repo = SourcesRepository(mock_database)

        source = await repo.upsert(
            SourceType.TELEGRAM,
            "-1001234567890",
            name="News Channel",
            metadata={"username": "news_chan"},
        )

        args = mock_database.fetchrow.call_args[0]
        assert "ON CONFLICT (type, external_id) DO UPDATE" in args[0]
        assert args[2:6] == ("telegram", "-1001234567890", "News Channel", True)
        assert json.loads(args[6]) == {"username": "news_chan"}
        assert source.id == "src-1"
        assert source.type == SourceType.TELEGRAM
        assert source.fetch_handle == "news_chan"


class TestGet:

    @pytest.mark.asyncio
    async def test_found(self, mock_database: AsyncMock, source_row: dict) -> None:
        mock_database.fetchrow.return_value = source_row
        source = await SourcesRepository(mock_database).get("src-1")

        assert source.name == "News Channel"
        assert source.metadata == {"username": "news_chan"}

    @pytest.mark.asyncio
    async def test_not_found(self, mock_database: AsyncMock) -> None:
        assert await SourcesRepository(mock_database).get("missing") is None

    @pytest.mark.asyncio
    async def test_by_external_id(self, mock_database: AsyncMock, source_row: dict) -> None:
        mock_database.fetchrow.return_value = source_row

        await SourcesRepository(mock_database).get_by_external_id(
            SourceType.TELEGRAM, "-1001234567890"
        )

        assert mock_database.fetchrow.call_args[0][1:] == ("telegram", "-1001234567890")


class TestListActive:

    @pytest.mark.asyncio
    async def test_all_types(self, mock_database: AsyncMock, source_row: dict) -> None:
        mock_database.fetch.return_value = [source_row]

        sources = await SourcesRepository(mock_database).list_active()

        assert [s.id for s in sources] == ["src-1"]
        assert len(mock_database.fetch.call_args[0]) == 1

    @pytest.mark.asyncio
    async def test_filtered_by_type(self, mock_database: AsyncMock) -> None:
        await SourcesRepository(mock_database).list_active(SourceType.RSS)

        assert mock_database.fetch.call_args[0][1] == "rss"


class TestUpdates:

    @pytest.mark.asyncio
    async def test_touch_last_sync(self, mock_database: AsyncMock) -> None:
        ts = datetime(2025, 5, 1, tzinfo=timezone.utc)

        await SourcesRepository(mock_database).touch_last_sync("src-1", ts)

        args = mock_database.execute.call_args[0]
        assert "last_sync_at = $2" in args[0]
        assert args[1:] == ("src-1", ts)

    @pytest.mark.asyncio
    async def test_set_active_reports_change(self, mock_database: AsyncMock) -> None:
        repo = SourcesRepository(mock_database)

        mock_database.execute.return_value = "UPDATE 1"
        assert await repo.set_active("src-1", False) is True

        mock_database.execute.return_value = "UPDATE 0"
        assert await repo.set_active("src-1", False) is False
