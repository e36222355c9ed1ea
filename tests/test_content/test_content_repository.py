"""Tests for ContentRepository."""

import json
from unittest.mock import AsyncMock

import asyncpg
import pytest

from contentflow.ai.schemas import AiAnalysisResult
from contentflow.content.repository import ContentRepository
from contentflow.content.schemas import ContentStatus
from contentflow.pipeline.errors import DuplicateExternalIdError


class TestCreateContent:

    @pytest.mark.asyncio
    async def test_inserts_pending_row(self, mock_database: AsyncMock, content_row: dict) -> None:
        mock_database.fetchrow.return_value = content_row
        repo = ContentRepository(mock_database)

        content = await repo.create_content(
            source_id="src-1",
            external_id="-1001234567890:42",
            text="Central bank holds rates",
            raw_data={"id": 42},
        )

        args = mock_database.fetchrow.call_args[0]
        assert "INSERT INTO content" in args[0]
        assert args[2:5] == ("src-1", "-1001234567890:42", "Central bank holds rates")
        assert json.loads(args[5]) == {"id": 42}
        assert args[7] == "pending"
        assert content.status == ContentStatus.PENDING
        assert content.raw_data == {"id": 42, "message": "Central bank holds rates"}

    @pytest.mark.asyncio
    async def test_unique_violation_maps_to_duplicate(self, mock_database: AsyncMock) -> None:
        mock_database.fetchrow.side_effect = asyncpg.UniqueViolationError("duplicate key")
        repo = ContentRepository(mock_database)

        with pytest.raises(DuplicateExternalIdError) as exc_info:
            await repo.create_content("src-1", "chan:1", "x", {})

        assert exc_info.value.source_id == "src-1"
        assert exc_info.value.external_id == "chan:1"


class TestLookups:

    @pytest.mark.asyncio
    async def test_find_by_external_id_missing(self, mock_database: AsyncMock) -> None:
        repo = ContentRepository(mock_database)
        assert await repo.find_by_external_id("src-1", "chan:1") is None

    @pytest.mark.asyncio
    async def test_most_recent_orders_by_source_date(
        self, mock_database: AsyncMock, content_row: dict
    ) -> None:
        mock_database.fetchrow.return_value = content_row
        repo = ContentRepository(mock_database)

        content = await repo.find_most_recent_for_source("src-1")

        sql = mock_database.fetchrow.call_args[0][0]
        assert "ORDER BY source_date DESC NULLS LAST, created_at DESC" in sql
        assert content.external_id == "-1001234567890:42"

    @pytest.mark.asyncio
    async def test_decodes_analysis(self, mock_database: AsyncMock, content_row: dict) -> None:
        content_row["status"] = "ready"
        content_row["ai_analysis"] = json.dumps(
            {"summary": "s", "sentiment": "positive", "factCheck": {"verdict": "opinion", "score": 0.5}}
        )
        mock_database.fetchrow.return_value = content_row
        repo = ContentRepository(mock_database)

        content = await repo.get_by_id("c-1")

        assert content.status == ContentStatus.READY
        assert content.ai_analysis.fact_check.verdict == "opinion"


class TestUpdateContent:

    @pytest.mark.asyncio
    async def test_builds_partial_update(self, mock_database: AsyncMock, content_row: dict) -> None:
        mock_database.fetchrow.return_value = content_row
        repo = ContentRepository(mock_database)
        analysis = AiAnalysisResult(summary="s")

        await repo.update_content(
            "c-1",
            ai_analysis=analysis,
            status=ContentStatus.READY,
            is_vectorized=True,
        )

        args = mock_database.fetchrow.call_args[0]
        sql = args[0]
        assert "ai_analysis = $1::jsonb" in sql
        assert "status = $2" in sql
        assert "is_vectorized = $3" in sql
        assert "updated_at = NOW()" in sql
        assert "WHERE id = $4" in sql
        assert json.loads(args[1])["summary"] == "s"
        assert args[2] == "ready"
        assert args[3] is True
        assert args[4] == "c-1"

    @pytest.mark.asyncio
    async def test_rejects_empty_update(self, mock_database: AsyncMock) -> None:
        with pytest.raises(ValueError, match="No updates"):
            await ContentRepository(mock_database).update_content("c-1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["id", "source_id", "external_id", "created_at"])
    async def test_rejects_immutable_fields(self, mock_database: AsyncMock, field: str) -> None:
        with pytest.raises(ValueError, match="Invalid fields"):
            await ContentRepository(mock_database).update_content("c-1", **{field: "x"})
        mock_database.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_row_raises(self, mock_database: AsyncMock) -> None:
        with pytest.raises(ValueError, match="not found"):
            await ContentRepository(mock_database).update_content("c-9", is_vectorized=False)


class TestStatusQueries:

    @pytest.mark.asyncio
    async def test_list_by_status_with_source(
        self, mock_database: AsyncMock, content_row: dict
    ) -> None:
        mock_database.fetch.return_value = [content_row]
        repo = ContentRepository(mock_database)

        rows = await repo.list_by_status(
            [ContentStatus.ENRICHMENT_FAILED, ContentStatus.PENDING], source_id="src-1", limit=5
        )

        args = mock_database.fetch.call_args[0]
        assert args[1:] == (["enrichment_failed", "pending"], "src-1", 5)
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_count_by_status(self, mock_database: AsyncMock) -> None:
        mock_database.fetch.return_value = [
            {"status": "ready", "n": 12},
            {"status": "enrichment_failed", "n": 2},
        ]

        counts = await ContentRepository(mock_database).count_by_status()

        assert counts == {"ready": 12, "enrichment_failed": 2}
