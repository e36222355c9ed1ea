"""Tests for the watermark pre-filter."""

from datetime import datetime, timezone

import pytest

from contentflow.pipeline.watermark import WatermarkTracker, parse_sequence
from tests.conftest import _make_message


class TestParseSequence:
    """Tests for trailing-integer extraction from external ids."""

    def test_trailing_integer(self):
        assert parse_sequence("-1001234567890:42") == 42

    def test_uses_last_segment(self):
        assert parse_sequence("a:b:17") == 17

    def test_no_separator_is_zero(self):
        assert parse_sequence("42") == 0

    def test_non_numeric_tail_is_zero(self):
        assert parse_sequence("chan:abc") == 0

    def test_empty_tail_is_zero(self):
        assert parse_sequence("chan:") == 0


class TestHighestIngestedSequence:
    """Tests for watermark lookup against the content repository."""

    @pytest.mark.asyncio
    async def test_no_content_is_zero(self, content_repo):
        tracker = WatermarkTracker(content_repo)
        assert await tracker.highest_ingested_sequence("src-1") == 0

    @pytest.mark.asyncio
    async def test_most_recent_by_source_date(self, content_repo):
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        await content_repo.create_content("src-1", "chan:7", "a", {}, base.replace(hour=3))
        await content_repo.create_content("src-1", "chan:9", "b", {}, base.replace(hour=1))
        tracker = WatermarkTracker(content_repo)

        # Most recent by date wins even though its id is lower
        assert await tracker.highest_ingested_sequence("src-1") == 7

    @pytest.mark.asyncio
    async def test_other_sources_ignored(self, content_repo):
        await content_repo.create_content("src-2", "other:99", "x", {})
        tracker = WatermarkTracker(content_repo)
        assert await tracker.highest_ingested_sequence("src-1") == 0

    @pytest.mark.asyncio
    async def test_unparseable_external_id_is_zero(self, content_repo):
        await content_repo.create_content("src-1", "legacy-id", "x", {})
        tracker = WatermarkTracker(content_repo)
        assert await tracker.highest_ingested_sequence("src-1") == 0

    @pytest.mark.asyncio
    async def test_lookup_failure_is_zero(self, content_repo):
        async def broken(source_id):
            raise ConnectionError("db connection reset")

        content_repo.find_most_recent_for_source = broken
        tracker = WatermarkTracker(content_repo)

        assert await tracker.highest_ingested_sequence("src-1") == 0


class TestFilterNew:
    """Tests for dropping messages at or below the watermark."""

    def test_zero_watermark_keeps_everything(self):
        messages = [_make_message(i) for i in (1, 2, 3)]
        fresh, below = WatermarkTracker.filter_new(messages, 0)
        assert [m.id for m in fresh] == [1, 2, 3]
        assert below == 0

    def test_drops_at_and_below(self):
        messages = [_make_message(i) for i in (12, 10, 11, 9)]
        fresh, below = WatermarkTracker.filter_new(messages, 10)
        assert [m.id for m in fresh] == [12, 11]
        assert below == 2

    def test_preserves_fetch_order(self):
        messages = [_make_message(i) for i in (30, 20, 25)]
        fresh, _ = WatermarkTracker.filter_new(messages, 5)
        assert [m.id for m in fresh] == [30, 20, 25]

    def test_empty_batch(self):
        assert WatermarkTracker.filter_new([], 10) == ([], 0)
