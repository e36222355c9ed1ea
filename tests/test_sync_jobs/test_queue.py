"""Tests for SyncJobQueue."""

import pytest

from contentflow.sync_jobs.queue import SyncJobQueue


@pytest.fixture
def queue(sync_queue_config, redis_client) -> SyncJobQueue:
    q = SyncJobQueue(
        config=sync_queue_config, redis_url="redis://localhost:6379/1", client=redis_client
    )
    q._consumer_name = "sync_worker_test"
    q._stream_config = q._get_stream_config()
    return q


class TestParseJob:

    def test_source_and_limit(self, queue):
        job = queue._parse_job("1-0", {"source_id": "src-1", "limit": "20", "queued_at": "1.0"})

        assert job.message_id == "1-0"
        assert job.source_id == "src-1"
        assert job.limit == 20
        assert job.retry_count == 0
        assert job.trace_fields == {}

    def test_empty_limit_is_none(self, queue):
        assert queue._parse_job("1-0", {"source_id": "src-1", "limit": ""}).limit is None

    def test_keeps_traceparent(self, queue):
        traceparent = "00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01"
        job = queue._parse_job("1-0", {"source_id": "src-1", "traceparent": traceparent})

        assert job.trace_fields == {"traceparent": traceparent}

    @pytest.mark.parametrize(
        "fields",
        [{}, {"source_id": ""}, {"source_id": "s", "limit": "0"}, {"source_id": "s", "limit": "x"}],
    )
    def test_invalid_fields_raise(self, queue, fields):
        with pytest.raises((KeyError, ValueError)):
            queue._parse_job("1-0", fields)


class TestPublish:

    @pytest.mark.asyncio
    async def test_publish(self, queue, redis_client):
        message_id = await queue.publish("src-1", limit=20)

        assert message_id == "1700000000000-0"
        kwargs = redis_client.xadd.call_args.kwargs
        assert kwargs["name"] == "sync_jobs"
        assert kwargs["fields"]["source_id"] == "src-1"
        assert kwargs["fields"]["limit"] == "20"
        assert "queued_at" in kwargs["fields"]
        assert kwargs["maxlen"] == 10_000

    @pytest.mark.asyncio
    async def test_publish_without_limit(self, queue, redis_client):
        await queue.publish("src-1")
        assert redis_client.xadd.call_args.kwargs["fields"]["limit"] == ""

    @pytest.mark.asyncio
    async def test_publish_batch(self, queue, redis_client):
        ids = await queue.publish_batch(["src-1", "src-2"])

        assert ids == ["1-0", "2-0"]
        pipe = redis_client.pipeline.return_value
        assert [c.kwargs["fields"]["source_id"] for c in pipe.xadd.call_args_list] == [
            "src-1",
            "src-2",
        ]

    @pytest.mark.asyncio
    async def test_publish_batch_empty(self, queue, redis_client):
        assert await queue.publish_batch([]) == []
        redis_client.pipeline.assert_not_called()

    def test_retry_count_from_deliveries(self, queue):
        job = queue._parse_job("1-0", {"source_id": "src-1"}, retry_count=2)
        assert job.retry_count == 2
