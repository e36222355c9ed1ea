"""
Telegram fetch strategy.

Talks to the parser service, which holds the MTProto sessions, and maps the
returned message objects onto RawMessage. Only ``id``, ``message`` and
``date`` are interpreted; the full object is kept as the raw payload.
"""

from typing import Any

import structlog

from contentflow.fetchers.base import RawMessage, SourceFetchStrategy
from contentflow.fetchers.config import FetcherConfig
from contentflow.fetchers.http_client import HTTPClient, HTTPClientError, RetryConfig
from contentflow.pipeline.errors import FetchFailedError
from contentflow.sources.schemas import SourceType

logger = structlog.get_logger(__name__)


def parse_telegram_message(payload: dict[str, Any]) -> RawMessage | None:
    """Map one parser-service message object to a RawMessage.

    Returns None for objects without an integer id (service messages the
    parser failed to classify).
    """
    message_id = payload.get("id")
    if isinstance(message_id, bool) or not isinstance(message_id, int):
        return None

    body = payload.get("message")
    date = payload.get("date")
    return RawMessage(
        id=message_id,
        body=body if isinstance(body, str) else None,
        origin_unix_seconds=int(date) if isinstance(date, (int, float)) else None,
        raw=payload,
    )


class TelegramFetchStrategy(SourceFetchStrategy):
    """
    Fetch recent channel messages through the parser service.

    Request: ``POST {parser_url}{telegram_messages_path}`` with
    ``{"peer": ..., "limit": ..., "offsetId": 0}``. The response is either a
    JSON list of messages or an envelope with the list under ``data`` or
    ``messages``.
    """

    def __init__(
        self,
        base_url: str,
        config: FetcherConfig | None = None,
        http_client: HTTPClient | None = None,
    ) -> None:
        self._config = config or FetcherConfig()
        self._url = base_url.rstrip("/") + self._config.telegram_messages_path
        self._http = http_client or HTTPClient(
            retry_config=RetryConfig(
                max_retries=self._config.max_retries,
                max_backoff_seconds=self._config.max_backoff_seconds,
            ),
            timeout=self._config.timeout,
        )

    @property
    def source_type(self) -> SourceType:
        return SourceType.TELEGRAM

    @property
    def default_limit(self) -> int:
        return self._config.telegram_default_limit

    async def fetch(self, peer: str, limit: int | None = None) -> list[RawMessage]:
        body: dict[str, Any] = {
            "peer": peer,
            "limit": limit if limit is not None else self.default_limit,
            "offsetId": 0,
        }
        if self._config.session_name:
            body["sessionName"] = self._config.session_name

        try:
            response = await self._http.post(self._url, json_body=body)
            data = response.json()
        except HTTPClientError as e:
            raise FetchFailedError(
                f"Parser service request for {peer} failed: {e}"
            ) from e
        except ValueError as e:
            raise FetchFailedError(f"Parser service returned invalid JSON: {e}") from e

        items = self._unwrap(data)
        messages = []
        for item in items:
            msg = parse_telegram_message(item) if isinstance(item, dict) else None
            if msg is None:
                logger.warning("Skipping malformed telegram message", peer=peer)
                continue
            messages.append(msg)

        logger.debug("Fetched telegram messages", peer=peer, count=len(messages))
        return messages

    @staticmethod
    def _unwrap(data: Any) -> list:
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in ("data", "messages"):
                if isinstance(data.get(key), list):
                    return data[key]
        raise FetchFailedError("Parser service response has no message list")

    async def close(self) -> None:
        await self._http.close()
