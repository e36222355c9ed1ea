"""In-memory fetch strategy over a fixed message list."""

from contentflow.fetchers.base import RawMessage, SourceFetchStrategy
from contentflow.sources.schemas import SourceType


class StaticFetchStrategy(SourceFetchStrategy):
    """
    Serves canned messages in the order given.

    Used for dry runs (``contentflow sync --mock``) and tests. Messages can
    be keyed per peer; ``messages`` alone applies to every peer.
    """

    def __init__(
        self,
        messages: list[RawMessage] | None = None,
        source_type: SourceType = SourceType.TELEGRAM,
        by_peer: dict[str, list[RawMessage]] | None = None,
        default_limit: int = 50,
    ) -> None:
        self._messages = list(messages or [])
        self._by_peer = dict(by_peer or {})
        self._source_type = source_type
        self._default_limit = default_limit
        self.calls: list[tuple[str, int | None]] = []

    @property
    def source_type(self) -> SourceType:
        return self._source_type

    async def fetch(self, peer: str, limit: int | None = None) -> list[RawMessage]:
        self.calls.append((peer, limit))
        batch = self._by_peer.get(peer, self._messages)
        return list(batch[: limit if limit is not None else self._default_limit])

    def set_messages(self, messages: list[RawMessage], peer: str | None = None) -> None:
        """Replace the canned batch, for every peer or for one."""
        if peer is None:
            self._messages = list(messages)
        else:
            self._by_peer[peer] = list(messages)
