"""Sources: registered upstream origins of content."""

from contentflow.sources.repository import SourcesRepository
from contentflow.sources.schemas import Source, SourceType

__all__ = [
    "Source",
    "SourceType",
    "SourcesRepository",
]
