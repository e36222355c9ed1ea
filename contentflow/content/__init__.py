"""Content records and their repository."""

from contentflow.content.repository import ContentRepository
from contentflow.content.schemas import Content, ContentStatus

__all__ = ["Content", "ContentRepository", "ContentStatus"]
