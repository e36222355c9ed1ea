"""Storage layer for PostgreSQL connection management."""

from contentflow.storage.database import Database

__all__ = ["Database"]
