"""
Shared asyncpg pool for the sources, content and vector tables.

All repositories go through the thin query helpers below so that they can
be tested against a mocked ``Database`` without a running PostgreSQL.
"""

import logging
from typing import Any

import asyncpg

from contentflow.config.settings import get_settings

logger = logging.getLogger(__name__)


class Database:
    """
    Owns one asyncpg pool per process.

    ``connect()`` is idempotent and also makes sure the ``vector`` extension
    exists, since the content vector index lives in the same database.

    Usage:
        async with Database() as db:
            row = await db.fetchrow("SELECT * FROM sources WHERE id = $1", sid)
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
        command_timeout: float | None = None,
    ):
        settings = get_settings()
        self._dsn = database_url or str(settings.database_url)
        self._pool_bounds = (
            min_size or settings.db_pool_min_size,
            max_size or settings.db_pool_max_size,
        )
        self._command_timeout = command_timeout or settings.db_command_timeout
        self._pool: asyncpg.Pool | None = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        if self._pool is not None:
            return

        low, high = self._pool_bounds
        try:
            pool = await asyncpg.create_pool(
                self._dsn,
                min_size=low,
                max_size=high,
                command_timeout=self._command_timeout,
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("Could not open database pool: %s", e)
            raise

        try:
            await pool.execute("CREATE EXTENSION IF NOT EXISTS vector")
        except asyncpg.PostgresError:
            await pool.close()
            raise

        self._pool = pool
        logger.info("Database pool open (%d-%d connections)", low, high)

    async def close(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("Database pool closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    # Pool-level helpers; each call borrows a connection for one statement.

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement and return its status tag (e.g. ``"UPDATE 1"``)."""
        return await self.pool.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        return await self.pool.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        return await self.pool.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        return await self.pool.fetchval(query, *args)

    async def health_check(self) -> bool:
        """True when a trivial query round-trips."""
        if self._pool is None:
            return False
        try:
            return await self._pool.fetchval("SELECT 1") == 1
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            logger.warning("Database health check failed: %s", e)
            return False
