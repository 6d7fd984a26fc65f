"""Async PostgreSQL access to the host's relational store.

The reverse relation core never writes: it reads the relations, fields,
elements and group-membership tables the host maintains. This module
wraps an asyncpg pool behind the handful of read calls the repositories
need.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import asyncpg
from asyncpg import Connection, Pool, Record

from reverse_relations.db.exceptions import (
    ConnectionError,
    PoolExhaustedError,
    QueryError,
)

logger = logging.getLogger(__name__)


class Database:
    """Read-only async PostgreSQL access with connection pooling.

    Usage:
        db = Database(database_url)
        await db.connect()

        rows = await db.fetch(
            "SELECT id FROM relations WHERE target_id = $1", element_id
        )

        await db.close()
    """

    def __init__(
        self,
        database_url: str,
        min_pool_size: int = 2,
        max_pool_size: int = 10,
        command_timeout: float = 60.0,
    ):
        """Initialize database configuration.

        Args:
            database_url: PostgreSQL connection URL
            min_pool_size: Minimum connections to maintain
            max_pool_size: Maximum connections allowed
            command_timeout: Default query timeout in seconds
        """
        self._database_url = database_url
        self._min_pool_size = min_pool_size
        self._max_pool_size = max_pool_size
        self._command_timeout = command_timeout

        self._pool: Pool | None = None
        self._connect_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Open the connection pool.

        Raises:
            ConnectionError: If the store cannot be reached
        """
        async with self._connect_lock:
            if self._pool is not None:
                logger.debug("Database already connected")
                return

            try:
                logger.info("Connecting to PostgreSQL...")
                self._pool = await asyncpg.create_pool(
                    self._database_url,
                    min_size=self._min_pool_size,
                    max_size=self._max_pool_size,
                    command_timeout=self._command_timeout,
                    setup=self._setup_connection,
                )
                logger.info(
                    f"PostgreSQL connected (pool: {self._min_pool_size}-{self._max_pool_size})"
                )
            except asyncpg.PostgresError as e:
                raise ConnectionError("Failed to connect to PostgreSQL", cause=e) from e
            except OSError as e:
                raise ConnectionError(f"Unexpected error connecting: {e}", cause=e) from e

    async def _setup_connection(self, conn: Connection) -> None:
        """Return field settings (JSONB) as raw text; models parse them."""
        await conn.set_type_codec(
            "jsonb",
            encoder=lambda v: v,
            decoder=lambda v: v,
            schema="pg_catalog",
            format="text",
        )

    async def close(self) -> None:
        async with self._connect_lock:
            if self._pool:
                logger.info("Closing PostgreSQL connection pool...")
                await self._pool.close()
                self._pool = None

    def _ensure_connected(self) -> Pool:
        if self._pool is None:
            raise ConnectionError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def acquire(
        self,
        timeout: float | None = None,
    ) -> AsyncGenerator[Connection, None]:
        """Acquire a connection from the pool.

        Raises:
            PoolExhaustedError: If no connection frees up before ``timeout``
        """
        pool = self._ensure_connected()

        try:
            async with pool.acquire(timeout=timeout) as conn:
                yield conn
        except asyncio.TimeoutError as e:
            raise PoolExhaustedError(timeout) from e

    async def fetch(
        self,
        query: str,
        *args: Any,
        timeout: float | None = None,
    ) -> list[Record]:
        """Execute query and return all rows.

        Raises:
            QueryError: If query fails
        """
        async with self.acquire() as conn:
            try:
                return await conn.fetch(query, *args, timeout=timeout)
            except asyncpg.PostgresError as e:
                raise QueryError("Fetch failed", query=query, cause=e) from e

    async def fetchrow(
        self,
        query: str,
        *args: Any,
        timeout: float | None = None,
    ) -> Record | None:
        """Execute query and return the first row, or None."""
        async with self.acquire() as conn:
            try:
                return await conn.fetchrow(query, *args, timeout=timeout)
            except asyncpg.PostgresError as e:
                raise QueryError("Fetchrow failed", query=query, cause=e) from e

    async def fetchval(
        self,
        query: str,
        *args: Any,
        column: int = 0,
        timeout: float | None = None,
    ) -> Any:
        """Execute query and return a single value from the first row."""
        async with self.acquire() as conn:
            try:
                return await conn.fetchval(query, *args, column=column, timeout=timeout)
            except asyncpg.PostgresError as e:
                raise QueryError("Fetchval failed", query=query, cause=e) from e

    async def health_check(self) -> bool:
        try:
            return await self.fetchval("SELECT 1") == 1
        except (ConnectionError, QueryError) as e:
            logger.error(f"Health check failed: {e}")
            return False


def create_database_from_settings() -> Database | None:
    """Create a Database from application settings.

    Returns:
        Database instance if database_url is configured, None otherwise
    """
    from reverse_relations.config.settings import get_settings

    settings = get_settings()
    if not settings.database_url:
        return None

    return Database(
        settings.database_url,
        min_pool_size=settings.db_pool_min,
        max_pool_size=settings.db_pool_max,
        command_timeout=settings.db_command_timeout,
    )
