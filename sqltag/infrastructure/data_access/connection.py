"""Database connection and pool abstractions.

These are the only operations sqltag needs from a database driver. The
bundled DuckDB and asyncpg adapters implement them, and any other driver can
be plugged in the same way.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from .query_result import QueryResult

logger = logging.getLogger(__name__)


class QueryRunner(ABC):
    """Anything a single statement can be executed on."""

    @abstractmethod
    async def execute(
        self,
        text: str,
        values: Sequence[Any] = (),
        *,
        prepared_name: str | None = None,
    ) -> QueryResult:
        """Execute one statement with positional parameters.

        Args:
            text: SQL text with ``$1..$N`` placeholders
            values: Parameter values in placeholder order
            prepared_name: Optional prepared statement name hint

        Returns:
            QueryResult containing rows, row count and field metadata

        Raises:
            Exception: Driver errors propagate unchanged
        """
        pass


class Connection(QueryRunner):
    """A single database connection, usually checked out from a pool.

    Statements on one connection must be awaited one after another.
    """

    @abstractmethod
    async def release(self, discard: bool = False) -> None:
        """Return the connection to its pool.

        Args:
            discard: Close the connection instead of reusing it
        """
        pass

    def error_channel(self) -> asyncio.Future | None:
        """Get a future that fails when the connection breaks out of band.

        Returns:
            A future that never completes normally, or None if the driver
            does not report asynchronous connection errors
        """
        return None


class Pool(QueryRunner):
    """A pool of database connections.

    Usage:
        async with DuckDBPool(":memory:") as pool:
            pets = await many(pool, sql("SELECT * FROM pet"))
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the pool.

        Raises:
            DatabaseConnectionError: If the database cannot be reached
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the pool and all its connections.

        Should be idempotent - safe to call multiple times.
        """
        pass

    @abstractmethod
    async def is_connected(self) -> bool:
        """Check if the pool is open.

        Returns:
            bool: True if connections can be acquired
        """
        pass

    @abstractmethod
    async def acquire_connection(self) -> Connection:
        """Check out a connection from the pool.

        Returns:
            Connection that must be released exactly once

        Raises:
            DatabaseConnectionError: If the pool is not open
        """
        pass

    async def execute(
        self,
        text: str,
        values: Sequence[Any] = (),
        *,
        prepared_name: str | None = None,
    ) -> QueryResult:
        """Execute one statement on a temporarily acquired connection."""
        connection = await self.acquire_connection()
        try:
            return await connection.execute(text, values, prepared_name=prepared_name)
        finally:
            await connection.release()

    async def ping(self) -> bool:
        """Ping the database to verify connectivity.

        Returns:
            bool: True if database responds, False otherwise
        """
        if not await self.is_connected():
            return False

        try:
            result = await self.execute("SELECT 1")
            return bool(result.rows)
        except Exception as e:
            logger.warning(f"Database ping failed: {str(e)}")
            return False

    async def __aenter__(self) -> "Pool":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()
