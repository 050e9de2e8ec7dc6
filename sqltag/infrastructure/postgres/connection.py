"""PostgreSQL pool and connection implementations built on asyncpg."""

import asyncio
import logging
import time
from collections.abc import Sequence
from typing import Any

import asyncpg

from sqltag.infrastructure.data_access.connection import Connection, Pool
from sqltag.infrastructure.data_access.exceptions import DatabaseConnectionError
from sqltag.infrastructure.data_access.query_result import FieldInfo, QueryResult

logger = logging.getLogger(__name__)


def _parse_status(status: str | None) -> int | None:
    """Extract the row count from a command tag such as ``INSERT 0 2``."""
    if not status:
        return None
    last = status.rsplit(" ", 1)[-1]
    return int(last) if last.isdigit() else None


class AsyncpgPool(Pool):
    """asyncpg implementation of a connection pool."""

    def __init__(
        self,
        dsn: str | None = None,
        *,
        min_size: int = 1,
        max_size: int = 10,
        **connect_kwargs: Any,
    ):
        """Initialize the pool.

        Args:
            dsn: PostgreSQL connection string
            min_size: Minimum number of pooled connections
            max_size: Maximum number of pooled connections
            **connect_kwargs: Passed through to ``asyncpg.create_pool``
        """
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.connect_kwargs = connect_kwargs
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Create the asyncpg pool."""
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                **self.connect_kwargs,
            )
            logger.info(f"Connected to PostgreSQL (pool size {self.min_size}-{self.max_size})")
        except Exception as e:
            self._pool = None
            raise DatabaseConnectionError(f"Failed to connect to PostgreSQL: {str(e)}") from e

    async def close(self) -> None:
        """Close the pool and all its connections."""
        if self._pool is not None:
            try:
                await self._pool.close()
                logger.info("Disconnected from PostgreSQL")
            finally:
                self._pool = None

    async def is_connected(self) -> bool:
        """Check if the pool is open."""
        return self._pool is not None and not self._pool.is_closing()

    async def acquire_connection(self) -> "AsyncpgConnection":
        """Check out a connection from the asyncpg pool."""
        if self._pool is None:
            raise DatabaseConnectionError("PostgreSQL pool is not connected")
        raw = await self._pool.acquire()
        return AsyncpgConnection(raw, self._pool)


class AsyncpgConnection(Connection):
    """asyncpg implementation of a single connection.

    Connection termination is reported through :meth:`error_channel`, so a
    transaction in progress fails as soon as the server connection is lost.
    """

    def __init__(self, raw: asyncpg.Connection, pool: asyncpg.Pool | None = None):
        """Initialize connection.

        Args:
            raw: asyncpg connection
            pool: Pool the connection was acquired from, if any
        """
        self._raw = raw
        self._pool = pool
        self._released = False
        self._errors: asyncio.Future = asyncio.get_running_loop().create_future()
        self._raw.add_termination_listener(self._on_termination)

    def _on_termination(self, connection) -> None:
        if not self._errors.done():
            self._errors.set_exception(
                DatabaseConnectionError("PostgreSQL connection was terminated")
            )

    def error_channel(self) -> asyncio.Future:
        return self._errors

    async def execute(
        self,
        text: str,
        values: Sequence[Any] = (),
        *,
        prepared_name: str | None = None,
    ) -> QueryResult:
        """Execute one statement through a prepared statement.

        asyncpg caches prepared statements per connection by query text, so
        ``prepared_name`` is only used for logging.
        """
        if self._released:
            raise DatabaseConnectionError("Connection has already been released")

        start_time = time.perf_counter()
        statement = await self._raw.prepare(text)
        records = await statement.fetch(*values)
        execution_time = (time.perf_counter() - start_time) * 1000

        rows = [dict(record) for record in records]
        fields = [FieldInfo(attribute.name) for attribute in statement.get_attributes()]
        row_count = _parse_status(statement.get_statusmsg())

        label = f" [{prepared_name}]" if prepared_name else ""
        logger.debug(f"Statement{label} returned {len(rows)} rows in {execution_time:.2f}ms")
        return QueryResult(
            rows=rows,
            row_count=row_count,
            fields=fields,
            execution_time_ms=execution_time,
        )

    async def release(self, discard: bool = False) -> None:
        """Return the connection to the pool, terminating it first if discarded."""
        if self._released:
            return
        self._released = True
        self._raw.remove_termination_listener(self._on_termination)

        if self._errors.done():
            # Mark the error as retrieved; the connection is unusable.
            self._errors.exception()
            discard = True
        else:
            self._errors.cancel()

        try:
            if discard:
                self._raw.terminate()
            if self._pool is not None:
                await self._pool.release(self._raw)
            elif not discard:
                await self._raw.close()
        except Exception as e:
            logger.warning(f"Error releasing PostgreSQL connection: {str(e)}")
