"""Transaction and savepoint management with retry on conflicts.

Usage:
    async def transfer(tx):
        await execute_one(tx, sql("UPDATE account SET ... WHERE id = {}", a))
        await execute_one(tx, sql("UPDATE account SET ... WHERE id = {}", b))

    await with_transaction(pool, transfer, TransactionOptions(
        isolation_level=IsolationLevel.SERIALIZABLE,
    ))

The unit of work receives the transaction's connection. When it returns the
transaction is committed; when it raises, the transaction is rolled back and
the error is either retried or re-raised unchanged.
"""

import asyncio
import inspect
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from sqltag.domain.exceptions import (
    RETRYABLE_ERROR_CODES,
    SqlState,
    get_error_code,
)
from sqltag.domain.query import escape_identifier
from sqltag.infrastructure.data_access.connection import Connection, Pool
from sqltag.infrastructure.data_access.exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)


Work = Callable[[Connection], Any]


class IsolationLevel(str, Enum):
    """Transaction isolation levels."""

    DEFAULT = "DEFAULT"
    SERIALIZABLE = "SERIALIZABLE"
    REPEATABLE_READ = "REPEATABLE READ"
    READ_COMMITTED = "READ COMMITTED"


class AccessMode(str, Enum):
    """Transaction access modes."""

    DEFAULT = "DEFAULT"
    READ_WRITE = "READ WRITE"
    READ_ONLY = "READ ONLY"


def is_retryable_error(error: BaseException) -> bool:
    """Check if an error is a serialization failure or a deadlock."""
    return get_error_code(error) in RETRYABLE_ERROR_CODES


def retry_on(*codes: str) -> Callable[[BaseException], bool]:
    """Build a retry predicate matching the given database error codes.

    Args:
        *codes: Error codes (SQLSTATE for PostgreSQL) that allow a retry

    Returns:
        Predicate suitable for ``TransactionOptions.should_retry``
    """
    retryable = frozenset(codes)

    def should_retry(error: BaseException) -> bool:
        return get_error_code(error) in retryable

    return should_retry


@dataclass(frozen=True)
class TransactionOptions:
    """How a transaction is started and when it is retried.

    Attributes:
        isolation_level: Isolation level appended to ``BEGIN``
        access_mode: Access mode appended to ``BEGIN``
        max_retries: How many times a failed transaction may be re-run
        should_retry: Predicate deciding whether an error is retryable;
            defaults to :func:`is_retryable_error`
    """

    isolation_level: IsolationLevel = IsolationLevel.DEFAULT
    access_mode: AccessMode = AccessMode.DEFAULT
    max_retries: int = 2
    should_retry: Callable[[BaseException], bool] | None = None

    def __post_init__(self):
        try:
            isolation_level = IsolationLevel(self.isolation_level)
        except ValueError:
            raise TypeError(f"Invalid isolation level: {self.isolation_level!r}") from None
        try:
            access_mode = AccessMode(self.access_mode)
        except ValueError:
            raise TypeError(f"Invalid access mode: {self.access_mode!r}") from None

        if (
            not isinstance(self.max_retries, int)
            or isinstance(self.max_retries, bool)
            or self.max_retries < 0
        ):
            raise TypeError(f"Invalid max_retries: {self.max_retries!r}")
        if self.should_retry is not None and not callable(self.should_retry):
            raise TypeError(f"Invalid should_retry: {self.should_retry!r}")

        object.__setattr__(self, "isolation_level", isolation_level)
        object.__setattr__(self, "access_mode", access_mode)
        object.__setattr__(self, "should_retry", self.should_retry or is_retryable_error)

    @classmethod
    def from_config(cls, config_manager=None) -> "TransactionOptions":
        """Create options from the ``transaction`` configuration section.

        Args:
            config_manager: Configuration manager (uses global if None)

        Returns:
            TransactionOptions instance
        """
        if config_manager is None:
            from sqltag.config import get_config
            config_manager = get_config()

        section = config_manager.get_section("transaction")
        codes = section.get("retryable_error_codes")
        if isinstance(codes, (str, int)):
            codes = [codes]
        return cls(
            isolation_level=section.get("isolation_level", IsolationLevel.DEFAULT),
            access_mode=section.get("access_mode", AccessMode.DEFAULT),
            max_retries=section.get("max_retries", 2),
            should_retry=None if codes is None else retry_on(*map(str, codes)),
        )

    def begin_statement(self) -> str:
        """Build the ``BEGIN`` statement for these options."""
        statement = "BEGIN"
        if self.isolation_level is not IsolationLevel.DEFAULT:
            statement += f" ISOLATION LEVEL {self.isolation_level.value}"
        if self.access_mode is not AccessMode.DEFAULT:
            statement += f" {self.access_mode.value}"
        return statement


async def with_transaction(
    client: Pool | Connection,
    work: Work,
    options: TransactionOptions | None = None,
) -> Any:
    """Execute a unit of work within a transaction.

    Starts a transaction and calls ``work`` with the connection. If it
    returns, the transaction is committed and its result is returned. If it
    raises (or ``COMMIT`` fails), the transaction is rolled back; retryable
    errors re-run the whole transaction on the same connection up to
    ``options.max_retries`` times, other errors are re-raised unchanged.

    Args:
        client: A pool, or a connection already checked out from a pool
        work: Function receiving the connection; may be a coroutine function
        options: Transaction options (read from configuration if None)

    Returns:
        The value returned by ``work``

    Raises:
        TypeError: If client, work or options are invalid
    """
    if not callable(work):
        raise TypeError(f"Invalid unit of work: {work!r}")
    if options is None:
        options = TransactionOptions.from_config()
    elif not isinstance(options, TransactionOptions):
        raise TypeError(f"Invalid transaction options: {options!r}")

    if isinstance(client, Pool):
        connection = await client.acquire_connection()
        attempts = _TransactionAttempts(connection, options)
        try:
            return await attempts.run(work)
        finally:
            await connection.release(discard=not attempts.reusable)

    if isinstance(client, Connection):
        return await _TransactionAttempts(client, options).run(work)

    raise TypeError(f"Expected a Pool or a Connection, got {type(client).__name__}")


async def with_transaction_level(
    client: Pool | Connection,
    isolation_level: IsolationLevel,
    work: Work,
) -> Any:
    """Execute a unit of work within a transaction using an isolation level."""
    options = replace(TransactionOptions.from_config(), isolation_level=isolation_level)
    return await with_transaction(client, work, options)


async def with_transaction_mode(
    client: Pool | Connection,
    isolation_level: IsolationLevel,
    access_mode: AccessMode,
    work: Work,
) -> Any:
    """Execute a unit of work within a transaction using an isolation level
    and an access mode."""
    options = replace(
        TransactionOptions.from_config(),
        isolation_level=isolation_level,
        access_mode=access_mode,
    )
    return await with_transaction(client, work, options)


_savepoint_ids = itertools.count(1)


async def with_savepoint(connection: Connection, work: Work) -> Any:
    """Execute a unit of work within a savepoint of the current transaction.

    On error the work is rolled back to the savepoint and the error is
    re-raised, leaving earlier statements of the enclosing transaction intact.
    Savepoints can be nested; every call uses its own savepoint name.

    Args:
        connection: Connection with an active transaction
        work: Function receiving the connection; may be a coroutine function

    Returns:
        The value returned by ``work``

    Raises:
        TypeError: If called with a pool
    """
    if isinstance(connection, Pool) or not isinstance(connection, Connection):
        raise TypeError("with_savepoint requires a connection inside a transaction")
    if not callable(work):
        raise TypeError(f"Invalid unit of work: {work!r}")

    name = escape_identifier(f"sqltag_sp_{next(_savepoint_ids)}")
    await connection.execute(f"SAVEPOINT {name}")
    logger.debug(f"Created savepoint: {name}")

    try:
        result = await _call(work, connection)
    except Exception as error:
        # Nothing to roll back once the transaction itself is gone.
        if get_error_code(error) != SqlState.NO_ACTIVE_SQL_TRANSACTION.value:
            await connection.execute(f"ROLLBACK TO SAVEPOINT {name}")
            await connection.execute(f"RELEASE SAVEPOINT {name}")
            logger.debug(f"Rolled back to savepoint: {name}")
        raise

    await connection.execute(f"RELEASE SAVEPOINT {name}")
    logger.debug(f"Released savepoint: {name}")
    return result


class _TransactionAttempts:
    """Runs BEGIN/work/COMMIT attempts on one connection."""

    def __init__(self, connection: Connection, options: TransactionOptions):
        self.connection = connection
        self.options = options
        # True once the last attempt ended in a successful COMMIT or ROLLBACK.
        self.reusable = False
        self.broken = False

    async def run(self, work: Work) -> Any:
        begin_statement = self.options.begin_statement()
        retries_left = self.options.max_retries
        attempt = 1

        while True:
            self.reusable = False
            await self.connection.execute(begin_statement)
            logger.debug(f"Transaction started: {begin_statement} (attempt {attempt})")

            try:
                result = await self._run_work(work)
                await self.connection.execute("COMMIT")
            except Exception as error:
                if self.broken:
                    logger.error(f"Connection failed during transaction: {error}")
                    raise

                try:
                    await self.connection.execute("ROLLBACK")
                except Exception as rollback_error:
                    logger.error(f"Rollback failed after {type(error).__name__}: {rollback_error}")
                    raise
                self.reusable = True
                logger.debug(f"Transaction rolled back (attempt {attempt})")

                if retries_left > 0 and self.options.should_retry(error):
                    retries_left -= 1
                    attempt += 1
                    logger.info(
                        f"Retrying transaction after {type(error).__name__}: {error} "
                        f"({retries_left} retries left)"
                    )
                    continue
                raise

            self.reusable = True
            logger.debug(f"Transaction committed (attempt {attempt})")
            return result

    async def _run_work(self, work: Work) -> Any:
        channel = self.connection.error_channel()
        if channel is None:
            return await _call(work, self.connection)
        if channel.done():
            self.broken = True
            raise _channel_error(channel)

        task = asyncio.ensure_future(_call(work, self.connection))
        try:
            await asyncio.wait({task, channel}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task.done():
            return task.result()

        self.broken = True
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise _channel_error(channel)


async def _call(work: Work, connection: Connection) -> Any:
    result = work(connection)
    if inspect.isawaitable(result):
        result = await result
    return result


def _channel_error(channel: asyncio.Future) -> BaseException:
    if channel.cancelled() or channel.exception() is None:
        return DatabaseConnectionError("Connection closed unexpectedly")
    return channel.exception()
