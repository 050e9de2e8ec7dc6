"""Execute queries and shape their results.

The read functions unwrap single-column results: when a result has exactly
one field, each row is replaced by the value of that field. An optional
``row_parser`` is then applied to every returned row.
"""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from sqltag.domain.exceptions import ResultError
from sqltag.domain.query import Query
from sqltag.infrastructure.data_access.connection import Pool, QueryRunner
from sqltag.infrastructure.data_access.query_result import QueryResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

RowParser = Callable[[Any], T]


async def many(
    runner: QueryRunner,
    query: Query,
    row_parser: RowParser | None = None,
) -> list[Any]:
    """Execute a ``SELECT`` or other query that returns zero or more rows.

    Args:
        runner: A pool or a connection checked out from a pool
        query: Query built with :func:`~sqltag.domain.composer.sql`
        row_parser: Optional function applied to each (unwrapped) row

    Returns:
        All rows
    """
    _check_row_parser(row_parser)
    result = await _send(runner, query)
    rows = _unwrap(result)
    if row_parser is None:
        return rows
    return [row_parser(row) for row in rows]


async def one(
    runner: QueryRunner,
    query: Query,
    row_parser: RowParser | None = None,
) -> Any:
    """Execute a ``SELECT`` or other query that returns exactly one row.

    Args:
        runner: A pool or a connection checked out from a pool
        query: Query built with :func:`~sqltag.domain.composer.sql`
        row_parser: Optional function applied to the (unwrapped) row

    Returns:
        The only row

    Raises:
        ResultError: If the query does not return exactly one row
    """
    _check_row_parser(row_parser)
    result = await _send(runner, query)
    count = len(result.rows)

    if count != 1:
        raise ResultError(
            f"Expected query to return exactly 1 row, got {count}", query
        )

    return _parse(_unwrap(result)[0], row_parser)


async def maybe_one(
    runner: QueryRunner,
    query: Query,
    row_parser: RowParser | None = None,
) -> Any | None:
    """Execute a ``SELECT`` or other query that returns zero or one rows.

    Args:
        runner: A pool or a connection checked out from a pool
        query: Query built with :func:`~sqltag.domain.composer.sql`
        row_parser: Optional function applied to the (unwrapped) row

    Returns:
        The row, or None if the query returned nothing. A single-column row
        holding NULL is also unwrapped to None, so select more than one
        column (or use :func:`many`) when the two cases must be told apart.

    Raises:
        ResultError: If the query returns more than one row
    """
    _check_row_parser(row_parser)
    result = await _send(runner, query)
    count = len(result.rows)

    if count > 1:
        raise ResultError(
            f"Expected query to return 1 row at most, got {count}", query
        )
    if count == 0:
        return None

    return _parse(_unwrap(result)[0], row_parser)


async def execute(runner: QueryRunner, query: Query) -> int:
    """Execute an ``INSERT``, ``UPDATE``, ``DELETE`` or other statement.

    Args:
        runner: A pool or a connection checked out from a pool
        query: Query built with :func:`~sqltag.domain.composer.sql`

    Returns:
        Number of rows affected
    """
    result = await _send(runner, query)
    return result.row_count or 0


async def execute_one(runner: QueryRunner, query: Query) -> int:
    """Execute a statement that must affect exactly one row.

    Meant for use inside :func:`~sqltag.application.transaction.with_transaction`,
    where the raised error rolls the statement back.

    Returns:
        Number of rows affected (always 1)

    Raises:
        TypeError: If called with a pool instead of a transaction connection
        ResultError: If the statement does not affect exactly one row
    """
    _require_connection(runner, "execute_one")
    count = await execute(runner, query)
    if count != 1:
        raise ResultError(
            f"Expected query to affect exactly 1 row, got {count}", query
        )
    return count


async def execute_maybe_one(runner: QueryRunner, query: Query) -> int:
    """Execute a statement that may affect at most one row.

    Meant for use inside a transaction, like :func:`execute_one`.

    Returns:
        Number of rows affected (0 or 1)

    Raises:
        TypeError: If called with a pool instead of a transaction connection
        ResultError: If the statement affects more than one row
    """
    _require_connection(runner, "execute_maybe_one")
    count = await execute(runner, query)
    if count > 1:
        raise ResultError(
            f"Expected query to affect 1 row at most, got {count}", query
        )
    return count


async def _send(runner: QueryRunner, query: Query) -> QueryResult:
    # Only composed queries keep SQL text and values apart.
    if not isinstance(query, Query):
        raise TypeError(
            "The query was not constructed with the `sql` builder"
        )

    logger.debug(f"Executing query: {query.text} ({len(query.values)} parameters)")
    return await runner.execute(
        query.text, query.values, prepared_name=query.prepared_name
    )


def _unwrap(result: QueryResult) -> list[Any]:
    if len(result.fields) != 1:
        return list(result.rows)
    name = result.fields[0].name
    return [row[name] for row in result.rows]


def _parse(row: Any, row_parser: RowParser | None) -> Any:
    return row if row_parser is None else row_parser(row)


def _check_row_parser(row_parser: RowParser | None) -> None:
    if row_parser is not None and not callable(row_parser):
        raise TypeError(f"Invalid row parser: {row_parser!r}")


def _require_connection(runner: QueryRunner, name: str) -> None:
    if isinstance(runner, Pool):
        raise TypeError(
            f"{name} can only be used with a connection inside a transaction"
        )
