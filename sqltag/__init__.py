"""Safe, composable SQL query building and execution.

Usage:
    from sqltag import DuckDBPool, many, sql

    async with DuckDBPool(":memory:") as pool:
        names = await many(pool, sql("SELECT name FROM pet WHERE age > {}", 3))

The asyncpg adapter lives in :mod:`sqltag.infrastructure.postgres`.
"""

from sqltag.application import (
    AccessMode,
    IsolationLevel,
    TransactionOptions,
    execute,
    execute_maybe_one,
    execute_one,
    is_retryable_error,
    many,
    maybe_one,
    one,
    retry_on,
    with_savepoint,
    with_transaction,
    with_transaction_level,
    with_transaction_mode,
)
from sqltag.domain import (
    ConfigurationError,
    Identifier,
    Json,
    Query,
    ResultError,
    SqlState,
    SqlTagError,
    ValuesList,
    compose,
    escape_identifier,
    get_error_code,
    sql,
)
from sqltag.infrastructure.data_access import (
    Connection,
    DataAccessError,
    DatabaseConnectionError,
    Pool,
    QueryResult,
)
from sqltag.infrastructure.duckdb import DuckDBPool

__version__ = "0.1.0"

__all__ = [
    "sql",
    "compose",
    "Query",
    "Identifier",
    "Json",
    "ValuesList",
    "escape_identifier",
    "many",
    "one",
    "maybe_one",
    "execute",
    "execute_one",
    "execute_maybe_one",
    "with_transaction",
    "with_transaction_level",
    "with_transaction_mode",
    "with_savepoint",
    "TransactionOptions",
    "IsolationLevel",
    "AccessMode",
    "is_retryable_error",
    "retry_on",
    "Connection",
    "Pool",
    "QueryResult",
    "DuckDBPool",
    "SqlTagError",
    "ResultError",
    "ConfigurationError",
    "DataAccessError",
    "DatabaseConnectionError",
    "SqlState",
    "get_error_code",
]
