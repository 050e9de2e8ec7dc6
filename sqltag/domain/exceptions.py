"""Exceptions raised by sqltag and the database error codes it reacts to."""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqltag.domain.query import Query


class SqlTagError(Exception):
    """Base exception for all errors originating in sqltag."""

    pass


class ResultError(SqlTagError):
    """Raised when a query returns or affects an unexpected number of rows.

    Attributes:
        query: The query whose result did not match the expected row count
    """

    def __init__(self, message: str, query: "Query"):
        super().__init__(message)
        self.query = query


class ConfigurationError(SqlTagError):
    """Raised when configuration loading or validation fails."""

    pass


class SqlState(str, Enum):
    """PostgreSQL SQLSTATE codes with special meaning for transactions."""

    SERIALIZATION_FAILURE = "40001"
    DEADLOCK_DETECTED = "40P01"
    NO_ACTIVE_SQL_TRANSACTION = "25P01"


RETRYABLE_ERROR_CODES = frozenset(
    {SqlState.SERIALIZATION_FAILURE.value, SqlState.DEADLOCK_DETECTED.value}
)


def get_error_code(error: BaseException) -> str | None:
    """Get the machine-readable error code reported by a database driver.

    asyncpg and psycopg 3 expose ``sqlstate``, psycopg2 exposes ``pgcode``
    and most other drivers use ``code``.

    Args:
        error: Exception raised by a driver

    Returns:
        The error code, or None if the error carries no string code
    """
    for attribute in ("sqlstate", "pgcode", "code"):
        code = getattr(error, attribute, None)
        if isinstance(code, str):
            return code
    return None
