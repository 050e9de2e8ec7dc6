"""Data access layer specific exceptions."""

from sqltag.domain.exceptions import SqlTagError


class DataAccessError(SqlTagError):
    """Base exception for errors raised by the bundled database adapters."""

    pass


class DatabaseConnectionError(DataAccessError):
    """Exception raised when a pool or connection is unavailable."""

    pass
