"""Data access abstractions.

This module defines the small contract sqltag uses to talk to a database
driver, so that drivers can be swapped without touching the query layer.
"""

from .connection import Connection, Pool, QueryRunner
from .exceptions import DataAccessError, DatabaseConnectionError
from .query_result import FieldInfo, QueryResult

__all__ = [
    # Core database abstractions
    "QueryRunner",
    "Connection",
    "Pool",
    "QueryResult",
    "FieldInfo",

    # Exceptions
    "DataAccessError",
    "DatabaseConnectionError",
]
