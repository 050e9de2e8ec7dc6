"""Query value model, template composer and error taxonomy."""

from .composer import QueryBuilder, compose, sql
from .exceptions import (
    ConfigurationError,
    ResultError,
    SqlState,
    SqlTagError,
    get_error_code,
)
from .query import (
    Identifier,
    Json,
    Parameter,
    Query,
    SqlFragment,
    ValuesList,
    escape_identifier,
)

__all__ = [
    # Query value model
    "Query",
    "SqlFragment",
    "Parameter",
    "Identifier",
    "Json",
    "ValuesList",
    "escape_identifier",

    # Composer
    "QueryBuilder",
    "compose",
    "sql",

    # Exceptions
    "SqlTagError",
    "ResultError",
    "ConfigurationError",
    "SqlState",
    "get_error_code",
]
