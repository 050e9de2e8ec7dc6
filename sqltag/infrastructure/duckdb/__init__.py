"""DuckDB adapter for sqltag.

DuckDB understands ``$1``-style placeholders natively, which makes it a
convenient in-process database for running composed queries.
"""

from .config import DuckDBConfig
from .connection import DuckDBConnection, DuckDBPool

__all__ = [
    "DuckDBConfig",
    "DuckDBPool",
    "DuckDBConnection",
]
