"""DuckDB pool and connection implementations.

DuckDB runs in-process, so the "pool" is one database handle and every
acquired connection is a cursor on it. Cursors have their own transaction
context, which gives each transaction an isolated connection.
"""

import logging
import re
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import duckdb
from duckdb import DuckDBPyConnection

from sqltag.infrastructure.data_access.connection import Connection, Pool
from sqltag.infrastructure.data_access.exceptions import DatabaseConnectionError
from sqltag.infrastructure.data_access.query_result import FieldInfo, QueryResult
from .config import DuckDBConfig

logger = logging.getLogger(__name__)

# DuckDB reports affected rows of these statements as a single "Count" row.
# WITH covers INSERT, UPDATE and DELETE behind a CTE prefix.
_COUNTED_STATEMENTS = frozenset({"INSERT", "UPDATE", "DELETE", "WITH"})
_LEADING_NOISE = re.compile(r"(?:\s+|;|\(|--[^\n]*|/\*.*?\*/)*", re.DOTALL)
_KEYWORD = re.compile(r"[A-Za-z]+")


def _first_keyword(text: str) -> str:
    """Get the first keyword of a statement, skipping comments and parentheses."""
    match = _KEYWORD.match(text, _LEADING_NOISE.match(text).end())
    return match.group(0).upper() if match else ""


class DuckDBPool(Pool):
    """DuckDB implementation of a connection pool."""

    def __init__(self, database_path: str = ":memory:", config: DuckDBConfig | None = None):
        """Initialize DuckDB pool.

        Args:
            database_path: Path to DuckDB database file, or ":memory:"
            config: DuckDB configuration settings (uses defaults if None)
        """
        self.database_path = database_path
        self.config = config or DuckDBConfig.from_environment()
        self._database: DuckDBPyConnection | None = None

    async def connect(self) -> None:
        """Open the DuckDB database."""
        try:
            if self.database_path != ":memory:":
                Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

            self._database = duckdb.connect(
                database=self.database_path,
                read_only=self.config.read_only,
            )
            self._configure_database()
            logger.info(f"Connected to DuckDB database: {self.database_path}")

        except Exception as e:
            self._database = None
            raise DatabaseConnectionError(f"Failed to connect to DuckDB: {str(e)}") from e

    async def close(self) -> None:
        """Close the DuckDB database."""
        if self._database is not None:
            try:
                self._database.close()
                logger.info("Disconnected from DuckDB database")
            except Exception as e:
                logger.warning(f"Error during disconnect: {str(e)}")
            finally:
                self._database = None

    async def is_connected(self) -> bool:
        """Check if the database is open."""
        return self._database is not None

    async def acquire_connection(self) -> "DuckDBConnection":
        """Open a new cursor on the database."""
        if self._database is None:
            raise DatabaseConnectionError("DuckDB pool is not connected")
        return DuckDBConnection(self._database.cursor())

    def _configure_database(self) -> None:
        for setting in self.config.get_connection_settings():
            try:
                self._database.execute(setting)
            except Exception as setting_error:
                # Log individual setting failures but continue with others
                logger.warning(f"Configuration setting failed: {setting} - {str(setting_error)}")

        logger.debug(f"DuckDB database configured: {self.config}")


class DuckDBConnection(Connection):
    """DuckDB implementation of a single connection."""

    def __init__(self, cursor: DuckDBPyConnection):
        """Initialize connection.

        Args:
            cursor: DuckDB cursor owned by this connection
        """
        self._cursor: DuckDBPyConnection | None = cursor

    async def execute(
        self,
        text: str,
        values: Sequence[Any] = (),
        *,
        prepared_name: str | None = None,
    ) -> QueryResult:
        """Execute one statement; ``prepared_name`` is ignored by DuckDB."""
        if self._cursor is None:
            raise DatabaseConnectionError("Connection has already been released")

        start_time = time.perf_counter()
        if values:
            self._cursor.execute(text, list(values))
        else:
            self._cursor.execute(text)

        description = self._cursor.description
        column_names = [desc[0] for desc in description] if description else []
        raw_rows = self._cursor.fetchall() if description else []
        execution_time = (time.perf_counter() - start_time) * 1000

        if _first_keyword(text) in _COUNTED_STATEMENTS and column_names == ["Count"]:
            affected_rows = raw_rows[0][0] if raw_rows else 0
            logger.debug(f"Statement affected {affected_rows} rows in {execution_time:.2f}ms")
            return QueryResult(
                rows=[],
                row_count=affected_rows,
                fields=[],
                execution_time_ms=execution_time,
            )

        rows = [dict(zip(column_names, row)) for row in raw_rows]
        logger.debug(f"Query returned {len(rows)} rows in {execution_time:.2f}ms")
        return QueryResult(
            rows=rows,
            row_count=len(rows),
            fields=[FieldInfo(name) for name in column_names],
            execution_time_ms=execution_time,
        )

    async def release(self, discard: bool = False) -> None:
        """Close the cursor.

        Cursors are never reused, so releasing and discarding are the same.
        """
        if self._cursor is None:
            return
        try:
            self._cursor.close()
        except Exception as e:
            logger.warning(f"Error closing DuckDB cursor: {str(e)}")
        finally:
            self._cursor = None
