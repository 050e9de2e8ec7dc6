"""Pytest configuration and shared fixtures for sqltag.

This module provides:
- Recording fakes for connections and pools used by the unit tests
- DuckDB fixtures for adapter and integration testing
- Configuration isolation for tests that touch the global config
"""

import asyncio
import os
from collections.abc import Sequence
from typing import Any

os.environ.setdefault("SQLTAG_ENVIRONMENT", "testing")

import pytest
import pytest_asyncio

from sqltag.infrastructure.data_access.connection import Connection, Pool
from sqltag.infrastructure.data_access.query_result import FieldInfo, QueryResult
from sqltag.infrastructure.duckdb import DuckDBConfig, DuckDBPool


class FakeDatabaseError(Exception):
    """Driver-style error carrying a SQLSTATE code."""

    def __init__(self, message: str, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


class FakeConnection(Connection):
    """Connection recording every statement it executes.

    Results are looked up by statement text; failures are scripted per
    statement text and raised in order, one per execution.
    """

    def __init__(self, channel: asyncio.Future | None = None):
        self.statements: list[str] = []
        self.calls: list[tuple[str, tuple, str | None]] = []
        self.results: dict[str, QueryResult] = {}
        self.failures: dict[str, list[BaseException]] = {}
        self.released: list[bool] = []
        self._channel = channel

    def set_rows(self, text: str, rows: list[dict], fields: Sequence[str] | None = None) -> None:
        names = list(fields) if fields is not None else (list(rows[0]) if rows else [])
        self.results[text] = QueryResult(
            rows=rows,
            row_count=len(rows),
            fields=[FieldInfo(name) for name in names],
        )

    def set_row_count(self, text: str, row_count: int | None) -> None:
        self.results[text] = QueryResult(rows=[], row_count=row_count)

    def fail(self, text: str, *errors: BaseException) -> None:
        self.failures.setdefault(text, []).extend(errors)

    async def execute(
        self,
        text: str,
        values: Sequence[Any] = (),
        *,
        prepared_name: str | None = None,
    ) -> QueryResult:
        self.statements.append(text)
        self.calls.append((text, tuple(values), prepared_name))
        pending = self.failures.get(text)
        if pending:
            raise pending.pop(0)
        return self.results.get(text, QueryResult(rows=[], row_count=0))

    async def release(self, discard: bool = False) -> None:
        self.released.append(discard)

    def error_channel(self) -> asyncio.Future | None:
        return self._channel


class FakePool(Pool):
    """Pool handing out a single FakeConnection."""

    def __init__(self, connection: FakeConnection):
        self.connection = connection
        self.acquired = 0
        self.connected = True

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def is_connected(self) -> bool:
        return self.connected

    async def acquire_connection(self) -> FakeConnection:
        self.acquired += 1
        return self.connection


@pytest.fixture
def db_error():
    """Factory for driver errors with a SQLSTATE code."""
    return FakeDatabaseError


@pytest.fixture
def connection_factory():
    """Factory for recording connections, optionally with an error channel."""
    return FakeConnection


@pytest.fixture
def pool_factory():
    """Factory for recording pools wrapping a given connection."""
    return FakePool


@pytest.fixture
def connection() -> FakeConnection:
    """Recording connection without an error channel."""
    return FakeConnection()


@pytest.fixture
def pool(connection) -> FakePool:
    """Recording pool handing out the ``connection`` fixture."""
    return FakePool(connection)


@pytest.fixture
def duckdb_config() -> DuckDBConfig:
    """Small DuckDB configuration for tests."""
    return DuckDBConfig(memory_limit="256MB", threads=1)


@pytest_asyncio.fixture
async def duckdb_pool(duckdb_config):
    """Connected in-memory DuckDB pool with an empty ``pet`` table."""
    pool = DuckDBPool(":memory:", config=duckdb_config)
    await pool.connect()
    await pool.execute("CREATE TABLE pet (id INTEGER, name VARCHAR, age INTEGER)")

    yield pool

    await pool.close()
