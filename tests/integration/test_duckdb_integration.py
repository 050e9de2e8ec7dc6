"""Integration tests for the complete query workflow against DuckDB."""

import pytest

from sqltag import (
    Identifier,
    Json,
    ResultError,
    TransactionOptions,
    ValuesList,
    execute,
    execute_maybe_one,
    execute_one,
    many,
    maybe_one,
    one,
    sql,
    with_transaction,
)
from sqltag.config import ConfiguredComponentFactory

pytestmark = pytest.mark.integration

PETS = [
    {"id": 1, "name": "Rex", "age": 3},
    {"id": 2, "name": "Tom", "age": 5},
    {"id": 3, "name": "Kit", "age": 1},
]


async def insert_pets(runner, pets=PETS):
    return await execute(runner, sql("INSERT INTO pet (id, name, age) {}", ValuesList(pets)))


class TestQueryWorkflow:
    """Test building, running and shaping queries."""

    @pytest.mark.asyncio
    async def test_insert_and_read(self, duckdb_pool):
        """Test inserting a values list and reading it back."""
        assert await insert_pets(duckdb_pool) == 3

        rows = await many(duckdb_pool, sql("SELECT id, name, age FROM pet ORDER BY id"))

        assert rows == PETS

    @pytest.mark.asyncio
    async def test_single_column_and_row_parser(self, duckdb_pool):
        """Test unwrapping and row parsing on real results."""
        await insert_pets(duckdb_pool)

        names = await many(
            duckdb_pool, sql("SELECT name FROM pet WHERE age > {} ORDER BY name", 2), str.lower
        )
        count = await one(duckdb_pool, sql("SELECT count(*) FROM pet"))

        assert names == ["rex", "tom"]
        assert count == 3

    @pytest.mark.asyncio
    async def test_one_and_maybe_one(self, duckdb_pool):
        """Test row count checks on real results."""
        await insert_pets(duckdb_pool)

        pet = await one(duckdb_pool, sql("SELECT id, name FROM pet WHERE id = {}", 2))
        missing = await maybe_one(duckdb_pool, sql("SELECT name FROM pet WHERE id = {}", 99))

        assert pet == {"id": 2, "name": "Tom"}
        assert missing is None
        with pytest.raises(ResultError, match="exactly 1 row, got 3"):
            await one(duckdb_pool, sql("SELECT id FROM pet"))

    @pytest.mark.asyncio
    async def test_nested_queries_and_identifiers(self, duckdb_pool):
        """Test nested queries with identifiers run as one statement."""
        await insert_pets(duckdb_pool)
        older = sql("SELECT id FROM {} WHERE age >= {}", Identifier("pet"), 3)

        names = await many(
            duckdb_pool,
            sql("SELECT name FROM pet WHERE id IN ({}) AND name <> {} ORDER BY id", older, "Tom"),
        )

        assert names == ["Rex"]

    @pytest.mark.asyncio
    async def test_hostile_values_are_data(self, duckdb_pool):
        """Test values cannot change the statement."""
        hostile = "x'); DROP TABLE pet; --"
        await insert_pets(duckdb_pool, [{"id": 9, "name": hostile, "age": 0}])

        assert await one(duckdb_pool, sql("SELECT name FROM pet WHERE id = {}", 9)) == hostile

    @pytest.mark.asyncio
    async def test_json_value(self, duckdb_pool):
        """Test JSON values are bound as text."""
        document = await one(duckdb_pool, sql("SELECT {} AS doc", Json({"name": "Rex"})))

        assert document == '{"name":"Rex"}'


class TestTransactionWorkflow:
    """Test transactions on DuckDB connections."""

    @pytest.mark.asyncio
    async def test_commit(self, duckdb_pool):
        """Test committed work is visible afterwards."""

        async def work(tx):
            await insert_pets(tx)
            return await execute_one(tx, sql("UPDATE pet SET age = {} WHERE id = {}", 4, 1))

        assert await with_transaction(duckdb_pool, work, TransactionOptions()) == 1
        assert await one(duckdb_pool, sql("SELECT age FROM pet WHERE id = {}", 1)) == 4

    @pytest.mark.asyncio
    async def test_rollback(self, duckdb_pool):
        """Test failed work leaves no trace."""

        async def work(tx):
            await insert_pets(tx)
            await execute_one(tx, sql("DELETE FROM pet WHERE age > {}", 0))

        with pytest.raises(ResultError, match="affect exactly 1 row, got 3"):
            await with_transaction(duckdb_pool, work, TransactionOptions())

        assert await one(duckdb_pool, sql("SELECT count(*) FROM pet")) == 0

    @pytest.mark.asyncio
    async def test_uncommitted_work_is_isolated(self, duckdb_pool):
        """Test other connections do not see uncommitted rows."""

        async def work(tx):
            await insert_pets(tx)
            inside = await one(tx, sql("SELECT count(*) FROM pet"))
            outside = await one(duckdb_pool, sql("SELECT count(*) FROM pet"))
            return inside, outside

        assert await with_transaction(duckdb_pool, work, TransactionOptions()) == (3, 0)
        assert await one(duckdb_pool, sql("SELECT count(*) FROM pet")) == 3

    @pytest.mark.asyncio
    async def test_retry_starts_from_clean_state(self, duckdb_pool):
        """Test a retried transaction does not see the rolled back attempt."""
        attempts = []

        async def work(tx):
            attempts.append(await one(tx, sql("SELECT count(*) FROM pet")))
            await insert_pets(tx, PETS[:1])
            if len(attempts) == 1:
                raise RuntimeError("transient")
            return await execute_maybe_one(tx, sql("UPDATE pet SET name = {} WHERE id = {}", "Max", 1))

        options = TransactionOptions(should_retry=lambda error: isinstance(error, RuntimeError))

        assert await with_transaction(duckdb_pool, work, options) == 1
        assert attempts == [0, 0]
        assert await many(duckdb_pool, sql("SELECT name FROM pet")) == ["Max"]


class TestConfiguredPool:
    """Test pools built from configuration."""

    @pytest.mark.asyncio
    async def test_configured_duckdb_pool(self):
        """Test the packaged configuration yields a working pool."""
        pool = ConfiguredComponentFactory().create_duckdb_pool(":memory:")

        async with pool:
            assert await pool.ping() is True
            assert await one(pool, sql("SELECT {}::INTEGER * 2", 21)) == 42
