"""Unit tests for exceptions and database error codes."""

from types import SimpleNamespace

import pytest

from sqltag.domain.composer import sql
from sqltag.domain.exceptions import (
    RETRYABLE_ERROR_CODES,
    ConfigurationError,
    ResultError,
    SqlState,
    SqlTagError,
    get_error_code,
)
from sqltag.infrastructure.data_access.exceptions import DataAccessError, DatabaseConnectionError


class TestExceptionHierarchy:
    """Test exception inheritance."""

    @pytest.mark.parametrize(
        "error_class",
        [ResultError, ConfigurationError, DataAccessError, DatabaseConnectionError],
    )
    def test_errors_derive_from_base(self, error_class):
        """Test every sqltag error derives from SqlTagError."""
        assert issubclass(error_class, SqlTagError)

    def test_result_error_carries_query(self):
        """Test ResultError keeps the offending query."""
        query = sql("SELECT {}", 1)
        error = ResultError("Expected query to return exactly 1 row, got 0", query)

        assert error.query is query
        assert str(error) == "Expected query to return exactly 1 row, got 0"


class TestErrorCodes:
    """Test reading driver error codes."""

    def test_retryable_codes(self):
        """Test serialization failures and deadlocks are retryable."""
        assert RETRYABLE_ERROR_CODES == {"40001", "40P01"}
        assert SqlState.NO_ACTIVE_SQL_TRANSACTION.value not in RETRYABLE_ERROR_CODES

    @pytest.mark.parametrize("attribute", ["sqlstate", "pgcode", "code"])
    def test_code_attributes(self, attribute):
        """Test the common driver attributes are recognized."""
        error = Exception("boom")
        setattr(error, attribute, "40001")

        assert get_error_code(error) == "40001"

    def test_sqlstate_takes_precedence(self):
        """Test sqlstate is preferred over code."""
        error = SimpleNamespace(sqlstate="40P01", code="XX000")

        assert get_error_code(error) == "40P01"

    def test_non_string_codes_are_ignored(self):
        """Test numeric driver codes are not SQLSTATEs."""
        assert get_error_code(SimpleNamespace(code=1045)) is None

    def test_error_without_code(self):
        """Test plain exceptions have no code."""
        assert get_error_code(ValueError("boom")) is None
