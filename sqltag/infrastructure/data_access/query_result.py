"""Query result abstractions shared by all database adapters."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class FieldInfo:
    """Metadata for one column of a result set."""

    name: str


@dataclass(frozen=True)
class QueryResult:
    """Represents the result of executing one statement.

    Provides a consistent interface for query results regardless
    of the underlying database driver.
    """

    rows: list[dict[str, Any]]
    row_count: int | None
    fields: list[FieldInfo] = field(default_factory=list)
    execution_time_ms: float | None = None

    @property
    def column_names(self) -> list[str]:
        """Names of the result columns, in order."""
        return [f.name for f in self.fields]

    def is_empty(self) -> bool:
        """Check if the statement returned no rows.

        Returns:
            bool: True if no rows returned
        """
        return not self.rows
