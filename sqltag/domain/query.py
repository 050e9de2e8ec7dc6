"""Query value model.

Everything that can be interpolated into a query template is a
:class:`SqlFragment`. The set of fragment kinds is closed:

- :class:`Parameter` binds a value as one positional parameter. Plain Python
  values are wrapped in it automatically.
- :class:`Query` splices a previously composed query in place.
- :class:`Identifier` splices an escaped identifier as literal text.
- :class:`Json` binds the JSON text of a value as one parameter.
- :class:`ValuesList` expands records into a ``VALUES (...), (...)`` literal.

Each fragment writes itself into a :class:`~sqltag.domain.composer.QueryBuilder`
through ``_write``, which only the composer calls.
"""

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqltag.domain.composer import QueryBuilder


def escape_identifier(name: str) -> str:
    """Escape an identifier (table or column name) for PostgreSQL.

    Args:
        name: Raw identifier

    Returns:
        The identifier wrapped in double quotes with embedded quotes doubled

    Raises:
        TypeError: If name is not a string

    Examples:
        >>> escape_identifier("pet")
        '"pet"'
        >>> escape_identifier('a"b')
        '"a""b"'
    """
    if not isinstance(name, str):
        raise TypeError(f"Invalid identifier: {name!r}")
    return '"' + name.replace('"', '""') + '"'


class SqlFragment(ABC):
    """A value that knows how to write itself into a query being composed."""

    __slots__ = ()

    @abstractmethod
    def _write(self, builder: "QueryBuilder") -> None:
        """Append this fragment's text and parameters to the builder."""


def as_fragment(value: Any) -> SqlFragment:
    """Wrap plain values in a Parameter, leaving fragments untouched."""
    if isinstance(value, SqlFragment):
        return value
    return Parameter(value)


@dataclass(frozen=True)
class Parameter(SqlFragment):
    """A value bound verbatim as a positional parameter."""

    value: Any

    def _write(self, builder: "QueryBuilder") -> None:
        builder.add_parameter(self.value)


@dataclass(frozen=True)
class Query(SqlFragment):
    """An immutable, fully composed parameterized query.

    Queries are created by :func:`~sqltag.domain.composer.sql` or
    :func:`~sqltag.domain.composer.compose`. Besides the final text and values
    a query keeps the template segments and raw arguments it was composed
    from, so it can be expanded again with fresh placeholder numbers when it
    is nested inside another query.

    Attributes:
        text: SQL text with ``$1..$N`` placeholders
        values: Parameter values in placeholder order
        prepared_name: Optional prepared statement name hint
    """

    text: str
    values: tuple[Any, ...]
    _segments: tuple[str, ...] = field(repr=False, compare=False)
    _arguments: tuple[Any, ...] = field(repr=False, compare=False)
    prepared_name: str | None = None

    def prepare(self, name: str) -> "Query":
        """Return a copy of this query carrying a prepared statement name.

        Args:
            name: Name of the prepared statement

        Returns:
            A new Query; this one is left unchanged

        Raises:
            TypeError: If name is not a non-empty string
        """
        if not isinstance(name, str) or not name:
            raise TypeError(f"Invalid prepared statement name: {name!r}")
        return replace(self, prepared_name=name)

    def _write(self, builder: "QueryBuilder") -> None:
        builder.extend(self._segments, self._arguments)


@dataclass(frozen=True)
class Identifier(SqlFragment):
    """An SQL identifier spliced into the query text, not bound as a value."""

    name: str

    def __post_init__(self):
        if not isinstance(self.name, str):
            raise TypeError(f"Invalid identifier: {self.name!r}")

    @property
    def text(self) -> str:
        """The escaped identifier."""
        return escape_identifier(self.name)

    def _write(self, builder: "QueryBuilder") -> None:
        builder.append_text(self.text)


@dataclass(frozen=True)
class Json(SqlFragment):
    """A value bound as a single parameter holding its JSON text."""

    value: Any

    def dumps(self) -> str:
        """Serialize the wrapped value to compact JSON text."""
        return json.dumps(self.value, separators=(",", ":"))

    def _write(self, builder: "QueryBuilder") -> None:
        builder.add_parameter(self.dumps())


class ValuesList(SqlFragment):
    """An SQL ``VALUES`` list built from a sequence of records.

    Keys default to those of the first record, in its iteration order. Every
    record must contain every key; values are extracted when the list is
    created, so malformed input fails before any query runs.

    Example:
        >>> rows = ValuesList([{"a": 1, "b": 2}, {"a": 3, "b": 4}])
        >>> sql("SELECT a, b FROM ({}) AS t (a, b)", rows).text
        'SELECT a, b FROM (VALUES ($1, $2), ($3, $4)) AS t (a, b)'
    """

    __slots__ = ("keys", "rows")

    def __init__(self, records: Sequence[Mapping[str, Any]], *keys: str):
        """Initialize the values list.

        Args:
            records: Non-empty sequence of mappings
            *keys: Keys to take from each record, in column order

        Raises:
            TypeError: If records is not a sequence of mappings
            ValueError: If records is empty, no keys can be determined, or
                a record is missing one of the keys
        """
        if (
            isinstance(records, (str, bytes))
            or not isinstance(records, Sequence)
            or not all(isinstance(record, Mapping) for record in records)
        ):
            raise TypeError(
                "The first argument to ValuesList must be a sequence of mappings"
            )
        if not records:
            raise ValueError("The records sequence must be non-empty")

        if not keys:
            keys = tuple(records[0])
            if not keys:
                raise ValueError(
                    "The first record given to ValuesList must not be empty"
                )

        rows = []
        for index, record in enumerate(records):
            missing = [key for key in keys if key not in record]
            if missing:
                raise ValueError(
                    f"Record {index} is missing key(s): {', '.join(map(repr, missing))}"
                )
            rows.append(tuple(record[key] for key in keys))

        self.keys: tuple[str, ...] = tuple(keys)
        self.rows: tuple[tuple[Any, ...], ...] = tuple(rows)

    def _write(self, builder: "QueryBuilder") -> None:
        builder.append_text("VALUES ")
        for index, row in enumerate(self.rows):
            if index:
                builder.append_text(", ")
            builder.append_text("(")
            for position, value in enumerate(row):
                if position:
                    builder.append_text(", ")
                builder.add_parameter(value)
            builder.append_text(")")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValuesList):
            return NotImplemented
        return self.keys == other.keys and self.rows == other.rows

    def __repr__(self) -> str:
        return f"ValuesList(keys={self.keys!r}, rows={len(self.rows)})"
