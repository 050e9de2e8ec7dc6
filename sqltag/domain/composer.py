"""Template composer turning SQL templates into flat parameterized queries."""

from collections.abc import Sequence
from string import Formatter
from typing import Any

from .query import Query, as_fragment

_formatter = Formatter()


class QueryBuilder:
    """Accumulates query text and parameter values during composition.

    Placeholders are numbered from the number of values bound so far, so
    nested queries expanded into the same builder continue one global
    ``$1..$N`` sequence.
    """

    def __init__(self):
        self._chunks: list[str] = []
        self._values: list[Any] = []

    def append_text(self, text: str) -> None:
        """Append literal SQL text."""
        self._chunks.append(text)

    def add_parameter(self, value: Any) -> None:
        """Append a fresh placeholder and bind a value to it."""
        self._values.append(value)
        self._chunks.append(f"${len(self._values)}")

    def extend(self, segments: Sequence[str], arguments: Sequence[Any]) -> None:
        """Expand a template: segments interleaved with interpolated arguments."""
        self._chunks.append(segments[0])
        for argument, trailing in zip(arguments, segments[1:]):
            as_fragment(argument)._write(self)
            self._chunks.append(trailing)

    def build(self, segments: Sequence[str], arguments: Sequence[Any]) -> Query:
        """Compose a template into a Query."""
        self.extend(segments, arguments)
        return Query(
            text="".join(self._chunks),
            values=tuple(self._values),
            _segments=tuple(segments),
            _arguments=tuple(arguments),
        )


def compose(segments: Sequence[str], values: Sequence[Any]) -> Query:
    """Compose literal segments and interpolated values into a Query.

    Args:
        segments: Literal SQL text segments, one more than there are values
        values: Values interpolated between consecutive segments

    Returns:
        The composed query

    Raises:
        TypeError: If a segment is not a string
        ValueError: If the number of segments and values do not match

    Example:
        >>> compose(["SELECT * FROM pet WHERE id = ", ""], [1])
        Query(text='SELECT * FROM pet WHERE id = $1', values=(1,), prepared_name=None)
    """
    segments = tuple(segments)
    values = tuple(values)
    if not all(isinstance(segment, str) for segment in segments):
        raise TypeError("Template segments must be strings")
    if len(segments) != len(values) + 1:
        raise ValueError(
            f"Expected {len(values) + 1} template segments for {len(values)} values, "
            f"got {len(segments)}"
        )
    return QueryBuilder().build(segments, values)


def sql(template: str, *args: Any, **kwargs: Any) -> Query:
    """Build a query from a template using ``str.format`` field syntax.

    Every replacement field marks an interpolation site. Plain values become
    positional parameters, while :class:`~sqltag.domain.query.Query`,
    :class:`~sqltag.domain.query.Identifier`, :class:`~sqltag.domain.query.Json`
    and :class:`~sqltag.domain.query.ValuesList` expand as described on
    each class. Use ``{{`` and ``}}`` for literal braces.

    Args:
        template: SQL text with ``{}``, ``{0}`` or ``{name}`` fields
        *args: Positional values
        **kwargs: Keyword values

    Returns:
        The composed query

    Raises:
        TypeError: If template is not a string
        ValueError: If the template is malformed or uses format specs or
            conversions
        IndexError, KeyError: If a field refers to a missing argument

    Examples:
        >>> pet = sql("SELECT * FROM pet WHERE id = {}", 1)
        >>> pet.text, pet.values
        ('SELECT * FROM pet WHERE id = $1', (1,))
        >>> sql("SELECT exists({})", pet).text
        'SELECT exists(SELECT * FROM pet WHERE id = $1)'
    """
    if not isinstance(template, str):
        raise TypeError(f"The SQL template must be a string, got {type(template).__name__}")

    segments: list[str] = []
    values: list[Any] = []
    current = ""
    auto_index = 0
    numbering = None

    for literal, field_name, format_spec, conversion in _formatter.parse(template):
        current += literal
        if field_name is None:
            continue
        if format_spec or conversion:
            raise ValueError(
                "Format specifications and conversions are not supported in SQL "
                f"templates: {{{field_name}{'!' + conversion if conversion else ''}"
                f"{':' + format_spec if format_spec else ''}}}"
            )

        head = field_name.split(".", 1)[0].split("[", 1)[0]
        if head == "" or head.isdigit():
            style = "automatic" if head == "" else "manual"
            if numbering is not None and numbering != style:
                raise ValueError(
                    "Cannot switch between automatic and manual field numbering"
                )
            numbering = style
        if head == "":
            field_name = str(auto_index) + field_name
            auto_index += 1

        value, _ = _formatter.get_field(field_name, args, kwargs)
        segments.append(current)
        values.append(value)
        current = ""

    segments.append(current)
    return QueryBuilder().build(segments, values)
