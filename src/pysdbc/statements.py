"""Complete parameterized statements built from declarative input."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from io import StringIO
from typing import Any

from pysdbc._compiler import Result, SQLCompiler
from pysdbc._errors import (
    ERR_MSG_INVALID_OPERAND,
    ERR_MSG_INVALID_UPDATE,
    InvalidFilterError,
    InvalidUpdateError,
)
from pysdbc.conditions import parse_condition
from pysdbc.dialect._base import SQLDialect
from pysdbc.updates import parse_update

SortSpec = Mapping[str, int] | Sequence[tuple[str, int]] | str
ProjectionSpec = Mapping[str, int] | Sequence[str] | str


@dataclass(frozen=True)
class QueryOptions:
    """Sort, paging and projection options of a read."""

    sort: SortSpec | None = None
    limit: int | None = None
    skip: int | None = None
    select: ProjectionSpec | None = None

    def __post_init__(self) -> None:
        for name in ("limit", "skip"):
            value = getattr(self, name)
            if value is not None and (
                not isinstance(value, int) or isinstance(value, bool) or value < 0
            ):
                raise InvalidFilterError(
                    ERR_MSG_INVALID_OPERAND,
                    f"{name} must be a non-negative integer, got {value!r}",
                )


def normalize_sort(sort: SortSpec | None) -> list[tuple[str, int]]:
    """Normalize a sort spec to ``[(field, 1 | -1), ...]``.

    Accepts a mapping, a sequence of pairs, or a string such as
    ``"name -age"`` where a leading ``-`` means descending.
    """
    if not sort:
        return []
    if isinstance(sort, str):
        pairs = [
            (token[1:], -1) if token.startswith("-") else (token, 1)
            for token in sort.split()
        ]
    elif isinstance(sort, Mapping):
        pairs = list(sort.items())
    else:
        pairs = [tuple(pair) for pair in sort]
    for name, direction in pairs:
        if not name or direction not in (1, -1):
            raise InvalidFilterError(
                ERR_MSG_INVALID_OPERAND,
                f"invalid sort entry {name!r}: {direction!r}",
            )
    return [(name, int(direction)) for name, direction in pairs]


def normalize_projection(select: ProjectionSpec | None) -> dict[str, int]:
    """Normalize a projection to ``{field: 1 | 0}``.

    A string is whitespace separated; ``-field`` excludes a field.
    """
    if not select:
        return {}
    if isinstance(select, str):
        return {
            (token[1:] if token.startswith("-") else token): (0 if token.startswith("-") else 1)
            for token in select.split()
        }
    if isinstance(select, Mapping):
        projection: dict[str, int] = {}
        for name, flag in select.items():
            if flag not in (0, 1):
                raise InvalidFilterError(
                    ERR_MSG_INVALID_OPERAND,
                    f"projection flag for {name!r} must be 0 or 1, got {flag!r}",
                )
            projection[name] = int(flag)
        return projection
    return {name: 1 for name in select}


def build_select(
    table: str,
    filter: Mapping[str, Any] | None,
    dialect: SQLDialect,
    options: QueryOptions | None = None,
) -> Result:
    """Build ``SELECT ... FROM table WHERE ...`` with sort and paging.

    Only included fields of a projection become the column list; exclusions
    cannot be expressed in a column list and are ignored.
    """
    options = options or QueryOptions()
    compiler = SQLCompiler(dialect)
    where = compiler.compile_where(parse_condition(filter))

    included = [name for name, flag in normalize_projection(options.select).items() if flag]
    columns = ", ".join(dialect.render_field(name) for name in included) or "*"

    w = StringIO()
    w.write(f"SELECT {columns} FROM {dialect.quote_identifier(table)} WHERE {where}")
    sort = normalize_sort(options.sort)
    if sort:
        w.write(" ORDER BY ")
        w.write(
            ", ".join(
                f"{dialect.render_field(name)} {'ASC' if direction == 1 else 'DESC'}"
                for name, direction in sort
            )
        )
    dialect.write_limit_offset(w, options.limit, options.skip)
    return Result(sql=w.getvalue(), parameters=compiler.parameters)


def build_count(
    table: str,
    filter: Mapping[str, Any] | None,
    dialect: SQLDialect,
) -> Result:
    compiler = SQLCompiler(dialect)
    where = compiler.compile_where(parse_condition(filter))
    return Result(
        sql=f"SELECT COUNT(*) AS count FROM {dialect.quote_identifier(table)} WHERE {where}",
        parameters=compiler.parameters,
    )


def build_update(
    table: str,
    filter: Mapping[str, Any] | None,
    update: Mapping[str, Any],
    dialect: SQLDialect,
) -> Result:
    """Build ``UPDATE table SET ... WHERE ...``.

    The SET clause is compiled first so placeholder numbering and the
    parameter list follow text order for every placeholder style.
    """
    compiler = SQLCompiler(dialect)
    assignments = compiler.compile_set(parse_update(update))
    where = compiler.compile_where(parse_condition(filter))
    return Result(
        sql=f"UPDATE {dialect.quote_identifier(table)} SET {assignments} WHERE {where}",
        parameters=compiler.parameters,
    )


def build_delete(
    table: str,
    filter: Mapping[str, Any] | None,
    dialect: SQLDialect,
) -> Result:
    compiler = SQLCompiler(dialect)
    where = compiler.compile_where(parse_condition(filter))
    return Result(
        sql=f"DELETE FROM {dialect.quote_identifier(table)} WHERE {where}",
        parameters=compiler.parameters,
    )


def build_insert(
    table: str,
    document: Mapping[str, Any],
    dialect: SQLDialect,
) -> Result:
    """Build ``INSERT INTO table (...) VALUES (...)`` for one document."""
    if not isinstance(document, Mapping) or not document:
        raise InvalidUpdateError(
            ERR_MSG_INVALID_UPDATE,
            "insert requires a non-empty mapping of fields",
        )
    compiler = SQLCompiler(dialect)
    columns = ", ".join(dialect.render_field(name) for name in document)
    values = compiler.compile_values(list(document.values()))
    return Result(
        sql=(
            f"INSERT INTO {dialect.quote_identifier(table)} ({columns}) "
            f"VALUES ({values})"
        ),
        parameters=compiler.parameters,
    )
