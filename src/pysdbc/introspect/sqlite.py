"""SQLite table introspection."""

from __future__ import annotations

import re
from typing import Any, Protocol, runtime_checkable

from pysdbc._errors import IntrospectionError
from pysdbc.schema import ExistingColumn, ExistingTable

_VALID_TABLE_NAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


@runtime_checkable
class SQLiteConnection(Protocol):
    """Minimal connection protocol for SQLite."""

    def execute(self, query: str, params: Any = ..., /) -> Any: ...


@runtime_checkable
class SQLiteCursor(Protocol):
    """Minimal cursor protocol for SQLite."""

    def fetchall(self) -> list[tuple[Any, ...]]: ...


def introspect_sqlite(conn: SQLiteConnection, table_name: str) -> ExistingTable:
    """Introspect a SQLite table.

    Args:
        conn: A SQLite connection.
        table_name: Table to introspect.

    Returns:
        The table's columns and index names, or an absent table.

    Raises:
        IntrospectionError: If the table name is invalid or a PRAGMA fails.
    """
    if not _VALID_TABLE_NAME.match(table_name):
        raise IntrospectionError(
            f"invalid table name: {table_name!r}",
            internal_details=(
                f"table name {table_name!r} does not match "
                f"pattern {_VALID_TABLE_NAME.pattern}"
            ),
        )

    try:
        # PRAGMA does not support parameterized table names.
        rows: list[tuple[Any, ...]] = conn.execute(f'PRAGMA table_info("{table_name}")').fetchall()
        if not rows:
            return ExistingTable.absent()
        index_rows = conn.execute(f'PRAGMA index_list("{table_name}")').fetchall()
    except Exception as e:
        raise IntrospectionError(
            f"failed to introspect table: {table_name!r}",
            internal_details=f"PRAGMA on {table_name!r} failed: {e}",
            wrapped=e,
        ) from e

    # PRAGMA table_info columns: cid, name, type, notnull, dflt_value, pk
    columns = tuple(
        ExistingColumn(name=str(row[1]), raw_type=str(row[2]), nullable=not row[3])
        for row in rows
    )
    # PRAGMA index_list columns: seq, name, unique, origin, partial
    indexes = frozenset(str(row[1]) for row in index_rows)
    return ExistingTable(exists=True, columns=columns, indexes=indexes)
