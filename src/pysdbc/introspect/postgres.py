"""PostgreSQL table introspection."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pysdbc._errors import IntrospectionError
from pysdbc.schema import ExistingColumn, ExistingTable


@runtime_checkable
class PgCursor(Protocol):
    """Minimal cursor protocol for PostgreSQL drivers."""

    def execute(self, query: str, params: Any = ..., /) -> Any: ...
    def fetchall(self) -> list[tuple[Any, ...]]: ...
    def close(self) -> None: ...


@runtime_checkable
class PgConnection(Protocol):
    """Minimal connection protocol for PostgreSQL drivers."""

    def cursor(self) -> PgCursor: ...


_COLUMNS_QUERY = """
    SELECT column_name, data_type, is_nullable
    FROM information_schema.columns
    WHERE table_schema = %s
      AND table_name = %s
    ORDER BY ordinal_position
"""

_INDEXES_QUERY = """
    SELECT indexname
    FROM pg_indexes
    WHERE schemaname = %s
      AND tablename = %s
"""


def introspect_postgres(
    conn: PgConnection,
    table_name: str,
    *,
    schema_name: str = "public",
) -> ExistingTable:
    """Introspect a PostgreSQL table.

    Args:
        conn: A PostgreSQL connection (e.g. ``psycopg.Connection``).
        table_name: Table to introspect.
        schema_name: Schema name (default ``"public"``).

    Returns:
        The table's columns and index names, or an absent table.

    Raises:
        IntrospectionError: If the catalog queries fail.
    """
    try:
        cur = conn.cursor()
        try:
            return _introspect(cur, table_name, schema_name)
        finally:
            cur.close()
    except IntrospectionError:
        raise
    except Exception as e:
        raise IntrospectionError(
            f"failed to introspect table: {table_name!r}",
            internal_details=f"catalog query for {schema_name}.{table_name} failed: {e}",
            wrapped=e,
        ) from e


def _introspect(cur: PgCursor, table_name: str, schema_name: str) -> ExistingTable:
    cur.execute(_COLUMNS_QUERY, [schema_name, table_name])
    rows = cur.fetchall()
    if not rows:
        return ExistingTable.absent()

    columns = tuple(
        ExistingColumn(name=str(name), raw_type=str(data_type), nullable=str(nullable) == "YES")
        for name, data_type, nullable in rows
    )
    cur.execute(_INDEXES_QUERY, [schema_name, table_name])
    indexes = frozenset(str(row[0]) for row in cur.fetchall())
    return ExistingTable(exists=True, columns=columns, indexes=indexes)
