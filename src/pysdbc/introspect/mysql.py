"""MySQL table introspection."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pysdbc._errors import IntrospectionError
from pysdbc.schema import ExistingColumn, ExistingTable


@runtime_checkable
class MySQLCursor(Protocol):
    """Minimal cursor protocol for MySQL drivers."""

    def execute(self, query: str, params: Any = ..., /) -> Any: ...
    def fetchall(self) -> list[tuple[Any, ...]]: ...
    def close(self) -> None: ...


@runtime_checkable
class MySQLConnection(Protocol):
    """Minimal connection protocol for MySQL drivers."""

    def cursor(self) -> MySQLCursor: ...


def introspect_mysql(
    conn: MySQLConnection,
    table_name: str,
    *,
    database: str | None = None,
) -> ExistingTable:
    """Introspect a MySQL table.

    Args:
        conn: A MySQL connection (e.g. ``mysql.connector`` or ``pymysql``).
        table_name: Table to introspect.
        database: Database name. When ``None``, uses the connection's
            current database via ``DATABASE()``.

    Returns:
        The table's columns and index names, or an absent table.

    Raises:
        IntrospectionError: If the catalog queries fail.
    """
    try:
        cur = conn.cursor()
        try:
            return _introspect(cur, table_name, database)
        finally:
            cur.close()
    except IntrospectionError:
        raise
    except Exception as e:
        raise IntrospectionError(
            f"failed to introspect table: {table_name!r}",
            internal_details=f"information_schema query for {table_name!r} failed: {e}",
            wrapped=e,
        ) from e


def _introspect(cur: MySQLCursor, table_name: str, database: str | None) -> ExistingTable:
    if database is not None:
        schema_filter = "table_schema = %s"
        params: list[Any] = [database, table_name]
    else:
        schema_filter = "table_schema = DATABASE()"
        params = [table_name]

    cur.execute(
        f"""
        SELECT column_name, column_type, is_nullable
        FROM information_schema.columns
        WHERE {schema_filter}
          AND table_name = %s
        ORDER BY ordinal_position
        """,
        params,
    )
    rows = cur.fetchall()
    if not rows:
        return ExistingTable.absent()

    columns = tuple(
        ExistingColumn(name=str(name), raw_type=str(column_type), nullable=str(nullable) == "YES")
        for name, column_type, nullable in rows
    )
    cur.execute(
        f"""
        SELECT DISTINCT index_name
        FROM information_schema.statistics
        WHERE {schema_filter}
          AND table_name = %s
        """,
        params,
    )
    indexes = frozenset(str(row[0]) for row in cur.fetchall())
    return ExistingTable(exists=True, columns=columns, indexes=indexes)
