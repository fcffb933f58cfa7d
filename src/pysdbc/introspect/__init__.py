"""Table introspection for schema synchronization.

Reads the current columns and indexes of a table from a live connection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pysdbc.dialect._base import Dialect
    from pysdbc.schema import ExistingTable

__all__ = [
    "introspect",
    "introspect_mysql",
    "introspect_postgres",
    "introspect_sqlite",
]


def introspect(dialect: Dialect, conn: Any, table_name: str) -> ExistingTable:
    """Introspect a table through ``dialect``.

    Dialect options (``schema_name`` for PostgreSQL, ``database`` for MySQL)
    are applied by the dialect.

    Raises:
        IntrospectionError: If introspection fails.
        ValueError: If the dialect has no relational catalog.
    """
    from pysdbc.dialect._base import SQLDialect

    if not isinstance(dialect, SQLDialect):
        raise ValueError(
            f"unknown dialect: {dialect.name!r}. "
            f"Available: mysql, postgresql, sqlite"
        )
    return dialect.introspect(conn, table_name)


def __getattr__(name: str) -> Any:
    """Lazy re-exports of per-dialect introspection functions."""
    if name == "introspect_postgres":
        from pysdbc.introspect.postgres import introspect_postgres

        return introspect_postgres
    if name == "introspect_mysql":
        from pysdbc.introspect.mysql import introspect_mysql

        return introspect_mysql
    if name == "introspect_sqlite":
        from pysdbc.introspect.sqlite import introspect_sqlite

        return introspect_sqlite
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
