"""SQLite dialect implementation."""

from __future__ import annotations

from io import StringIO
from typing import TYPE_CHECKING, Any

from pysdbc._types import DefaultStyle
from pysdbc.dialect._base import DialectName, PlaceholderStyle, SQLDialect

if TYPE_CHECKING:
    from pysdbc.schema import ExistingTable


class SQLiteDialect(SQLDialect):
    """SQLite dialect."""

    name = DialectName.SQLITE
    default_placeholder_style = PlaceholderStyle.QMARK
    default_style = DefaultStyle(true_literal="1", false_literal="0")

    def max_identifier_length(self) -> int:
        return 0  # No limit

    def introspect(self, conn: Any, table_name: str) -> ExistingTable:
        from pysdbc.introspect.sqlite import introspect_sqlite

        return introspect_sqlite(conn, table_name)

    def write_like_escape(self, w: StringIO) -> None:
        w.write(" ESCAPE '\\'")

    def write_limit_offset(self, w: StringIO, limit: int | None, offset: int | None) -> None:
        if limit is None and offset:
            limit = -1
        super().write_limit_offset(w, limit, offset)
