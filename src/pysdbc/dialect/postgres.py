"""PostgreSQL dialect implementation."""

from __future__ import annotations

from io import StringIO
from typing import TYPE_CHECKING, Any

from pysdbc._types import DefaultStyle
from pysdbc.dialect._base import DialectName, PlaceholderStyle, SQLDialect, WriteFunc

if TYPE_CHECKING:
    from pysdbc.schema import ExistingTable


class PostgresDialect(SQLDialect):
    """PostgreSQL dialect."""

    name = DialectName.POSTGRESQL
    default_placeholder_style = PlaceholderStyle.NUMBERED
    default_style = DefaultStyle(json_cast="::jsonb")

    def __init__(
        self,
        *,
        placeholder_style: PlaceholderStyle | str | None = None,
        schema_name: str = "public",
    ) -> None:
        super().__init__(placeholder_style=placeholder_style)
        self.schema_name = schema_name

    def max_identifier_length(self) -> int:
        return 63

    def introspect(self, conn: Any, table_name: str) -> ExistingTable:
        from pysdbc.introspect.postgres import introspect_postgres

        return introspect_postgres(conn, table_name, schema_name=self.schema_name)

    def write_like(
        self,
        w: StringIO,
        write_target: WriteFunc,
        write_pattern: WriteFunc,
        case_insensitive: bool,
    ) -> None:
        write_target()
        w.write(" ILIKE " if case_insensitive else " LIKE ")
        write_pattern()

    def write_like_escape(self, w: StringIO) -> None:
        w.write(" ESCAPE E'\\\\'")

    def drop_table_suffix(self) -> str:
        return " CASCADE"
