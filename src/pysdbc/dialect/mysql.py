"""MySQL dialect implementation."""

from __future__ import annotations

from io import StringIO
from typing import TYPE_CHECKING, Any

from pysdbc._types import DefaultStyle
from pysdbc.dialect._base import DialectName, PlaceholderStyle, SQLDialect

if TYPE_CHECKING:
    from pysdbc.schema import ExistingTable

# Largest LIMIT MySQL accepts; OFFSET requires a LIMIT
_MAX_LIMIT = 18446744073709551615


class MySQLDialect(SQLDialect):
    """MySQL dialect."""

    name = DialectName.MYSQL
    default_placeholder_style = PlaceholderStyle.FORMAT
    default_style = DefaultStyle(true_literal="1", false_literal="0", parenthesize_json=True)
    identifier_quote = "`"

    def __init__(
        self,
        *,
        placeholder_style: PlaceholderStyle | str | None = None,
        database: str | None = None,
    ) -> None:
        super().__init__(placeholder_style=placeholder_style)
        self.database = database

    def max_identifier_length(self) -> int:
        return 64

    def introspect(self, conn: Any, table_name: str) -> ExistingTable:
        from pysdbc.introspect.mysql import introspect_mysql

        return introspect_mysql(conn, table_name, database=self.database)

    def write_like_escape(self, w: StringIO) -> None:
        w.write(" ESCAPE '\\\\'")

    def write_limit_offset(self, w: StringIO, limit: int | None, offset: int | None) -> None:
        if limit is None and offset:
            limit = _MAX_LIMIT
        super().write_limit_offset(w, limit, offset)

    def supports_create_index_if_not_exists(self) -> bool:
        return False

    def write_rename_table(self, w: StringIO, old_name: str, new_name: str) -> None:
        w.write(
            f"RENAME TABLE {self.quote_identifier(old_name)} "
            f"TO {self.quote_identifier(new_name)}"
        )

    def write_drop_index(self, w: StringIO, table: str, index_name: str) -> None:
        w.write(
            f"DROP INDEX {self.quote_identifier(index_name)} "
            f"ON {self.quote_identifier(table)}"
        )
