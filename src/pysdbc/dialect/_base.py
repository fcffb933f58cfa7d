"""Abstract base classes for backend dialects."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Callable
from io import StringIO
from typing import TYPE_CHECKING, Any, ClassVar

from pysdbc._types import DefaultStyle, native_type, render_default
from pysdbc._utils import is_reserved_keyword, validate_field_name, validate_no_null_bytes
from pysdbc.schema import FieldType

if TYPE_CHECKING:
    from pysdbc._compiler import SQLCompiler
    from pysdbc._document import DocumentCompiler
    from pysdbc.schema import ExistingTable


class DialectName(enum.StrEnum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    MONGODB = "mongodb"


class PlaceholderStyle(enum.StrEnum):
    NUMBERED = "numbered"  # $1, $2, ...
    QMARK = "qmark"  # ?
    FORMAT = "format"  # %s


WriteFunc = Callable[[], None]
"""Callback that writes a sub-expression to the shared StringIO buffer."""


class Dialect(ABC):
    """Capabilities shared by every backend dialect."""

    name: ClassVar[DialectName]

    def native_type(self, field_type: FieldType) -> str:
        return native_type(field_type, self.name)

    @abstractmethod
    def create_compiler(self) -> Any: ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class DocumentDialect(Dialect):
    """Dialect of a schema-less document store; compiles to native structures."""

    def create_compiler(self) -> DocumentCompiler:
        from pysdbc._document import DocumentCompiler

        return DocumentCompiler()


class SQLDialect(Dialect):
    """Abstract base class defining the relational dialect interface.

    All SQL-syntax-specific code lives behind this interface.
    Methods receive a StringIO writer and callback functions for sub-expressions.
    """

    default_placeholder_style: ClassVar[PlaceholderStyle]
    default_style: ClassVar[DefaultStyle] = DefaultStyle()
    identifier_quote: ClassVar[str] = '"'

    def __init__(self, *, placeholder_style: PlaceholderStyle | str | None = None) -> None:
        if placeholder_style is None:
            self._placeholder_style = self.default_placeholder_style
        else:
            self._placeholder_style = PlaceholderStyle(placeholder_style)

    @property
    def placeholder_style(self) -> PlaceholderStyle:
        return self._placeholder_style

    def create_compiler(self, *, start_index: int = 1) -> SQLCompiler:
        from pysdbc._compiler import SQLCompiler

        return SQLCompiler(self, start_index=start_index)

    # --- Literals ---

    def write_param_placeholder(self, w: StringIO, param_index: int) -> None:
        match self._placeholder_style:
            case PlaceholderStyle.NUMBERED:
                w.write(f"${param_index}")
            case PlaceholderStyle.QMARK:
                w.write("?")
            case PlaceholderStyle.FORMAT:
                w.write("%s")

    def default_literal(self, value: Any) -> str:
        return render_default(value, self.default_style)

    # --- Identifiers ---

    def quote_identifier(self, name: str) -> str:
        validate_no_null_bytes(name, "identifiers")
        q = self.identifier_quote
        return f"{q}{name.replace(q, q + q)}{q}"

    def validate_field_name(self, name: str) -> None:
        validate_field_name(name, self.max_identifier_length())

    def render_field(self, name: str) -> str:
        """Validate a field name and quote it when it is a reserved word."""
        self.validate_field_name(name)
        if is_reserved_keyword(name):
            return self.quote_identifier(name)
        return name

    @abstractmethod
    def max_identifier_length(self) -> int: ...

    # --- Introspection ---

    @abstractmethod
    def introspect(self, conn: Any, table_name: str) -> ExistingTable:
        """Read the columns and indexes of ``table_name`` over ``conn``.

        Raises:
            IntrospectionError: If the catalog queries fail.
        """

    # --- Pattern matching ---

    def write_like(
        self,
        w: StringIO,
        write_target: WriteFunc,
        write_pattern: WriteFunc,
        case_insensitive: bool,
    ) -> None:
        if case_insensitive:
            w.write("LOWER(")
            write_target()
            w.write(") LIKE LOWER(")
            write_pattern()
            w.write(")")
        else:
            write_target()
            w.write(" LIKE ")
            write_pattern()

    @abstractmethod
    def write_like_escape(self, w: StringIO) -> None: ...

    def write_limit_offset(self, w: StringIO, limit: int | None, offset: int | None) -> None:
        if limit is not None:
            w.write(f" LIMIT {limit}")
        if offset:
            w.write(f" OFFSET {offset}")

    # --- DDL ---

    def supports_create_index_if_not_exists(self) -> bool:
        return True

    def drop_table_suffix(self) -> str:
        return ""

    def write_rename_table(self, w: StringIO, old_name: str, new_name: str) -> None:
        w.write(
            f"ALTER TABLE {self.quote_identifier(old_name)} "
            f"RENAME TO {self.quote_identifier(new_name)}"
        )

    def write_drop_index(self, w: StringIO, table: str, index_name: str) -> None:
        w.write(f"DROP INDEX IF EXISTS {self.quote_identifier(index_name)}")
