"""pysdbc - Compile declarative filters and updates for document and SQL stores."""

from __future__ import annotations

try:
    from pysdbc._version import __version__
except ModuleNotFoundError:  # editable install without VCS metadata
    __version__ = "0.0.0.dev0"

from collections.abc import Mapping
from typing import Any

from pysdbc._compiler import Result, SQLCompiler
from pysdbc._document import DocumentCompiler
from pysdbc._errors import (
    CompileError,
    IntrospectionError,
    InvalidFieldNameError,
    InvalidFilterError,
    InvalidSchemaError,
    InvalidUpdateError,
    MaxDepthExceededError,
    MigrationError,
    SchemaError,
    SdbcError,
    SyncError,
    UnresolvedDefaultError,
    UnsupportedOperatorForDialectError,
)
from pysdbc.backend import DBAPIBackend, MongoBackend
from pysdbc.conditions import check_condition_types, parse_condition
from pysdbc.dialect import (
    Dialect,
    MongoDialect,
    MySQLDialect,
    PlaceholderStyle,
    PostgresDialect,
    SQLDialect,
    SQLiteDialect,
    get_dialect,
)
from pysdbc.migration import Migration, MigrationManager, SchemaEditor
from pysdbc.schema import FieldDeclaration, FieldType, IndexDeclaration, TableShape
from pysdbc.statements import QueryOptions
from pysdbc.sync import SyncOptions, SyncResult, SyncWarning, WarningKind, plan_sync, synchronize
from pysdbc.updates import parse_update

__all__ = [
    "compile_condition",
    "compile_update",
    "parse_condition",
    "parse_update",
    "plan_sync",
    "synchronize",
    "get_dialect",
    "DocumentCompiler",
    "QueryOptions",
    "Result",
    "SQLCompiler",
    "SyncOptions",
    "SyncResult",
    "SyncWarning",
    "WarningKind",
    "FieldDeclaration",
    "FieldType",
    "IndexDeclaration",
    "TableShape",
    "DBAPIBackend",
    "MongoBackend",
    "Dialect",
    "SQLDialect",
    "PlaceholderStyle",
    "MongoDialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "SdbcError",
    "CompileError",
    "InvalidFilterError",
    "InvalidUpdateError",
    "UnsupportedOperatorForDialectError",
    "InvalidFieldNameError",
    "MaxDepthExceededError",
    "SchemaError",
    "InvalidSchemaError",
    "UnresolvedDefaultError",
    "SyncError",
    "IntrospectionError",
    "MigrationError",
    "Migration",
    "MigrationManager",
    "SchemaEditor",
]


def compile_condition(
    filter: Mapping[str, Any] | None,
    dialect: Dialect | None = None,
    *,
    shape: TableShape | None = None,
    validate_shape: bool = False,
    start_index: int = 1,
) -> Result | dict[str, Any]:
    """Compile a declarative filter for a backend.

    Args:
        filter: The declarative filter, e.g. ``{"age": {"$gte": 18}}``.
        dialect: Target dialect. Defaults to PostgreSQL.
        shape: Optional table shape to check leaf values against.
        validate_shape: If True, raise InvalidSchemaError for fields not
            declared on ``shape``. Requires ``shape``.
        start_index: First placeholder number, for appending to SQL that
            already binds parameters.

    Returns:
        A :class:`Result` (WHERE clause body and parameters) for SQL
        dialects, or a native filter mapping for document dialects.

    Raises:
        CompileError: If the filter cannot be compiled.
        InvalidSchemaError: If shape validation fails.
    """
    if dialect is None:
        dialect = PostgresDialect()
    if validate_shape and shape is None:
        raise InvalidSchemaError(
            "shape validation requires a shape",
            "validate_shape=True requires a TableShape to be provided",
        )

    conditions = parse_condition(filter)
    if shape is not None:
        check_condition_types(conditions, shape, strict=validate_shape)

    if isinstance(dialect, SQLDialect):
        compiler = dialect.create_compiler(start_index=start_index)
        sql = compiler.compile_where(conditions)
        return Result(sql=sql, parameters=compiler.parameters)
    return dialect.create_compiler().compile_filter(conditions)


def compile_update(
    update: Mapping[str, Any],
    dialect: Dialect | None = None,
    *,
    start_index: int = 1,
) -> Result | dict[str, Any]:
    """Compile a declarative update for a backend.

    Returns:
        A :class:`Result` (SET clause body and parameters) for SQL dialects,
        or a native update mapping for document dialects.

    Raises:
        InvalidUpdateError: If the update is malformed or not representable.
    """
    if dialect is None:
        dialect = PostgresDialect()

    spec = parse_update(update)
    if isinstance(dialect, SQLDialect):
        compiler = dialect.create_compiler(start_index=start_index)
        sql = compiler.compile_set(spec)
        return Result(sql=sql, parameters=compiler.parameters)
    return dialect.create_compiler().compile_update(spec)
