"""Structural change descriptions and their DDL rendering."""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass
from io import StringIO

from pysdbc._constants import INDEX_NAME_HASH_LENGTH, INDEX_NAME_PREFIX
from pysdbc.dialect._base import SQLDialect
from pysdbc.schema import FieldDeclaration, FieldType, TableShape


@dataclass(frozen=True)
class CreateTable:
    shape: TableShape


@dataclass(frozen=True)
class RecreateTable:
    """Drop and create a table; destroys existing rows."""

    shape: TableShape


@dataclass(frozen=True)
class AddColumn:
    name: str
    field: FieldDeclaration


@dataclass(frozen=True)
class CreateIndex:
    name: str
    fields: tuple[tuple[str, int], ...]
    unique: bool = False


ColumnDiff = CreateTable | RecreateTable | AddColumn | CreateIndex


def index_name(table: str, field_names: Sequence[str], max_length: int = 0) -> str:
    """Generated index name: ``idx_<table>_<field>[_<field>...]``.

    Names longer than ``max_length`` (0 means no limit) are cut and end in
    a short hash of the full name, so distinct indexes keep distinct names.
    """
    name = "_".join([INDEX_NAME_PREFIX, table, *field_names])
    if max_length and len(name) > max_length:
        digest = hashlib.sha1(name.encode()).hexdigest()[:INDEX_NAME_HASH_LENGTH]
        name = f"{name[: max_length - len(digest) - 1]}_{digest}"
    return name


def needs_nullable_fallback(diff: ColumnDiff) -> bool:
    """Whether a required column must be added without NOT NULL.

    Existing rows have no value for a new column, so NOT NULL is only
    possible with a non-null literal default.
    """
    return (
        isinstance(diff, AddColumn)
        and diff.field.required
        and (not diff.field.has_literal_default or diff.field.default is None)
    )


def render(diff: ColumnDiff, table: str, dialect: SQLDialect) -> list[str]:
    """Render one change as the DDL statements that apply it, in order."""
    match diff:
        case CreateTable(shape=shape):
            return [create_table(shape, dialect)]
        case RecreateTable(shape=shape):
            return [drop_table(table, dialect), create_table(shape, dialect)]
        case AddColumn(name=name, field=field):
            return [add_column(table, name, field, dialect)]
        case CreateIndex(name=name, fields=fields, unique=unique):
            return [create_index(table, name, fields, dialect, unique=unique)]
    raise TypeError(f"unknown change {diff!r}")


def _table(table: str, dialect: SQLDialect) -> str:
    dialect.validate_field_name(table)
    return dialect.quote_identifier(table)


def column_definition(
    name: str,
    field: FieldDeclaration,
    dialect: SQLDialect,
    *,
    adding: bool = False,
) -> str:
    """Render ``name TYPE [NOT NULL] [DEFAULT literal]``.

    Deferred (callable) defaults are left to the writer and omitted here.
    """
    w = StringIO()
    w.write(f"{dialect.render_field(name)} {dialect.native_type(field.type)}")
    if field.required:
        if not (adding and needs_nullable_fallback(AddColumn(name, field))):
            w.write(" NOT NULL")
    if field.has_literal_default:
        w.write(f" DEFAULT {dialect.default_literal(field.default)}")
    return w.getvalue()


def create_table(shape: TableShape, dialect: SQLDialect) -> str:
    """Render ``CREATE TABLE IF NOT EXISTS`` with the implicit primary key."""
    columns: list[str] = []
    pk = shape.primary_key
    declared_pk = shape.find_field(pk)
    if declared_pk is None:
        pk_type = dialect.native_type(FieldType.REFERENCE)
        columns.append(f"{dialect.render_field(pk)} {pk_type} PRIMARY KEY")
    for name, field in shape:
        definition = column_definition(name, field, dialect)
        if name == pk:
            definition += " PRIMARY KEY"
        columns.append(definition)
    return f"CREATE TABLE IF NOT EXISTS {_table(shape.name, dialect)} ({', '.join(columns)})"


def add_column(table: str, name: str, field: FieldDeclaration, dialect: SQLDialect) -> str:
    definition = column_definition(name, field, dialect, adding=True)
    return f"ALTER TABLE {_table(table, dialect)} ADD COLUMN {definition}"


def create_index(
    table: str,
    name: str,
    fields: Sequence[tuple[str, int]],
    dialect: SQLDialect,
    *,
    unique: bool = False,
) -> str:
    w = StringIO()
    w.write("CREATE UNIQUE INDEX " if unique else "CREATE INDEX ")
    if dialect.supports_create_index_if_not_exists():
        w.write("IF NOT EXISTS ")
    w.write(f"{_table(name, dialect)} ON {_table(table, dialect)} (")
    w.write(
        ", ".join(
            dialect.render_field(field) + (" DESC" if direction == -1 else "")
            for field, direction in fields
        )
    )
    w.write(")")
    return w.getvalue()


# --- Explicit structural primitives (never inferred by the synchronizer) ---


def drop_table(table: str, dialect: SQLDialect) -> str:
    return f"DROP TABLE IF EXISTS {_table(table, dialect)}{dialect.drop_table_suffix()}"


def rename_table(old_name: str, new_name: str, dialect: SQLDialect) -> str:
    dialect.validate_field_name(old_name)
    dialect.validate_field_name(new_name)
    w = StringIO()
    dialect.write_rename_table(w, old_name, new_name)
    return w.getvalue()


def drop_index(table: str, name: str, dialect: SQLDialect) -> str:
    dialect.validate_field_name(table)
    dialect.validate_field_name(name)
    w = StringIO()
    dialect.write_drop_index(w, table, name)
    return w.getvalue()


def drop_column(table: str, column: str, dialect: SQLDialect) -> str:
    return f"ALTER TABLE {_table(table, dialect)} DROP COLUMN {dialect.render_field(column)}"


def rename_column(table: str, old_name: str, new_name: str, dialect: SQLDialect) -> str:
    return (
        f"ALTER TABLE {_table(table, dialect)} "
        f"RENAME COLUMN {dialect.render_field(old_name)} TO {dialect.render_field(new_name)}"
    )
