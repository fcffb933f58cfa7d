"""Reconcile declared table shapes with existing backend tables.

Planning (:func:`plan_sync`) is pure; :func:`synchronize` introspects,
plans, renders and applies the plan through a backend adapter.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pysdbc._errors import ERR_MSG_SYNC_FAILED, IntrospectionError, SdbcError, SyncError
from pysdbc.ddl import (
    AddColumn,
    ColumnDiff,
    CreateIndex,
    CreateTable,
    RecreateTable,
    index_name,
    needs_nullable_fallback,
    render,
)
from pysdbc.dialect._base import Dialect, DocumentDialect, SQLDialect
from pysdbc.schema import ExistingTable, TableShape

if TYPE_CHECKING:
    from pysdbc.backend import DocumentBackend, SQLBackend

logger = logging.getLogger(__name__)


class WarningKind(enum.StrEnum):
    INTROSPECTION_FAILURE = "introspection_failure"
    PARTIAL_ALTER_FAILURE = "partial_alter_failure"
    INDEX_CREATION_FAILED = "index_creation_failed"
    NULLABLE_FALLBACK = "nullable_fallback"


@dataclass(frozen=True)
class SyncWarning:
    """A non-fatal problem met while synchronizing."""

    kind: WarningKind
    message: str
    target: str = ""


@dataclass(frozen=True)
class SyncOptions:
    """Synchronization modes.

    ``force`` drops and recreates the table (destroys data) and must be
    requested explicitly. ``alter`` adds missing columns. ``dry_run``
    returns the plan without touching the backend.
    """

    force: bool = False
    alter: bool = False
    dry_run: bool = False


@dataclass
class SyncResult:
    created: bool = False
    altered: bool = False
    changes: list[str] = field(default_factory=list)
    warnings: list[SyncWarning] = field(default_factory=list)
    plan: list[ColumnDiff] = field(default_factory=list)

    def warn(self, kind: WarningKind, message: str, target: str = "") -> None:
        logger.warning("%s: %s", kind, message)
        self.warnings.append(SyncWarning(kind, message, target))


def index_diffs(
    shape: TableShape,
    existing: ExistingTable,
    max_length: int = 0,
) -> list[CreateIndex]:
    """Index changes for unique/indexed fields and composite indexes.

    Generated names are shortened to ``max_length`` (0 means no limit).
    Names already present on ``existing`` are skipped.
    """
    diffs: list[CreateIndex] = []
    seen: set[str] = set()

    def add(name: str, fields: tuple[tuple[str, int], ...], unique: bool) -> None:
        if name in seen or existing.has_index(name):
            return
        seen.add(name)
        diffs.append(CreateIndex(name, fields, unique))

    for name, declaration in shape:
        if name == shape.primary_key:
            continue
        if declaration.unique or declaration.indexed:
            add(index_name(shape.name, [name], max_length), ((name, 1),), declaration.unique)
    for index in shape.indexes:
        add(
            index.name or index_name(shape.name, index.field_names, max_length),
            index.fields,
            index.unique,
        )
    return diffs


def plan_sync(
    shape: TableShape,
    existing: ExistingTable,
    options: SyncOptions,
    dialect: Dialect,
) -> list[ColumnDiff]:
    """Compute the ordered changes that reconcile ``existing`` with ``shape``.

    - force: recreate the table, then create every declared index.
    - absent: create the table, then its indexes.
    - present with ``alter``: add missing columns in declaration order.
    - present otherwise: no column changes.

    Declared indexes missing from ``existing`` are ensured in every mode.
    Column names match case-insensitively.
    """
    max_length = 0
    if isinstance(dialect, SQLDialect):
        dialect.validate_field_name(shape.name)
        for name, _ in shape:
            dialect.validate_field_name(name)
        max_length = dialect.max_identifier_length()

    diffs: list[ColumnDiff] = []
    if options.force:
        diffs.append(RecreateTable(shape))
        diffs.extend(index_diffs(shape, ExistingTable.absent(), max_length))
        return diffs
    if not existing.exists:
        diffs.append(CreateTable(shape))
        diffs.extend(index_diffs(shape, existing, max_length))
        return diffs
    if options.alter:
        for name, declaration in shape:
            if not existing.has_column(name):
                diffs.append(AddColumn(name, declaration))
    diffs.extend(index_diffs(shape, existing, max_length))
    return diffs


def synchronize(
    shape: TableShape,
    backend: SQLBackend | DocumentBackend,
    options: SyncOptions | None = None,
) -> SyncResult:
    """Reconcile a declared shape with the backend's table.

    Args:
        shape: Declared table shape.
        backend: A :class:`~pysdbc.backend.SQLBackend` or
            :class:`~pysdbc.backend.DocumentBackend`.
        options: Synchronization modes; defaults to create-if-missing.

    Returns:
        What was created, altered and changed, plus non-fatal warnings.

    Raises:
        SyncError: If table creation or a forced recreate fails.
    """
    options = options or SyncOptions()
    if isinstance(backend.dialect, DocumentDialect):
        return _synchronize_document(shape, backend, options)
    return _synchronize_sql(shape, backend, options)


def _synchronize_sql(shape: TableShape, backend: SQLBackend, options: SyncOptions) -> SyncResult:
    dialect: SQLDialect = backend.dialect
    result = SyncResult()

    try:
        existing = backend.introspect_table(shape.name)
    except IntrospectionError as e:
        result.warn(
            WarningKind.INTROSPECTION_FAILURE,
            f"could not introspect table '{shape.name}', assuming it is absent: {e.internal()}",
            shape.name,
        )
        existing = ExistingTable.absent()

    result.plan = plan_sync(shape, existing, options, dialect)
    # render up front so no statement runs if a table or column fails to render
    rendered: list[tuple[ColumnDiff, list[str]]] = []
    for diff in result.plan:
        try:
            rendered.append((diff, render(diff, shape.name, dialect)))
        except SdbcError as e:
            if not isinstance(diff, CreateIndex) or options.force:
                raise
            result.warn(
                WarningKind.INDEX_CREATION_FAILED,
                f"cannot render index '{diff.name}' on '{shape.name}': {e.internal()}",
                diff.name,
            )

    for diff, _ in rendered:
        if needs_nullable_fallback(diff):
            result.warn(
                WarningKind.NULLABLE_FALLBACK,
                f"required column '{diff.name}' added as nullable: existing rows "
                "have no value and no literal default is declared",
                diff.name,
            )

    if options.dry_run:
        return result

    for diff, statements in rendered:
        match diff:
            case RecreateTable():
                logger.warning("dropping and recreating table %s", shape.name)
                _execute_fatal(backend, statements, shape.name)
                result.created = True
                result.changes.append(f"Table '{shape.name}' dropped and recreated")
            case CreateTable():
                _execute_fatal(backend, statements, shape.name)
                result.created = True
                result.changes.append(f"Table '{shape.name}' created")
            case AddColumn(name=name):
                try:
                    _execute(backend, statements)
                except Exception as e:
                    result.warn(
                        WarningKind.PARTIAL_ALTER_FAILURE,
                        f"failed to add column '{name}' to '{shape.name}': {e}",
                        name,
                    )
                    continue
                result.altered = True
                result.changes.append(f"Added column '{name}'")
            case CreateIndex(name=name):
                if options.force:
                    _execute_fatal(backend, statements, shape.name)
                    continue
                try:
                    _execute(backend, statements)
                except Exception as e:
                    result.warn(
                        WarningKind.INDEX_CREATION_FAILED,
                        f"failed to create index '{name}' on '{shape.name}': {e}",
                        name,
                    )
    return result


def _execute(backend: SQLBackend, statements: list[str]) -> None:
    for sql in statements:
        logger.debug("%s", sql)
        backend.execute(sql)


def _execute_fatal(backend: SQLBackend, statements: list[str], table: str) -> None:
    try:
        _execute(backend, statements)
    except Exception as e:
        raise SyncError(
            ERR_MSG_SYNC_FAILED,
            f"DDL for table '{table}' failed: {e}",
            wrapped=e,
        ) from e


def _synchronize_document(
    shape: TableShape,
    backend: DocumentBackend,
    options: SyncOptions,
) -> SyncResult:
    result = SyncResult()
    # collections always "exist"; there are no columns to add
    result.plan = [RecreateTable(shape)] if options.force else []
    result.plan.extend(index_diffs(shape, ExistingTable.absent()))
    if options.dry_run:
        return result

    if not options.force:
        backend.ensure_collection(shape.name)

    for diff in result.plan:
        match diff:
            case RecreateTable():
                logger.warning("dropping and recreating collection %s", shape.name)
                try:
                    backend.drop_collection(shape.name)
                    backend.ensure_collection(shape.name)
                except Exception as e:
                    raise SyncError(
                        ERR_MSG_SYNC_FAILED,
                        f"recreating collection '{shape.name}' failed: {e}",
                        wrapped=e,
                    ) from e
                result.created = True
                result.changes.append(f"Table '{shape.name}' dropped and recreated")
            case CreateIndex(name=name, fields=fields, unique=unique):
                try:
                    backend.create_index(shape.name, fields, unique=unique, index_name=name)
                except Exception as e:
                    result.warn(
                        WarningKind.INDEX_CREATION_FAILED,
                        f"failed to create index '{name}' on '{shape.name}': {e}",
                        name,
                    )

    return result
