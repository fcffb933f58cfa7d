"""Ordered, reversible schema migrations with a history table.

Each :class:`Migration` has an ``up`` and a ``down`` step that receive a
:class:`SchemaEditor`. :class:`MigrationManager` records applied migrations
in a history table, groups each ``migrate()`` run into a batch, and rolls
batches back in reverse order.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pysdbc import ddl
from pysdbc._errors import ERR_MSG_MIGRATION_FAILED, MigrationError
from pysdbc.backend import SQLBackend
from pysdbc.dialect._base import SQLDialect
from pysdbc.schema import (
    ExistingTable,
    FieldDeclaration,
    FieldType,
    IndexDeclaration,
    TableShape,
)
from pysdbc.statements import QueryOptions, build_delete, build_insert, build_select
from pysdbc.sync import index_diffs

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_TABLE = "_sdbc_migrations"

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def _now_ms() -> int:
    return int(time.time() * 1000)


def migration_name(description: str, now: datetime | None = None) -> str:
    """Build a sortable name such as ``20240115_100000_add_users_email``."""
    now = now or datetime.now(timezone.utc)
    slug = _SLUG_RE.sub("_", description.lower()).strip("_")
    return f"{now.strftime('%Y%m%d_%H%M%S')}_{slug}"


class SchemaEditor:
    """DDL operations available to migration steps.

    Statements are rendered for the backend's dialect and executed one at a
    time through the backend.
    """

    def __init__(self, backend: SQLBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> SQLBackend:
        return self._backend

    @property
    def dialect(self) -> SQLDialect:
        return self._backend.dialect

    def execute(self, sql: str, params: Iterable[Any] | None = None) -> Any:
        """Run a raw statement, e.g. a data backfill."""
        return self._backend.execute(sql, list(params) if params is not None else None)

    def _run(self, statements: Iterable[str]) -> None:
        for sql in statements:
            logger.debug("%s", sql)
            self._backend.execute(sql)

    def has_table(self, name: str) -> bool:
        return self._backend.introspect_table(name).exists

    def create_table(self, shape: TableShape) -> None:
        """Create ``shape`` with its declared indexes."""
        dialect = self.dialect
        self._run(ddl.render(ddl.CreateTable(shape), shape.name, dialect))
        for diff in index_diffs(shape, ExistingTable.absent(), dialect.max_identifier_length()):
            self._run(ddl.render(diff, shape.name, dialect))

    def drop_table(self, name: str) -> None:
        self._run([ddl.drop_table(name, self.dialect)])

    def rename_table(self, old_name: str, new_name: str) -> None:
        self._run([ddl.rename_table(old_name, new_name, self.dialect)])

    def add_column(self, table: str, name: str, definition: Any) -> None:
        """Add a column from a field definition (``str``, ``{"type": int}``, ...)."""
        declaration = FieldDeclaration.from_definition(definition)
        self._run([ddl.add_column(table, name, declaration, self.dialect)])

    def drop_column(self, table: str, name: str) -> None:
        self._run([ddl.drop_column(table, name, self.dialect)])

    def rename_column(self, table: str, old_name: str, new_name: str) -> None:
        self._run([ddl.rename_column(table, old_name, new_name, self.dialect)])

    def create_index(
        self,
        table: str,
        fields: Mapping[str, int] | Iterable[str],
        *,
        unique: bool = False,
        name: str | None = None,
    ) -> str:
        """Create an index and return its name (generated when not given)."""
        index = IndexDeclaration.from_definition(fields, unique=unique, name=name)
        dialect = self.dialect
        name = index.name or ddl.index_name(
            table, index.field_names, dialect.max_identifier_length()
        )
        self._run([ddl.create_index(table, name, index.fields, dialect, unique=unique)])
        return name

    def drop_index(self, table: str, name: str) -> None:
        self._run([ddl.drop_index(table, name, self.dialect)])


MigrationStep = Callable[[SchemaEditor], None]


@dataclass(frozen=True)
class Migration:
    """One reversible schema change; ordered by ``timestamp`` then ``name``."""

    name: str
    up: MigrationStep
    down: MigrationStep
    timestamp: int = field(default_factory=_now_ms)


@dataclass(frozen=True)
class MigrationRecord:
    """A row of the history table."""

    name: str
    timestamp: int
    batch: int
    executed_at: str = ""


@dataclass
class MigrationResult:
    executed: list[str] = field(default_factory=list)
    rolled_back: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MigrationStatus:
    executed: list[MigrationRecord]
    pending: list[Migration]


def history_shape(table_name: str = DEFAULT_HISTORY_TABLE) -> TableShape:
    """Shape of the history table; ``name`` is its primary key."""
    return TableShape(
        table_name,
        {
            "name": FieldDeclaration(FieldType.TEXT, required=True),
            "timestamp": FieldDeclaration(FieldType.NUMBER, required=True),
            "batch": FieldDeclaration(FieldType.NUMBER, required=True),
            "executed_at": FieldDeclaration(FieldType.TEXT),
        },
        primary_key="name",
    )


class MigrationManager:
    """Applies and reverts migrations against a relational backend.

    A step failure stops the run and raises :class:`MigrationError`; steps
    completed before it stay recorded, so a later run resumes after them.
    """

    def __init__(
        self,
        backend: SQLBackend,
        migrations: Iterable[Migration] = (),
        *,
        table_name: str = DEFAULT_HISTORY_TABLE,
    ) -> None:
        self._backend = backend
        self._editor = SchemaEditor(backend)
        self._shape = history_shape(table_name)
        self._migrations: dict[str, Migration] = {}
        for migration in migrations:
            self.add(migration)

    @property
    def migrations(self) -> list[Migration]:
        return sorted(self._migrations.values(), key=lambda m: (m.timestamp, m.name))

    def add(self, migration: Migration) -> None:
        if migration.name in self._migrations:
            raise MigrationError(
                ERR_MSG_MIGRATION_FAILED,
                f"duplicate migration name {migration.name!r}",
            )
        self._migrations[migration.name] = migration

    # --- History ---

    def ensure_history_table(self) -> None:
        self._backend.execute(ddl.create_table(self._shape, self._backend.dialect))

    def executed(self) -> list[MigrationRecord]:
        """Applied migrations, oldest first."""
        self.ensure_history_table()
        stmt = build_select(
            self._shape.name,
            None,
            self._backend.dialect,
            QueryOptions(
                sort=[("timestamp", 1), ("name", 1)],
                select="name timestamp batch executed_at",
            ),
        )
        return [
            MigrationRecord(str(name), int(timestamp), int(batch), executed_at or "")
            for name, timestamp, batch, executed_at in self._backend.execute(
                stmt.sql, stmt.parameters
            )
        ]

    def pending(self) -> list[Migration]:
        applied = {record.name for record in self.executed()}
        return [m for m in self.migrations if m.name not in applied]

    def status(self) -> MigrationStatus:
        executed = self.executed()
        applied = {record.name for record in executed}
        return MigrationStatus(
            executed=executed,
            pending=[m for m in self.migrations if m.name not in applied],
        )

    def _record(self, migration: Migration, batch: int) -> None:
        stmt = build_insert(
            self._shape.name,
            {
                "name": migration.name,
                "timestamp": migration.timestamp,
                "batch": batch,
                "executed_at": datetime.now(timezone.utc).isoformat(),
            },
            self._backend.dialect,
        )
        self._backend.execute(stmt.sql, stmt.parameters)

    def _forget(self, name: str) -> None:
        stmt = build_delete(self._shape.name, {"name": name}, self._backend.dialect)
        self._backend.execute(stmt.sql, stmt.parameters)

    # --- Running ---

    def migrate(self) -> MigrationResult:
        """Run every pending ``up`` in order as one new batch."""
        executed = self.executed()
        applied = {record.name for record in executed}
        pending = [m for m in self.migrations if m.name not in applied]
        batch = max((record.batch for record in executed), default=0) + 1

        result = MigrationResult(pending=[m.name for m in pending])
        for migration in pending:
            logger.info("running migration %s (batch %d)", migration.name, batch)
            self._apply(migration, migration.up, "up")
            self._record(migration, batch)
            result.executed.append(migration.name)
            result.pending.remove(migration.name)
        return result

    def rollback(self) -> MigrationResult:
        """Revert the most recent batch, newest migration first."""
        executed = self.executed()
        if not executed:
            logger.info("nothing to roll back")
            return MigrationResult()
        last_batch = max(record.batch for record in executed)
        return self._revert([r for r in executed if r.batch == last_batch])

    def rollback_to(self, name: str) -> MigrationResult:
        """Revert every migration applied after ``name``."""
        executed = self.executed()
        names = [record.name for record in executed]
        if name not in names:
            raise MigrationError(
                ERR_MSG_MIGRATION_FAILED,
                f"migration {name!r} has not been applied",
            )
        return self._revert(executed[names.index(name) + 1 :])

    def reset(self) -> MigrationResult:
        """Revert every applied migration."""
        return self._revert(self.executed())

    def fresh(self) -> MigrationResult:
        """Reset, then migrate from scratch."""
        reverted = self.reset()
        result = self.migrate()
        result.rolled_back = reverted.rolled_back
        return result

    def _revert(self, records: list[MigrationRecord]) -> MigrationResult:
        result = MigrationResult()
        for record in reversed(records):
            migration = self._migrations.get(record.name)
            if migration is None:
                logger.warning("migration %s is recorded but not registered; skipped", record.name)
                continue
            logger.info("rolling back migration %s", migration.name)
            self._apply(migration, migration.down, "down")
            self._forget(migration.name)
            result.rolled_back.append(migration.name)
        return result

    def _apply(self, migration: Migration, step: MigrationStep, direction: str) -> None:
        try:
            step(self._editor)
        except Exception as e:
            logger.error("migration %s (%s) failed: %s", migration.name, direction, e)
            raise MigrationError(
                ERR_MSG_MIGRATION_FAILED,
                f"{direction} step of {migration.name!r} failed: {e}",
                wrapped=e,
            ) from e
