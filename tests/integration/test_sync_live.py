"""Integration tests for schema synchronization and introspection."""

from __future__ import annotations

import pytest

from pysdbc import IndexDeclaration, QueryOptions, SyncOptions, TableShape, WarningKind, synchronize
from pysdbc.ddl import index_name
from pysdbc.statements import build_count, build_insert
from tests.integration.conftest import drop, people_shape, seed, select_names, unique_table


pytestmark = pytest.mark.integration


@pytest.fixture
def table(sql_backend):
    name = unique_table()
    yield name
    drop(sql_backend, name)


def _count(backend, table: str) -> int:
    stmt = build_count(table, {}, backend.dialect)
    return backend.execute(stmt.sql, stmt.parameters)[0][0]


class TestCreate:
    def test_creates_table_and_indexes(self, sql_backend, table):
        result = synchronize(people_shape(table), sql_backend)
        assert result.created
        assert result.changes == [f"Table '{table}' created"]
        assert result.warnings == []

        existing = sql_backend.introspect_table(table)
        assert existing.exists
        for column in ("_id", "name", "email", "age", "active"):
            assert existing.has_column(column)
        assert existing.has_index(index_name(table, ["email"]))
        assert existing.has_index(index_name(table, ["age"]))

    def test_percent_in_text_default(self, sql_backend, table):
        shape = TableShape.from_definition(table, {"label": {"type": str, "default": "50% off"}})
        result = synchronize(shape, sql_backend)
        assert result.created
        assert result.warnings == []
        insert = build_insert(table, {"_id": "1"}, sql_backend.dialect)
        sql_backend.execute(insert.sql, insert.parameters)
        assert select_names(sql_backend, table, None, QueryOptions(select="label")) == ["50% off"]

    def test_long_composite_index_name(self, sql_backend, table):
        fields = ["recipient_first_name", "recipient_last_name", "postal_code"]
        shape = TableShape.from_definition(
            table,
            {name: str for name in fields},
            indexes=[IndexDeclaration.from_definition(fields)],
        )
        result = synchronize(shape, sql_backend)
        assert result.created
        assert result.warnings == []
        limit = sql_backend.dialect.max_identifier_length()
        assert sql_backend.introspect_table(table).has_index(index_name(table, fields, limit))

    def test_second_run_is_noop(self, sql_backend, table):
        synchronize(people_shape(table), sql_backend)
        result = synchronize(people_shape(table), sql_backend)
        assert not result.created
        assert not result.altered
        assert result.changes == []
        assert result.plan == []

    def test_dry_run_touches_nothing(self, sql_backend, table):
        result = synchronize(people_shape(table), sql_backend, SyncOptions(dry_run=True))
        assert result.plan
        assert not result.created
        assert not sql_backend.introspect_table(table).exists


class TestAlter:
    def test_adds_missing_column_once(self, sql_backend, table):
        seed(sql_backend, table)
        shape = people_shape(table).with_field("nickname", {"type": str})

        result = synchronize(shape, sql_backend, SyncOptions(alter=True))
        assert result.altered
        assert result.changes == ["Added column 'nickname'"]
        assert sql_backend.introspect_table(table).has_column("nickname")
        assert _count(sql_backend, table) == 5

        again = synchronize(shape, sql_backend, SyncOptions(alter=True))
        assert again.changes == []

    def test_required_column_added_nullable(self, sql_backend, table):
        seed(sql_backend, table)
        shape = people_shape(table).with_field("team", {"type": str, "required": True})

        result = synchronize(shape, sql_backend, SyncOptions(alter=True))
        assert result.changes == ["Added column 'team'"]
        assert [w.kind for w in result.warnings] == [WarningKind.NULLABLE_FALLBACK]

    def test_without_alter_columns_untouched(self, sql_backend, table):
        seed(sql_backend, table)
        shape = people_shape(table).with_field("nickname", {"type": str})
        result = synchronize(shape, sql_backend)
        assert result.changes == []
        assert not sql_backend.introspect_table(table).has_column("nickname")


class TestForce:
    def test_recreate_discards_rows(self, sql_backend, table):
        seed(sql_backend, table)
        result = synchronize(people_shape(table), sql_backend, SyncOptions(force=True))
        assert result.created
        assert result.changes == [f"Table '{table}' dropped and recreated"]
        assert _count(sql_backend, table) == 0
        assert sql_backend.introspect_table(table).has_index(index_name(table, ["email"]))


class TestIntrospect:
    def test_missing_table_is_absent(self, sql_backend):
        existing = sql_backend.introspect_table(unique_table("missing"))
        assert not existing.exists
        assert existing.columns == ()

    def test_nullability(self, sql_backend, table):
        synchronize(people_shape(table), sql_backend)
        columns = {c.name: c for c in sql_backend.introspect_table(table).columns}
        assert not columns["name"].nullable
        assert columns["email"].nullable
