"""Statement builder tests."""

import pytest

from pysdbc._errors import InvalidFilterError, InvalidUpdateError
from pysdbc.dialect.mysql import MySQLDialect
from pysdbc.dialect.postgres import PostgresDialect
from pysdbc.dialect.sqlite import SQLiteDialect
from pysdbc.statements import (
    QueryOptions,
    build_count,
    build_delete,
    build_insert,
    build_select,
    build_update,
)


class TestSelect:
    def test_plain(self):
        result = build_select("users", {"age": {"$gte": 18}}, PostgresDialect())
        assert result.sql == 'SELECT * FROM "users" WHERE age >= $1'
        assert result.parameters == [18]

    def test_no_filter(self):
        assert build_select("users", None, SQLiteDialect()).sql == 'SELECT * FROM "users" WHERE 1=1'

    def test_options(self):
        options = QueryOptions(sort="name -age", limit=10, skip=20, select="name email -password")
        result = build_select("users", {"active": True}, PostgresDialect(), options)
        assert result.sql == (
            'SELECT name, email FROM "users" WHERE active = $1 '
            "ORDER BY name ASC, age DESC LIMIT 10 OFFSET 20"
        )

    def test_skip_without_limit_sqlite(self):
        result = build_select("t", {}, SQLiteDialect(), QueryOptions(skip=5))
        assert result.sql == 'SELECT * FROM "t" WHERE 1=1 LIMIT -1 OFFSET 5'

    def test_skip_without_limit_mysql(self):
        result = build_select("t", {}, MySQLDialect(), QueryOptions(skip=5))
        assert result.sql == "SELECT * FROM `t` WHERE 1=1 LIMIT 18446744073709551615 OFFSET 5"

    @pytest.mark.parametrize("bad", [-1, "10", True])
    def test_invalid_limit(self, bad):
        with pytest.raises(InvalidFilterError):
            QueryOptions(limit=bad)


class TestCountAndDelete:
    def test_count(self):
        result = build_count("users", {"active": False}, SQLiteDialect())
        assert result.sql == 'SELECT COUNT(*) AS count FROM "users" WHERE active = ?'
        assert result.parameters == [False]

    def test_delete(self):
        result = build_delete("users", {"_id": {"$in": ["a", "b"]}}, PostgresDialect())
        assert result.sql == 'DELETE FROM "users" WHERE _id IN ($1, $2)'


class TestUpdate:
    def test_set_parameters_precede_where(self):
        result = build_update(
            "users", {"_id": "a"}, {"$set": {"name": "X"}, "$inc": {"n": 1}}, PostgresDialect()
        )
        assert result.sql == 'UPDATE "users" SET name = $1, n = n + $2 WHERE _id = $3'
        assert result.parameters == ["X", 1, "a"]

    def test_qmark_order_matches_text(self):
        result = build_update("users", {"age": {"$in": [1, 2]}}, {"name": "X"}, SQLiteDialect())
        assert result.sql == 'UPDATE "users" SET name = ? WHERE age IN (?, ?)'
        assert result.parameters == ["X", 1, 2]

    def test_append_rejected(self):
        with pytest.raises(InvalidUpdateError):
            build_update("users", {}, {"$push": {"tags": "a"}}, SQLiteDialect())


class TestInsert:
    def test_insert(self):
        result = build_insert("users", {"_id": "a", "name": "X"}, MySQLDialect())
        assert result.sql == "INSERT INTO `users` (_id, name) VALUES (%s, %s)"
        assert result.parameters == ["a", "X"]

    def test_empty_document(self):
        with pytest.raises(InvalidUpdateError):
            build_insert("users", {}, SQLiteDialect())
