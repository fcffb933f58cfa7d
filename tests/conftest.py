"""Shared test fixtures."""

import pytest

from pysdbc.dialect.mongodb import MongoDialect
from pysdbc.dialect.mysql import MySQLDialect
from pysdbc.dialect.postgres import PostgresDialect
from pysdbc.dialect.sqlite import SQLiteDialect
from pysdbc.schema import TableShape


@pytest.fixture
def pg_dialect():
    return PostgresDialect()


@pytest.fixture
def mysql_dialect():
    return MySQLDialect()


@pytest.fixture
def sqlite_dialect():
    return SQLiteDialect()


@pytest.fixture
def mongo_dialect():
    return MongoDialect()


@pytest.fixture
def users_shape():
    return TableShape.from_definition(
        "users",
        {
            "name": {"type": str, "required": True},
            "email": {"type": str, "unique": True},
            "age": int,
            "active": {"type": bool, "default": True},
        },
    )


SQL_DIALECTS = [
    PostgresDialect(),
    MySQLDialect(),
    SQLiteDialect(),
]
