"""Fixtures and helpers for integration tests against real databases."""

from __future__ import annotations

import os
import shutil
import sqlite3
import subprocess
import uuid
from typing import Any

import pytest

from pysdbc.backend import DBAPIBackend, MongoBackend
from pysdbc.dialect.mysql import MySQLDialect
from pysdbc.dialect.postgres import PostgresDialect
from pysdbc.dialect.sqlite import SQLiteDialect
from pysdbc.schema import TableShape
from pysdbc.statements import QueryOptions, build_insert, build_select
from pysdbc.sync import synchronize


# ---------------------------------------------------------------------------
# Container runtime detection (Docker or Podman)
# ---------------------------------------------------------------------------

def _get_podman_socket() -> str | None:
    """Get the Podman machine socket path, if available."""
    try:
        result = subprocess.run(
            ["podman", "machine", "inspect", "--format",
             "{{.ConnectionInfo.PodmanSocket.Path}}"],
            capture_output=True, text=True, check=True, timeout=5,
        )
        sock = result.stdout.strip()
        if sock and os.path.exists(sock):
            return sock
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired,
            FileNotFoundError):
        pass
    return None


def _container_runtime_available() -> bool:
    """Check if Docker or Podman is available as a container runtime."""
    for cmd in ["docker", "podman"]:
        if shutil.which(cmd):
            try:
                subprocess.run(
                    [cmd, "info"], capture_output=True, check=True, timeout=10,
                )
                return True
            except (subprocess.CalledProcessError, subprocess.TimeoutExpired,
                    FileNotFoundError):
                continue
    return False


def _configure_testcontainers_for_podman() -> None:
    """Configure testcontainers to work with Podman."""
    if not shutil.which("podman"):
        return
    # Ryuk (resource reaper) is not always supported by Podman
    os.environ.setdefault("TESTCONTAINERS_RYUK_DISABLED", "true")
    if "DOCKER_HOST" not in os.environ:
        sock = _get_podman_socket()
        if sock:
            os.environ["DOCKER_HOST"] = f"unix://{sock}"


CONTAINER_RUNTIME_AVAILABLE = _container_runtime_available()

if CONTAINER_RUNTIME_AVAILABLE:
    _configure_testcontainers_for_podman()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

PEOPLE_DEFINITION: dict[str, Any] = {
    "name": {"type": str, "required": True},
    "email": {"type": str, "unique": True},
    "age": {"type": int, "index": True},
    "active": {"type": bool, "default": True},
}

SEED_ROWS = [
    {"_id": "p1", "name": "Alice", "email": "alice@example.com", "age": 30, "active": True},
    {"_id": "p2", "name": "Bob", "email": "bob@test.com", "age": 25, "active": True},
    {"_id": "p3", "name": "Charlie", "email": None, "age": 35, "active": False},
    {"_id": "p4", "name": "Diana", "email": "diana@example.com", "age": 28, "active": True},
    {"_id": "p5", "name": "Eve_1", "email": "eve@test.com", "age": 22, "active": False},
]


def people_shape(table: str) -> TableShape:
    return TableShape.from_definition(table, PEOPLE_DEFINITION)


def unique_table(prefix: str = "people") -> str:
    """Table name that does not collide across tests sharing a container."""
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


def seed(backend: DBAPIBackend, table: str) -> None:
    """Create ``table`` through the synchronizer and insert SEED_ROWS."""
    result = synchronize(people_shape(table), backend)
    assert result.created
    for row in SEED_ROWS:
        stmt = build_insert(table, row, backend.dialect)
        backend.execute(stmt.sql, stmt.parameters)


def select_names(
    backend: DBAPIBackend,
    table: str,
    filter: dict[str, Any] | None,
    options: QueryOptions | None = None,
) -> list[str]:
    """Compile and run a SELECT of the name column; returns names in row order."""
    options = options or QueryOptions(select="name")
    stmt = build_select(table, filter, backend.dialect, options)
    return [row[0] for row in backend.execute(stmt.sql, stmt.parameters)]


def drop(backend: DBAPIBackend, table: str) -> None:
    q = backend.dialect.quote_identifier(table)
    backend.execute(f"DROP TABLE IF EXISTS {q}")


# ---------------------------------------------------------------------------
# Session-scoped container fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def pg_container():
    if not CONTAINER_RUNTIME_AVAILABLE:
        pytest.skip("No container runtime (Docker/Podman) available")
    from testcontainers.postgres import PostgresContainer
    with PostgresContainer("postgres:16") as pg:
        yield pg


@pytest.fixture(scope="session")
def mysql_container():
    if not CONTAINER_RUNTIME_AVAILABLE:
        pytest.skip("No container runtime (Docker/Podman) available")
    from testcontainers.mysql import MySqlContainer
    with MySqlContainer("mysql:8.4") as mysql:
        yield mysql


@pytest.fixture(scope="session")
def mongo_container():
    if not CONTAINER_RUNTIME_AVAILABLE:
        pytest.skip("No container runtime (Docker/Podman) available")
    from testcontainers.mongodb import MongoDbContainer
    with MongoDbContainer("mongo:7") as mongo:
        yield mongo


# ---------------------------------------------------------------------------
# Backend fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def pg_backend(pg_container):
    import psycopg
    # autocommit keeps a failed ALTER from aborting the rest of the sync
    conn = psycopg.connect(
        host=pg_container.get_container_host_ip(),
        port=pg_container.get_exposed_port(5432),
        user=pg_container.username,
        password=pg_container.password,
        dbname=pg_container.dbname,
        autocommit=True,
    )
    # psycopg binds %s, not $n
    yield DBAPIBackend(conn, PostgresDialect(placeholder_style="format"))
    conn.close()


@pytest.fixture(scope="session")
def mysql_backend(mysql_container):
    import mysql.connector
    conn = mysql.connector.connect(
        host=mysql_container.get_container_host_ip(),
        port=int(mysql_container.get_exposed_port(3306)),
        user=mysql_container.username,
        password=mysql_container.password,
        database=mysql_container.dbname,
        autocommit=True,
    )
    yield DBAPIBackend(conn, MySQLDialect(database=mysql_container.dbname))
    conn.close()


@pytest.fixture
def sqlite_backend():
    conn = sqlite3.connect(":memory:", isolation_level=None)
    yield DBAPIBackend(conn, SQLiteDialect())
    conn.close()


@pytest.fixture
def mongo_backend(mongo_container):
    client = mongo_container.get_connection_client()
    database = client[f"pysdbc_{uuid.uuid4().hex[:8]}"]
    yield MongoBackend(database)
    client.drop_database(database.name)
    client.close()


# ---------------------------------------------------------------------------
# Parametrized database fixtures
# ---------------------------------------------------------------------------

ALL_SQL_DBS = ["pg", "mysql", "sqlite"]


@pytest.fixture(params=ALL_SQL_DBS)
def sql_backend(request) -> DBAPIBackend:
    """Yields a DBAPIBackend for each relational database."""
    return request.getfixturevalue(f"{request.param}_backend")


@pytest.fixture
def people(sql_backend):
    """A seeded people table; yields (backend, table_name)."""
    table = unique_table()
    seed(sql_backend, table)
    yield sql_backend, table
    drop(sql_backend, table)
