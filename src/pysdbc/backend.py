"""Thin adapters between the synchronizer and caller-provided drivers.

The library never opens connections; callers pass a live DB-API connection
or a pymongo-style ``Database`` and keep ownership of it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from pysdbc.dialect._base import DocumentDialect, SQLDialect
from pysdbc.dialect.mongodb import MongoDialect
from pysdbc.schema import ExistingTable

logger = logging.getLogger(__name__)


@runtime_checkable
class SQLBackend(Protocol):
    """A relational store that can report table state and run statements."""

    dialect: SQLDialect

    def introspect_table(self, name: str) -> ExistingTable: ...
    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any: ...


@runtime_checkable
class DocumentBackend(Protocol):
    """A document store that manages collections and their indexes."""

    dialect: DocumentDialect

    def ensure_collection(self, name: str) -> None: ...
    def drop_collection(self, name: str) -> None: ...
    def create_index(
        self,
        name: str,
        keys: Sequence[tuple[str, int]],
        *,
        unique: bool = False,
        index_name: str | None = None,
    ) -> None: ...


class DBAPIBackend:
    """Runs statements through a DB-API 2.0 connection.

    DDL is executed statement by statement; with drivers that abort the
    whole transaction on the first error (e.g. psycopg), use an autocommit
    connection so alter-mode failures stay per column.
    """

    def __init__(self, conn: Any, dialect: SQLDialect) -> None:
        self._conn = conn
        self.dialect = dialect

    @property
    def connection(self) -> Any:
        return self._conn

    def introspect_table(self, name: str) -> ExistingTable:
        return self.dialect.introspect(self._conn, name)

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        """Execute one statement; returns fetched rows for queries, else ``[]``.

        Statements without parameters are executed without a parameter
        sequence, so drivers using ``%s`` leave literal ``%`` untouched.
        """
        logger.debug("executing: %s", sql)
        cur = self._conn.cursor()
        try:
            if params:
                cur.execute(sql, list(params))
            else:
                cur.execute(sql)
            if cur.description is not None:
                return cur.fetchall()
            return []
        finally:
            cur.close()


class MongoBackend:
    """Adapts a pymongo-style ``Database`` (duck typed)."""

    def __init__(self, database: Any) -> None:
        self._db = database
        self.dialect = MongoDialect()

    @property
    def database(self) -> Any:
        return self._db

    def ensure_collection(self, name: str) -> None:
        if name not in self._db.list_collection_names():
            logger.debug("creating collection %s", name)
            self._db.create_collection(name)

    def drop_collection(self, name: str) -> None:
        self._db.drop_collection(name)

    def create_index(
        self,
        name: str,
        keys: Sequence[tuple[str, int]],
        *,
        unique: bool = False,
        index_name: str | None = None,
    ) -> None:
        kwargs: dict[str, Any] = {"unique": unique}
        if index_name is not None:
            kwargs["name"] = index_name
        self._db[name].create_index(list(keys), **kwargs)
