"""Backend dialects for filter, update and DDL compilation."""

from pysdbc.dialect._base import (
    Dialect,
    DialectName,
    DocumentDialect,
    PlaceholderStyle,
    SQLDialect,
)
from pysdbc.dialect.mongodb import MongoDialect
from pysdbc.dialect.mysql import MySQLDialect
from pysdbc.dialect.postgres import PostgresDialect
from pysdbc.dialect.sqlite import SQLiteDialect

__all__ = [
    "Dialect",
    "DialectName",
    "DocumentDialect",
    "PlaceholderStyle",
    "SQLDialect",
    "MongoDialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "get_dialect",
]

_REGISTRY: dict[str, type[Dialect]] = {
    DialectName.POSTGRESQL: PostgresDialect,
    DialectName.MYSQL: MySQLDialect,
    DialectName.SQLITE: SQLiteDialect,
    DialectName.MONGODB: MongoDialect,
}


def get_dialect(name: str) -> Dialect:
    """Get a dialect instance by name.

    Args:
        name: Dialect name (e.g., "postgresql", "mysql", "sqlite", "mongodb").

    Returns:
        A Dialect instance.

    Raises:
        ValueError: If the dialect name is unknown.
    """
    cls = _REGISTRY.get(name)
    if cls is None:
        raise ValueError(
            f"unknown dialect: {name!r}. "
            f"Available: {', '.join(sorted(_REGISTRY))}"
        )
    return cls()
