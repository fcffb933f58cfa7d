"""MongoDB dialect implementation."""

from __future__ import annotations

from pysdbc.dialect._base import DialectName, DocumentDialect


class MongoDialect(DocumentDialect):
    """MongoDB dialect; filters and updates compile to native documents."""

    name = DialectName.MONGODB
