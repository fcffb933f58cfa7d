"""Field type to native column type mapping and default literal rendering."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pysdbc._errors import InvalidSchemaError, UnresolvedDefaultError
from pysdbc._utils import escape_string_literal
from pysdbc.schema import FieldType

# FieldType -> dialect name -> native type
NATIVE_TYPES: dict[FieldType, dict[str, str]] = {
    FieldType.TEXT: {
        "postgresql": "VARCHAR(255)",
        "mysql": "VARCHAR(255)",
        "sqlite": "TEXT",
        "mongodb": "string",
    },
    FieldType.NUMBER: {
        "postgresql": "DOUBLE PRECISION",
        "mysql": "DOUBLE",
        "sqlite": "REAL",
        "mongodb": "double",
    },
    FieldType.BOOLEAN: {
        "postgresql": "BOOLEAN",
        "mysql": "TINYINT(1)",
        "sqlite": "INTEGER",
        "mongodb": "bool",
    },
    FieldType.TIMESTAMP: {
        "postgresql": "TIMESTAMP",
        "mysql": "DATETIME",
        "sqlite": "TEXT",
        "mongodb": "date",
    },
    FieldType.STRUCTURED: {
        "postgresql": "JSONB",
        "mysql": "JSON",
        "sqlite": "TEXT",
        "mongodb": "object",
    },
    FieldType.ARRAY: {
        "postgresql": "JSONB",
        "mysql": "JSON",
        "sqlite": "TEXT",
        "mongodb": "array",
    },
    FieldType.REFERENCE: {
        "postgresql": "VARCHAR(36)",
        "mysql": "VARCHAR(36)",
        "sqlite": "TEXT",
        "mongodb": "objectId",
    },
    FieldType.MIXED: {
        "postgresql": "JSONB",
        "mysql": "JSON",
        "sqlite": "TEXT",
        "mongodb": "mixed",
    },
}


def native_type(field_type: FieldType, dialect_name: str) -> str:
    """Look up the native column type of a field type for a dialect.

    Raises:
        InvalidSchemaError: If the dialect has no column in the table.
    """
    try:
        return NATIVE_TYPES[field_type][dialect_name]
    except KeyError:
        raise InvalidSchemaError(
            "unsupported field type for dialect",
            f"no native type for {field_type!r} on dialect {dialect_name!r}",
        ) from None


@dataclass(frozen=True)
class DefaultStyle:
    """How a dialect spells literal column defaults."""

    true_literal: str = "TRUE"
    false_literal: str = "FALSE"
    json_cast: str = ""
    """Suffix appended to JSON string defaults (e.g. ``::jsonb``)."""
    parenthesize_json: bool = False
    """Wrap JSON defaults in parentheses (expression default)."""


def render_default(value: Any, style: DefaultStyle) -> str:
    """Render a literal default value as a SQL literal.

    Raises:
        UnresolvedDefaultError: If ``value`` is a deferred (callable) default.
        InvalidSchemaError: If ``value`` has no literal representation.
    """
    if callable(value):
        raise UnresolvedDefaultError(
            "deferred default cannot be rendered",
            f"callable default {value!r} must be resolved at write time",
        )
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return style.true_literal if value else style.false_literal
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise InvalidSchemaError(
                "invalid default value",
                f"non-finite float default {value!r}",
            )
        return repr(value)
    if isinstance(value, str):
        return f"'{escape_string_literal(value)}'"
    if isinstance(value, (datetime, date)):
        return f"'{value.isoformat()}'"
    if isinstance(value, (Mapping, list, tuple)):
        try:
            encoded = json.dumps(value, separators=(",", ":"))
        except TypeError as e:
            raise InvalidSchemaError(
                "invalid default value",
                f"default {value!r} is not JSON serializable",
                wrapped=e,
            ) from e
        literal = f"'{escape_string_literal(encoded)}'{style.json_cast}"
        return f"({literal})" if style.parenthesize_json else literal
    raise InvalidSchemaError(
        "invalid default value",
        f"default of type {type(value).__name__} has no SQL literal form",
    )
