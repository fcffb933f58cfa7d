"""Declared table shapes shared by the compilers and the synchronizer."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from pysdbc._constants import DEFAULT_PRIMARY_KEY
from pysdbc._errors import InvalidSchemaError


class FieldType(enum.StrEnum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    STRUCTURED = "structured"
    ARRAY = "array"
    REFERENCE = "reference"
    MIXED = "mixed"


# Python type -> FieldType for shorthand declarations
_PYTHON_TYPES: dict[type, FieldType] = {
    str: FieldType.TEXT,
    int: FieldType.NUMBER,
    float: FieldType.NUMBER,
    Decimal: FieldType.NUMBER,
    bool: FieldType.BOOLEAN,
    datetime: FieldType.TIMESTAMP,
    date: FieldType.TIMESTAMP,
    dict: FieldType.STRUCTURED,
    list: FieldType.ARRAY,
    tuple: FieldType.ARRAY,
}

# Type names accepted in string form, besides the FieldType values
_TYPE_ALIASES: dict[str, FieldType] = {
    "objectid": FieldType.REFERENCE,
    "string": FieldType.TEXT,
    "date": FieldType.TIMESTAMP,
    "object": FieldType.STRUCTURED,
    "json": FieldType.STRUCTURED,
}

# Definition keys (mongoose spelling) -> FieldDeclaration attribute
_DEFINITION_KEYS: dict[str, str] = {
    "type": "type",
    "required": "required",
    "unique": "unique",
    "index": "indexed",
    "default": "default",
    "enum": "enum_values",
    "min": "min",
    "max": "max",
    "minlength": "min_length",
    "maxlength": "max_length",
    "match": "pattern",
    "ref": "ref",
}


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()
"""Marker for a field without a default (distinct from a ``None`` default)."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_field_type(value: Any) -> FieldType:
    """Map a FieldType, Python type, or type name to a FieldType."""
    if isinstance(value, FieldType):
        return value
    if isinstance(value, type) and value in _PYTHON_TYPES:
        return _PYTHON_TYPES[value]
    if isinstance(value, str):
        key = value.lower()
        if key in _TYPE_ALIASES:
            return _TYPE_ALIASES[key]
        try:
            return FieldType(key)
        except ValueError:
            pass
    raise InvalidSchemaError(
        "unsupported field type",
        f"cannot map {value!r} to a field type",
    )


@dataclass(frozen=True)
class FieldDeclaration:
    """Declaration of a single field/column."""

    type: FieldType
    required: bool = False
    unique: bool = False
    indexed: bool = False
    default: Any = NO_DEFAULT
    enum_values: tuple[Any, ...] = ()
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    ref: str | None = None

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    @property
    def has_deferred_default(self) -> bool:
        return self.has_default and callable(self.default)

    @property
    def has_literal_default(self) -> bool:
        return self.has_default and not callable(self.default)

    @classmethod
    def from_definition(cls, definition: Any) -> FieldDeclaration:
        """Normalize a shorthand or mapping definition.

        Accepts an existing declaration, a bare type (``str``,
        ``FieldType.NUMBER``, ``"ObjectId"``), or a mapping such as
        ``{"type": str, "required": True, "maxlength": 80}``.
        """
        if isinstance(definition, FieldDeclaration):
            return definition
        if not isinstance(definition, Mapping):
            return cls(type=resolve_field_type(definition))

        if "type" not in definition:
            raise InvalidSchemaError(
                "field definition has no type",
                f"definition {dict(definition)!r} is missing 'type'",
            )
        kwargs: dict[str, Any] = {}
        for key, value in definition.items():
            attr = _DEFINITION_KEYS.get(key)
            if attr is None:
                raise InvalidSchemaError(
                    "unknown field definition key",
                    f"key {key!r} is not a recognized field option",
                )
            kwargs[attr] = value
        kwargs["type"] = resolve_field_type(kwargs["type"])
        if "enum_values" in kwargs:
            kwargs["enum_values"] = tuple(kwargs["enum_values"])
        pattern = kwargs.get("pattern")
        if pattern is not None and not isinstance(pattern, str):
            # compiled re.Pattern
            kwargs["pattern"] = pattern.pattern
        return cls(**kwargs)


def value_matches_type(field_type: FieldType, value: Any) -> bool:
    """Best-effort check that a value is compatible with a field type."""
    if value is None:
        return True
    match field_type:
        case FieldType.TEXT:
            return isinstance(value, str)
        case FieldType.NUMBER:
            return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)
        case FieldType.BOOLEAN:
            return isinstance(value, bool)
        case FieldType.TIMESTAMP:
            return isinstance(value, (datetime, date, str))
        case FieldType.STRUCTURED:
            return isinstance(value, Mapping)
        case FieldType.REFERENCE:
            return not isinstance(value, (Mapping, list, tuple, bool))
        case _:
            # arrays match on whole values and on single elements
            return True


@dataclass(frozen=True)
class IndexDeclaration:
    """A (possibly composite) index declared at table level."""

    fields: tuple[tuple[str, int], ...]
    unique: bool = False
    name: str | None = None

    @classmethod
    def from_definition(
        cls,
        fields: Mapping[str, int] | Iterable[str],
        *,
        unique: bool = False,
        name: str | None = None,
    ) -> IndexDeclaration:
        if isinstance(fields, Mapping):
            pairs = tuple((str(f), int(d)) for f, d in fields.items())
        else:
            pairs = tuple((str(f), 1) for f in fields)
        if not pairs:
            raise InvalidSchemaError(
                "index has no fields",
                "composite index declared without fields",
            )
        for field_name, direction in pairs:
            if direction not in (1, -1):
                raise InvalidSchemaError(
                    "invalid index direction",
                    f"index direction for {field_name!r} must be 1 or -1, got {direction}",
                )
        return cls(fields=pairs, unique=unique, name=name)

    @property
    def field_names(self) -> list[str]:
        return [f for f, _ in self.fields]


class TableShape:
    """Ordered field declarations plus table-level options.

    Instances are immutable; ``with_field`` returns a new shape.
    """

    def __init__(
        self,
        name: str,
        fields: Mapping[str, FieldDeclaration],
        *,
        indexes: Iterable[IndexDeclaration] = (),
        primary_key: str = DEFAULT_PRIMARY_KEY,
    ) -> None:
        if not name:
            raise InvalidSchemaError(
                "table name cannot be empty",
                "TableShape created without a name",
            )
        self._name = name
        self._fields: dict[str, FieldDeclaration] = dict(fields)
        self._indexes = tuple(indexes)
        self._primary_key = primary_key
        for index in self._indexes:
            for field_name in index.field_names:
                if field_name not in self._fields and field_name != primary_key:
                    raise InvalidSchemaError(
                        "index references unknown field",
                        f"index on {name!r} references undeclared field {field_name!r}",
                    )

    @classmethod
    def from_definition(
        cls,
        name: str,
        definition: Mapping[str, Any],
        *,
        timestamps: bool = False,
        indexes: Iterable[IndexDeclaration] = (),
        primary_key: str = DEFAULT_PRIMARY_KEY,
    ) -> TableShape:
        """Build a shape from mongoose-style field definitions."""
        fields = {
            field_name: FieldDeclaration.from_definition(value)
            for field_name, value in definition.items()
        }
        if timestamps:
            for field_name in ("createdAt", "updatedAt"):
                fields[field_name] = FieldDeclaration(
                    type=FieldType.TIMESTAMP, default=_utcnow
                )
        return cls(name, fields, indexes=indexes, primary_key=primary_key)

    @property
    def name(self) -> str:
        return self._name

    @property
    def fields(self) -> dict[str, FieldDeclaration]:
        return dict(self._fields)

    @property
    def indexes(self) -> tuple[IndexDeclaration, ...]:
        return self._indexes

    @property
    def primary_key(self) -> str:
        return self._primary_key

    def find_field(self, name: str) -> FieldDeclaration | None:
        return self._fields.get(name)

    def with_field(self, name: str, declaration: Any) -> TableShape:
        fields = dict(self._fields)
        fields[name] = FieldDeclaration.from_definition(declaration)
        return TableShape(
            self._name, fields, indexes=self._indexes, primary_key=self._primary_key
        )

    def __iter__(self) -> Iterator[tuple[str, FieldDeclaration]]:
        return iter(self._fields.items())

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"TableShape({self._name!r}, fields={list(self._fields)!r})"


@dataclass(frozen=True)
class ExistingColumn:
    """A column as reported by backend introspection."""

    name: str
    raw_type: str
    nullable: bool = True


@dataclass(frozen=True)
class ExistingTable:
    """Introspected state of a table; ``exists=False`` when it is absent."""

    exists: bool
    columns: tuple[ExistingColumn, ...] = ()
    indexes: frozenset[str] = frozenset()

    @classmethod
    def absent(cls) -> ExistingTable:
        return cls(exists=False)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def has_column(self, name: str) -> bool:
        """Case-insensitive column lookup (backends may fold identifier case)."""
        lowered = name.lower()
        return any(c.name.lower() == lowered for c in self.columns)

    def has_index(self, name: str) -> bool:
        lowered = name.lower()
        return any(i.lower() == lowered for i in self.indexes)
