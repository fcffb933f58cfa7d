"""Declarative update parsing."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from pysdbc._constants import OPERATOR_PREFIX
from pysdbc._errors import (
    ERR_MSG_INVALID_OPERAND,
    ERR_MSG_INVALID_OPERATOR,
    ERR_MSG_INVALID_UPDATE,
    InvalidUpdateError,
)
from pysdbc._operators import UPDATE_OPERATORS, Bucket

logger = logging.getLogger(__name__)


@dataclass
class UpdateSpec:
    """Update operations grouped into typed buckets.

    ``order`` lists buckets in the order their operators first appeared;
    compilers emit clauses in that order.
    """

    assign: dict[str, Any] = field(default_factory=dict)
    increment: dict[str, Any] = field(default_factory=dict)
    remove: list[str] = field(default_factory=list)
    append: dict[str, Any] = field(default_factory=dict)
    detach: dict[str, Any] = field(default_factory=dict)
    order: list[Bucket] = field(default_factory=list)

    @property
    def total_operations(self) -> int:
        return (
            len(self.assign)
            + len(self.increment)
            + len(self.remove)
            + len(self.append)
            + len(self.detach)
        )

    def is_empty(self) -> bool:
        return self.total_operations == 0

    def items(self, bucket: Bucket) -> list[tuple[str, Any]]:
        """Return ``(field, value)`` pairs of a bucket (``None`` for removals)."""
        if bucket is Bucket.REMOVE:
            return [(name, None) for name in self.remove]
        return list(getattr(self, bucket.value).items())

    def place(self, bucket: Bucket, name: str, value: Any = None) -> None:
        """Put a field into a bucket, dropping it from any other bucket."""
        for other in Bucket:
            if other is bucket:
                continue
            if other is Bucket.REMOVE:
                if name in self.remove:
                    self.remove.remove(name)
                    logger.debug("field %r moved from %s to %s", name, other, bucket)
            elif name in getattr(self, other.value):
                del getattr(self, other.value)[name]
                logger.debug("field %r moved from %s to %s", name, other, bucket)

        if bucket is Bucket.REMOVE:
            if name not in self.remove:
                self.remove.append(name)
        else:
            getattr(self, bucket.value)[name] = value
        if bucket not in self.order:
            self.order.append(bucket)


def parse_update(update: Mapping[str, Any]) -> UpdateSpec:
    """Parse a declarative update expression.

    A mapping without operator keys is an implicit ``$set`` of every field.
    ``$addToSet`` is folded into the append bucket.

    Raises:
        InvalidUpdateError: If the update is malformed, uses an unknown
            operator, or yields no operations from a non-empty input.
    """
    if not isinstance(update, Mapping):
        raise InvalidUpdateError(
            ERR_MSG_INVALID_UPDATE,
            f"update must be a mapping, got {type(update).__name__}",
        )

    spec = UpdateSpec()
    if not update:
        return spec

    flags = [_is_operator_key(key) for key in update]
    if not any(flags):
        for name, value in update.items():
            spec.place(Bucket.ASSIGN, name, value)
        return spec
    if not all(flags):
        raise InvalidUpdateError(
            ERR_MSG_INVALID_UPDATE,
            "update mixes operator keys and plain field names",
        )

    for key, operand in update.items():
        bucket = UPDATE_OPERATORS.get(key)
        if bucket is None:
            raise InvalidUpdateError(
                ERR_MSG_INVALID_OPERATOR,
                f"unknown update operator {key!r}",
            )
        if bucket is Bucket.REMOVE:
            for name in _removal_names(key, operand):
                spec.place(bucket, name)
            continue
        if not isinstance(operand, Mapping):
            raise InvalidUpdateError(
                ERR_MSG_INVALID_OPERAND,
                f"{key} expects a mapping of fields, got {type(operand).__name__}",
            )
        for name, value in operand.items():
            _check_field_key(key, name)
            if bucket is Bucket.INCREMENT and not _is_number(value):
                raise InvalidUpdateError(
                    ERR_MSG_INVALID_OPERAND,
                    f"{key} on {name!r} expects a number, got {value!r}",
                )
            spec.place(bucket, name, value)

    if spec.is_empty():
        raise InvalidUpdateError(
            ERR_MSG_INVALID_UPDATE,
            f"update {list(update)!r} produced no operations",
        )
    return spec


def _is_operator_key(key: Any) -> bool:
    if not isinstance(key, str):
        raise InvalidUpdateError(
            ERR_MSG_INVALID_UPDATE,
            f"update keys must be strings, got {key!r}",
        )
    return key.startswith(OPERATOR_PREFIX)


def _check_field_key(operator: str, name: Any) -> None:
    if not isinstance(name, str) or not name or name.startswith(OPERATOR_PREFIX):
        raise InvalidUpdateError(
            ERR_MSG_INVALID_OPERAND,
            f"{operator} has invalid field name {name!r}",
        )


def _removal_names(operator: str, operand: Any) -> list[str]:
    if isinstance(operand, Mapping):
        names = list(operand)
    elif isinstance(operand, (list, tuple)):
        names = list(operand)
    else:
        raise InvalidUpdateError(
            ERR_MSG_INVALID_OPERAND,
            f"{operator} expects a mapping or list of fields, got {type(operand).__name__}",
        )
    for name in names:
        _check_field_key(operator, name)
    return names


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)
