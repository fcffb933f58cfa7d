"""Declarative filter parsing.

Normalizes a Mongo-style filter mapping into an ordered list of
:class:`Condition` leaves and :class:`ConditionGroup` nodes. The parser has
no backend knowledge; dialect compilers consume its output.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from pysdbc._constants import DEFAULT_MAX_FILTER_DEPTH, OPERATOR_PREFIX
from pysdbc._errors import (
    ERR_MSG_INVALID_FILTER,
    ERR_MSG_INVALID_OPERAND,
    ERR_MSG_INVALID_OPERATOR,
    ERR_MSG_TYPE_MISMATCH,
    ERR_MSG_UNKNOWN_FIELD,
    InvalidFilterError,
    InvalidSchemaError,
    MaxDepthExceededError,
)
from pysdbc._operators import PATTERN_OPTIONS_KEY, Connective, Operator
from pysdbc.schema import TableShape, value_matches_type


@dataclass(frozen=True)
class Condition:
    """A single ``(field, operator, value)`` leaf."""

    field: str
    operator: Operator
    value: Any
    options: str = ""


@dataclass(frozen=True)
class ConditionGroup:
    """A logical group; each child is the parsed form of one sub-filter."""

    connective: Connective
    children: tuple[tuple[ConditionNode, ...], ...]


ConditionNode = Condition | ConditionGroup


def parse_condition(
    filter: Mapping[str, Any] | None,
    *,
    max_depth: int = DEFAULT_MAX_FILTER_DEPTH,
) -> list[ConditionNode]:
    """Parse a declarative filter into conditions.

    Args:
        filter: Mapping of field name to a literal (implicit equality) or an
            operator mapping, plus optional ``$and``/``$or`` group keys.
            ``None`` is treated as an empty filter.
        max_depth: Maximum nesting of logical groups.

    Returns:
        Conditions in input key order.

    Raises:
        InvalidFilterError: If the filter is malformed.
        MaxDepthExceededError: If groups nest deeper than ``max_depth``.
    """
    if filter is None:
        return []
    return _parse(filter, 0, max_depth)


def _parse(filter: Any, depth: int, max_depth: int) -> list[ConditionNode]:
    if depth > max_depth:
        raise MaxDepthExceededError(
            "maximum filter nesting depth exceeded",
            f"depth {depth} exceeds limit {max_depth}",
        )
    if not isinstance(filter, Mapping):
        raise InvalidFilterError(
            ERR_MSG_INVALID_FILTER,
            f"filter must be a mapping, got {type(filter).__name__}",
        )

    conditions: list[ConditionNode] = []
    for key, value in filter.items():
        if not isinstance(key, str):
            raise InvalidFilterError(
                ERR_MSG_INVALID_FILTER,
                f"filter keys must be strings, got {key!r}",
            )
        if key.startswith(OPERATOR_PREFIX):
            conditions.append(_parse_group(key, value, depth, max_depth))
        elif _is_operator_mapping(key, value):
            conditions.extend(_parse_operators(key, value))
        else:
            conditions.append(Condition(key, Operator.EQ, value))
    return conditions


def _is_operator_mapping(field: str, value: Any) -> bool:
    """Decide whether a field's value is an operator mapping or a literal."""
    if not isinstance(value, Mapping) or not value:
        return False
    flags = [isinstance(k, str) and k.startswith(OPERATOR_PREFIX) for k in value]
    if all(flags):
        return True
    if any(flags):
        raise InvalidFilterError(
            ERR_MSG_INVALID_FILTER,
            f"condition on {field!r} mixes operators and plain keys",
        )
    return False


def _parse_group(key: str, value: Any, depth: int, max_depth: int) -> ConditionGroup:
    try:
        connective = Connective(key)
    except ValueError:
        raise InvalidFilterError(
            ERR_MSG_INVALID_OPERATOR,
            f"unknown top-level operator {key!r}",
        ) from None
    if not isinstance(value, (list, tuple)):
        raise InvalidFilterError(
            ERR_MSG_INVALID_OPERAND,
            f"{key} expects a list of filters, got {type(value).__name__}",
        )
    children = tuple(tuple(_parse(child, depth + 1, max_depth)) for child in value)
    return ConditionGroup(connective, children)


def _parse_operators(field: str, ops: Mapping[str, Any]) -> list[Condition]:
    options = ops.get(PATTERN_OPTIONS_KEY, "")
    if PATTERN_OPTIONS_KEY in ops:
        if Operator.REGEX.value not in ops:
            raise InvalidFilterError(
                ERR_MSG_INVALID_OPERAND,
                f"{PATTERN_OPTIONS_KEY} on {field!r} requires {Operator.REGEX}",
            )
        if not isinstance(options, str):
            raise InvalidFilterError(
                ERR_MSG_INVALID_OPERAND,
                f"{PATTERN_OPTIONS_KEY} on {field!r} must be a string",
            )

    conditions: list[Condition] = []
    for key, value in ops.items():
        if key == PATTERN_OPTIONS_KEY:
            continue
        try:
            op = Operator(key)
        except ValueError:
            raise InvalidFilterError(
                ERR_MSG_INVALID_OPERATOR,
                f"unknown operator {key!r} on field {field!r}",
            ) from None
        conditions.append(_make_leaf(field, op, value, options))
    return conditions


def _make_leaf(field: str, op: Operator, value: Any, options: str) -> Condition:
    match op:
        case Operator.IN | Operator.NIN:
            if not isinstance(value, (list, tuple)):
                raise InvalidFilterError(
                    ERR_MSG_INVALID_OPERAND,
                    f"{op} on {field!r} expects a list, got {type(value).__name__}",
                )
            return Condition(field, op, list(value))
        case Operator.EXISTS:
            if not isinstance(value, bool) and value not in (0, 1):
                raise InvalidFilterError(
                    ERR_MSG_INVALID_OPERAND,
                    f"{op} on {field!r} expects a boolean, got {value!r}",
                )
            return Condition(field, op, bool(value))
        case Operator.REGEX:
            if not isinstance(value, (str, re.Pattern)):
                raise InvalidFilterError(
                    ERR_MSG_INVALID_OPERAND,
                    f"{op} on {field!r} expects a string or compiled pattern",
                )
            return Condition(field, op, value, options)
        case _:
            return Condition(field, op, value)


def iter_leaves(conditions: list[ConditionNode]) -> Iterator[Condition]:
    """Yield every leaf condition, depth first, in visitation order."""
    for node in conditions:
        if isinstance(node, ConditionGroup):
            for child in node.children:
                yield from iter_leaves(list(child))
        else:
            yield node


def check_condition_types(
    conditions: list[ConditionNode],
    shape: TableShape,
    *,
    strict: bool = False,
) -> None:
    """Best-effort check of leaf values against declared field types.

    Raises:
        InvalidFilterError: If a value clearly does not fit its field type.
        InvalidSchemaError: If ``strict`` and a field is not declared.
    """
    for leaf in iter_leaves(conditions):
        root = leaf.field.split(".", 1)[0]
        declaration = shape.find_field(root)
        if declaration is None:
            if strict and root != shape.primary_key:
                raise InvalidSchemaError(
                    ERR_MSG_UNKNOWN_FIELD,
                    f"field {leaf.field!r} is not declared on {shape.name!r}",
                )
            continue
        # nested paths address inside structured values
        if root != leaf.field or leaf.operator in (Operator.REGEX, Operator.EXISTS):
            continue
        values = leaf.value if leaf.operator in (Operator.IN, Operator.NIN) else [leaf.value]
        for value in values:
            if not value_matches_type(declaration.type, value):
                raise InvalidFilterError(
                    ERR_MSG_TYPE_MISMATCH,
                    f"value {value!r} for {leaf.field!r} does not match "
                    f"declared type {declaration.type}",
                )
