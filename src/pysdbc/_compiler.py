"""Parameterized SQL compilation of parsed conditions and updates."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from io import StringIO
from typing import TYPE_CHECKING, Any

from pysdbc._constants import ALWAYS_FALSE, ALWAYS_TRUE
from pysdbc._errors import (
    ERR_MSG_INVALID_OPERAND,
    ERR_MSG_INVALID_UPDATE,
    ERR_MSG_UNSUPPORTED_PATTERN,
    InvalidFilterError,
    InvalidUpdateError,
    UnsupportedOperatorForDialectError,
)
from pysdbc._operators import (
    COMPARISON_OPERATORS,
    MEMBERSHIP_OPS,
    NULL_AWARE_OPS,
    Bucket,
    Connective,
    Operator,
)
from pysdbc._utils import escape_like_pattern, regex_to_literal
from pysdbc.conditions import Condition, ConditionGroup, ConditionNode
from pysdbc.updates import UpdateSpec

if TYPE_CHECKING:
    from pysdbc.dialect._base import SQLDialect

# Pattern options that do not change the meaning of a literal substring
_NEUTRAL_PATTERN_OPTIONS = {"m", "s"}

# Compiled-pattern flags a substring match can honor (UNICODE is implicit for str)
_SUPPORTED_PATTERN_FLAGS = re.IGNORECASE | re.MULTILINE | re.DOTALL | re.UNICODE


@dataclass(frozen=True)
class Result:
    """A SQL fragment or statement with its bound parameters in text order."""

    sql: str
    parameters: list[Any] = field(default_factory=list)


class SQLCompiler:
    """Compiles conditions and update specs into parameterized SQL.

    One instance owns one parameter list: compiling a SET clause and then a
    WHERE clause numbers placeholders monotonically in text order.
    """

    def __init__(self, dialect: SQLDialect, *, start_index: int = 1) -> None:
        if start_index < 1:
            raise ValueError(f"start_index must be >= 1, got {start_index}")
        self._dialect = dialect
        self._parameters: list[Any] = []
        self._param_count = start_index - 1

    @property
    def dialect(self) -> SQLDialect:
        return self._dialect

    @property
    def parameters(self) -> list[Any]:
        return self._parameters

    def _add_param(self, value: Any) -> int:
        """Add a parameter and return its 1-based index."""
        self._param_count += 1
        self._parameters.append(value)
        return self._param_count

    def _write_param(self, w: StringIO, value: Any) -> None:
        self._dialect.write_param_placeholder(w, self._add_param(value))

    # --- WHERE ---

    def compile_where(self, conditions: Sequence[ConditionNode]) -> str:
        """Compile conditions into a WHERE clause body (without ``WHERE``)."""
        w = StringIO()
        self._write_conjunction(w, conditions)
        return w.getvalue()

    def _write_conjunction(self, w: StringIO, conditions: Sequence[ConditionNode]) -> None:
        if not conditions:
            w.write(ALWAYS_TRUE)
            return
        for i, node in enumerate(conditions):
            if i > 0:
                w.write(" AND ")
            self._write_node(w, node)

    def _write_node(self, w: StringIO, node: ConditionNode) -> None:
        if isinstance(node, ConditionGroup):
            self._write_group(w, node)
        else:
            self._write_leaf(w, node)

    def _write_group(self, w: StringIO, group: ConditionGroup) -> None:
        if not group.children:
            w.write(ALWAYS_TRUE)
            return
        joiner = " OR " if group.connective is Connective.OR else " AND "
        w.write("(")
        for i, child in enumerate(group.children):
            if i > 0:
                w.write(joiner)
            if len(child) > 1:
                w.write("(")
                self._write_conjunction(w, child)
                w.write(")")
            else:
                self._write_conjunction(w, child)
        w.write(")")

    def _write_leaf(self, w: StringIO, leaf: Condition) -> None:
        column = self._dialect.render_field(leaf.field)
        op = leaf.operator

        if op in COMPARISON_OPERATORS:
            if leaf.value is None:
                if op not in NULL_AWARE_OPS:
                    raise InvalidFilterError(
                        ERR_MSG_INVALID_OPERAND,
                        f"{op} on {leaf.field!r} cannot compare against null",
                    )
                w.write(f"{column} IS NULL" if op is Operator.EQ else f"{column} IS NOT NULL")
                return
            w.write(f"{column} {COMPARISON_OPERATORS[op]} ")
            self._write_param(w, leaf.value)
        elif op is Operator.EXISTS:
            w.write(f"{column} IS NOT NULL" if leaf.value else f"{column} IS NULL")
        elif op in MEMBERSHIP_OPS:
            self._write_membership(w, column, leaf)
        elif op is Operator.REGEX:
            self._write_pattern(w, column, leaf)
        else:
            raise UnsupportedOperatorForDialectError(
                "operator not supported by dialect",
                f"operator {op} has no {self._dialect.name} rendering",
            )

    def _write_membership(self, w: StringIO, column: str, leaf: Condition) -> None:
        negated = leaf.operator is Operator.NIN
        values = [v for v in leaf.value if v is not None]
        has_null = len(values) != len(leaf.value)

        if not leaf.value:
            w.write(ALWAYS_TRUE if negated else ALWAYS_FALSE)
            return
        if not values:
            w.write(f"{column} IS NOT NULL" if negated else f"{column} IS NULL")
            return

        if has_null:
            w.write("(")
        w.write(f"{column} NOT IN (" if negated else f"{column} IN (")
        for i, value in enumerate(values):
            if i > 0:
                w.write(", ")
            self._write_param(w, value)
        w.write(")")
        if has_null:
            w.write(f" AND {column} IS NOT NULL)" if negated else f" OR {column} IS NULL)")

    def _write_pattern(self, w: StringIO, column: str, leaf: Condition) -> None:
        pattern = leaf.value
        case_insensitive = False
        if isinstance(pattern, re.Pattern):
            unsupported = pattern.flags & ~_SUPPORTED_PATTERN_FLAGS
            if unsupported:
                raise UnsupportedOperatorForDialectError(
                    ERR_MSG_UNSUPPORTED_PATTERN,
                    f"pattern flags {re.RegexFlag(unsupported)!r} on {leaf.field!r} "
                    "are not supported",
                )
            case_insensitive = bool(pattern.flags & re.IGNORECASE)
            pattern = pattern.pattern
        for flag in leaf.options:
            if flag == "i":
                case_insensitive = True
            elif flag not in _NEUTRAL_PATTERN_OPTIONS:
                raise UnsupportedOperatorForDialectError(
                    ERR_MSG_UNSUPPORTED_PATTERN,
                    f"pattern option {flag!r} on {leaf.field!r} is not supported",
                )
        if not isinstance(pattern, str):
            raise InvalidFilterError(
                ERR_MSG_INVALID_OPERAND,
                f"{leaf.operator} on {leaf.field!r} expects a text pattern",
            )

        literal = regex_to_literal(pattern)
        escaped = escape_like_pattern(literal)
        self._dialect.write_like(
            w,
            lambda: w.write(column),
            lambda: self._write_param(w, f"%{escaped}%"),
            case_insensitive,
        )
        if escaped != literal:
            self._dialect.write_like_escape(w)

    # --- SET ---

    def compile_set(self, spec: UpdateSpec) -> str:
        """Compile an update spec into a SET clause body (without ``SET``).

        Raises:
            InvalidUpdateError: If the spec is empty or uses append/detach.
        """
        if spec.append or spec.detach:
            raise InvalidUpdateError(
                ERR_MSG_INVALID_UPDATE,
                f"array append/detach is not representable on {self._dialect.name}",
            )
        if spec.is_empty():
            raise InvalidUpdateError(
                ERR_MSG_INVALID_UPDATE,
                "update has no fields to set",
            )

        w = StringIO()
        first = True
        for bucket in spec.order:
            for name, value in spec.items(bucket):
                if not first:
                    w.write(", ")
                first = False
                column = self._dialect.render_field(name)
                match bucket:
                    case Bucket.ASSIGN:
                        w.write(f"{column} = ")
                        self._write_param(w, value)
                    case Bucket.INCREMENT:
                        w.write(f"{column} = {column} + ")
                        self._write_param(w, value)
                    case Bucket.REMOVE:
                        w.write(f"{column} = NULL")
        return w.getvalue()

    # --- VALUES ---

    def compile_values(self, values: Sequence[Any]) -> str:
        """Bind each value and return the comma separated placeholders."""
        w = StringIO()
        for i, value in enumerate(values):
            if i > 0:
                w.write(", ")
            self._write_param(w, value)
        return w.getvalue()
