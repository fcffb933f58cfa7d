"""Validation helpers, escaping, and pattern conversion utilities."""

from __future__ import annotations

import re

from pysdbc._errors import (
    ERR_MSG_UNSUPPORTED_PATTERN,
    InvalidFieldNameError,
    UnsupportedOperatorForDialectError,
)

FIELD_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

RESERVED_SQL_KEYWORDS: set[str] = {
    "all", "alter", "and", "any", "array", "as", "asc", "between",
    "by", "case", "cast", "check", "column", "constraint", "create",
    "cross", "current", "current_date", "current_time", "current_timestamp",
    "current_user", "default", "delete", "desc", "distinct", "drop",
    "else", "end", "except", "exists", "false", "for", "foreign",
    "from", "full", "grant", "group", "having", "in", "index", "inner",
    "insert", "intersect", "into", "is", "join", "key", "left", "like",
    "limit", "not", "null", "offset", "on", "or", "order", "outer",
    "primary", "references", "right", "select", "session_user", "set",
    "some", "table", "then", "to", "true", "union", "unique", "update",
    "user", "using", "values", "when", "where", "with",
}

# Characters with regex meaning that LIKE cannot reproduce
_REGEX_ANCHORS = {"^", "$"}
_REGEX_QUANTIFIERS = {"*", "+", "?", "{", "}"}
_REGEX_STRUCTURE = {".", "(", ")", "[", "]", "|"}
_REGEX_META = _REGEX_ANCHORS | _REGEX_QUANTIFIERS | _REGEX_STRUCTURE | {"\\"}


def validate_no_null_bytes(value: str, context: str = "field names") -> None:
    """Reject strings containing null bytes."""
    if "\x00" in value:
        raise InvalidFieldNameError(
            f"{context} cannot contain null bytes",
            f"null byte found in {context}: {value!r}",
        )


def validate_field_name(name: str, max_length: int) -> None:
    """Validate a SQL field/identifier name (``max_length`` 0 means no limit)."""
    if not name:
        raise InvalidFieldNameError(
            "field name cannot be empty",
            "empty field name provided",
        )
    validate_no_null_bytes(name)
    if max_length and len(name) > max_length:
        raise InvalidFieldNameError(
            "field name too long",
            f"field name '{name}' exceeds {max_length} characters",
        )
    if not FIELD_NAME_RE.match(name):
        raise InvalidFieldNameError(
            "invalid field name format",
            f"field name '{name}' contains invalid characters",
        )


def is_reserved_keyword(name: str) -> bool:
    return name.lower() in RESERVED_SQL_KEYWORDS


def escape_string_literal(value: str) -> str:
    """Escape a string for use as a SQL string literal."""
    return value.replace("'", "''")


def escape_like_pattern(pattern: str) -> str:
    """Escape LIKE wildcards so the pattern matches literally."""
    result = pattern.replace("\\", "\\\\")
    result = result.replace("%", "\\%")
    result = result.replace("_", "\\_")
    return result


def regex_to_literal(pattern: str) -> str:
    """Reduce a regex pattern to the literal text it matches as a substring.

    Escaped punctuation (``\\.``) becomes the literal character. Anchors,
    character classes, quantifiers, alternation and groups have no LIKE
    equivalent and raise UnsupportedOperatorForDialectError.
    """
    validate_no_null_bytes(pattern, "patterns")
    out: list[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\":
            if i + 1 >= len(pattern):
                raise UnsupportedOperatorForDialectError(
                    ERR_MSG_UNSUPPORTED_PATTERN,
                    f"pattern {pattern!r} ends with a dangling escape",
                )
            nxt = pattern[i + 1]
            if nxt.isalnum():
                raise UnsupportedOperatorForDialectError(
                    ERR_MSG_UNSUPPORTED_PATTERN,
                    f"character class '\\{nxt}' in pattern {pattern!r} "
                    "cannot be expressed as a substring match",
                )
            out.append(nxt)
            i += 2
            continue
        if ch in _REGEX_ANCHORS:
            raise UnsupportedOperatorForDialectError(
                ERR_MSG_UNSUPPORTED_PATTERN,
                f"anchor {ch!r} in pattern {pattern!r} is not preserved by substring match",
            )
        if ch in _REGEX_META:
            raise UnsupportedOperatorForDialectError(
                ERR_MSG_UNSUPPORTED_PATTERN,
                f"regex metacharacter {ch!r} in pattern {pattern!r} "
                "cannot be expressed as a substring match",
            )
        out.append(ch)
        i += 1
    return "".join(out)
