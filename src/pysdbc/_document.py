"""Native document-store compilation of parsed conditions and updates."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pysdbc._errors import ERR_MSG_INVALID_UPDATE, InvalidUpdateError
from pysdbc._operators import NATIVE_UPDATE_OPERATORS, PATTERN_OPTIONS_KEY, Bucket, Operator
from pysdbc.conditions import Condition, ConditionGroup, ConditionNode
from pysdbc.statements import ProjectionSpec, SortSpec, normalize_projection, normalize_sort
from pysdbc.updates import UpdateSpec


class DocumentCompiler:
    """Compiles conditions and update specs into native filter documents.

    Output is a plain mapping handed to the driver as-is; no parameters.
    """

    def compile_filter(self, conditions: Sequence[ConditionNode]) -> dict[str, Any]:
        native: dict[str, Any] = {}
        # fields currently holding a bare equality value
        direct: set[str] = set()
        for node in conditions:
            if isinstance(node, ConditionGroup):
                compiled = [self.compile_filter(child) for child in node.children]
                if compiled:
                    native.setdefault(node.connective.value, []).extend(compiled)
                continue
            self._merge_leaf(native, direct, node)
        return native

    def _merge_leaf(self, native: dict[str, Any], direct: set[str], leaf: Condition) -> None:
        name = leaf.field
        if name not in native:
            if leaf.operator is Operator.EQ:
                native[name] = leaf.value
                direct.add(name)
                return
            native[name] = {}
        elif name in direct:
            native[name] = {Operator.EQ.value: native[name]}
            direct.discard(name)

        ops = native[name]
        ops[leaf.operator.value] = leaf.value
        if leaf.operator is Operator.REGEX and leaf.options:
            ops[PATTERN_OPTIONS_KEY] = leaf.options

    def compile_update(self, spec: UpdateSpec) -> dict[str, Any]:
        """Map update buckets to native update operators.

        Raises:
            InvalidUpdateError: If the spec holds no operations.
        """
        if spec.is_empty():
            raise InvalidUpdateError(
                ERR_MSG_INVALID_UPDATE,
                "update has no operations",
            )
        native: dict[str, Any] = {}
        for bucket in spec.order:
            items = spec.items(bucket)
            if not items:
                continue
            key = NATIVE_UPDATE_OPERATORS[bucket]
            if bucket is Bucket.REMOVE:
                native[key] = {name: "" for name, _ in items}
            else:
                native[key] = dict(items)
        return native

    def compile_projection(self, select: ProjectionSpec | None) -> dict[str, int]:
        return normalize_projection(select)

    def compile_sort(self, sort: SortSpec | None) -> list[tuple[str, int]]:
        return normalize_sort(sort)
