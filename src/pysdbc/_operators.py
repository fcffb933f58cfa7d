"""Declarative operator vocabulary and its backend mappings."""

from __future__ import annotations

import enum


class Operator(enum.StrEnum):
    EQ = "$eq"
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NIN = "$nin"
    REGEX = "$regex"
    EXISTS = "$exists"


class Connective(enum.StrEnum):
    AND = "$and"
    OR = "$or"


class Bucket(enum.StrEnum):
    ASSIGN = "assign"
    INCREMENT = "increment"
    REMOVE = "remove"
    APPEND = "append"
    DETACH = "detach"


PATTERN_OPTIONS_KEY = "$options"

# Declarative operator -> SQL comparison operator
COMPARISON_OPERATORS: dict[Operator, str] = {
    Operator.EQ: "=",
    Operator.NE: "!=",
    Operator.GT: ">",
    Operator.GTE: ">=",
    Operator.LT: "<",
    Operator.LTE: "<=",
}

# Operators with backend-specific NULL handling
NULL_AWARE_OPS = {Operator.EQ, Operator.NE}

MEMBERSHIP_OPS = {Operator.IN, Operator.NIN}

# Update operator key -> bucket ($addToSet folds into append)
UPDATE_OPERATORS: dict[str, Bucket] = {
    "$set": Bucket.ASSIGN,
    "$inc": Bucket.INCREMENT,
    "$unset": Bucket.REMOVE,
    "$push": Bucket.APPEND,
    "$addToSet": Bucket.APPEND,
    "$pull": Bucket.DETACH,
}

# Bucket -> native document-store update operator
NATIVE_UPDATE_OPERATORS: dict[Bucket, str] = {
    Bucket.ASSIGN: "$set",
    Bucket.INCREMENT: "$inc",
    Bucket.REMOVE: "$unset",
    Bucket.APPEND: "$push",
    Bucket.DETACH: "$pull",
}
