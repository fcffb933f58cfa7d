"""Condition parser tests."""

import re
from datetime import datetime

import pytest

from pysdbc._errors import InvalidFilterError, InvalidSchemaError, MaxDepthExceededError
from pysdbc._operators import Connective, Operator
from pysdbc.conditions import (
    Condition,
    ConditionGroup,
    check_condition_types,
    iter_leaves,
    parse_condition,
)


class TestLeaves:
    def test_implicit_equality(self):
        assert parse_condition({"name": "alice"}) == [Condition("name", Operator.EQ, "alice")]

    def test_none_and_empty(self):
        assert parse_condition(None) == []
        assert parse_condition({}) == []

    def test_null_is_equality_leaf(self):
        assert parse_condition({"deleted": None}) == [Condition("deleted", Operator.EQ, None)]

    def test_key_order_preserved(self):
        result = parse_condition({"b": 1, "a": 2, "c": 3})
        assert [leaf.field for leaf in result] == ["b", "a", "c"]

    def test_operator_mapping_expands_per_operator(self):
        result = parse_condition({"age": {"$gte": 18, "$lt": 65}})
        assert result == [
            Condition("age", Operator.GTE, 18),
            Condition("age", Operator.LT, 65),
        ]

    def test_datetime_is_literal(self):
        ts = datetime(2024, 1, 1)
        assert parse_condition({"createdAt": ts}) == [Condition("createdAt", Operator.EQ, ts)]

    def test_pattern_object_is_literal(self):
        pattern = re.compile("ali")
        assert parse_condition({"name": pattern})[0].operator is Operator.EQ

    def test_mapping_without_operators_is_literal(self):
        value = {"city": "Oslo"}
        assert parse_condition({"address": value}) == [Condition("address", Operator.EQ, value)]

    def test_list_is_literal(self):
        assert parse_condition({"tags": ["a", "b"]})[0].value == ["a", "b"]

    def test_in_stores_list(self):
        leaf = parse_condition({"x": {"$in": ("a", "b")}})[0]
        assert leaf.operator is Operator.IN
        assert leaf.value == ["a", "b"]

    def test_exists_normalized_to_bool(self):
        assert parse_condition({"x": {"$exists": 1}})[0].value is True
        assert parse_condition({"x": {"$exists": False}})[0].value is False

    def test_regex_options_attached(self):
        leaf = parse_condition({"name": {"$regex": "ali", "$options": "i"}})[0]
        assert leaf == Condition("name", Operator.REGEX, "ali", "i")


class TestGroups:
    def test_or_group(self):
        result = parse_condition({"$or": [{"a": 1}, {"b": 2}]})
        assert result == [
            ConditionGroup(
                Connective.OR,
                ((Condition("a", Operator.EQ, 1),), (Condition("b", Operator.EQ, 2),)),
            )
        ]

    def test_group_after_leaf(self):
        result = parse_condition({"a": 1, "$and": [{"b": 2}]})
        assert isinstance(result[0], Condition)
        assert isinstance(result[1], ConditionGroup)

    def test_empty_group(self):
        assert parse_condition({"$or": []}) == [ConditionGroup(Connective.OR, ())]

    def test_nested_groups(self):
        result = parse_condition({"$or": [{"$and": [{"a": 1}, {"b": 2}]}, {"c": 3}]})
        inner = result[0].children[0][0]
        assert isinstance(inner, ConditionGroup)
        assert inner.connective is Connective.AND

    def test_iter_leaves_visitation_order(self):
        result = parse_condition({"a": 1, "$or": [{"b": 2}, {"c": 3, "d": 4}]})
        assert [leaf.field for leaf in iter_leaves(result)] == ["a", "b", "c", "d"]


class TestInvalid:
    def test_unknown_operator(self):
        with pytest.raises(InvalidFilterError, match="invalid operator"):
            parse_condition({"age": {"$between": [1, 2]}})

    def test_unknown_top_level_operator(self):
        with pytest.raises(InvalidFilterError):
            parse_condition({"$nor": [{"a": 1}]})

    def test_mixed_operator_and_plain_keys(self):
        with pytest.raises(InvalidFilterError):
            parse_condition({"age": {"$gt": 1, "value": 2}})

    def test_group_value_not_list(self):
        with pytest.raises(InvalidFilterError):
            parse_condition({"$or": {"a": 1}})

    def test_group_child_not_mapping(self):
        with pytest.raises(InvalidFilterError):
            parse_condition({"$or": ["a"]})

    def test_in_requires_list(self):
        with pytest.raises(InvalidFilterError):
            parse_condition({"x": {"$in": "abc"}})

    def test_exists_requires_bool(self):
        with pytest.raises(InvalidFilterError):
            parse_condition({"x": {"$exists": "yes"}})

    def test_regex_requires_text(self):
        with pytest.raises(InvalidFilterError):
            parse_condition({"x": {"$regex": 5}})

    def test_options_without_regex(self):
        with pytest.raises(InvalidFilterError):
            parse_condition({"x": {"$eq": "a", "$options": "i"}})

    def test_filter_not_mapping(self):
        with pytest.raises(InvalidFilterError):
            parse_condition(["a"])

    def test_non_string_key(self):
        with pytest.raises(InvalidFilterError):
            parse_condition({1: "a"})

    def test_max_depth(self):
        nested = {"a": 1}
        for _ in range(5):
            nested = {"$and": [nested]}
        with pytest.raises(MaxDepthExceededError):
            parse_condition(nested, max_depth=3)
        assert parse_condition(nested, max_depth=5)


class TestConditionTypes:
    def test_matching_values_pass(self, users_shape):
        check_condition_types(parse_condition({"age": 3, "name": "x"}), users_shape)

    def test_mismatch_raises(self, users_shape):
        with pytest.raises(InvalidFilterError, match="does not match"):
            check_condition_types(parse_condition({"age": "old"}), users_shape)

    def test_membership_elements_checked(self, users_shape):
        with pytest.raises(InvalidFilterError):
            check_condition_types(parse_condition({"age": {"$in": [1, "two"]}}), users_shape)

    def test_unknown_field_ignored_unless_strict(self, users_shape):
        conditions = parse_condition({"nickname": "x"})
        check_condition_types(conditions, users_shape)
        with pytest.raises(InvalidSchemaError):
            check_condition_types(conditions, users_shape, strict=True)

    def test_primary_key_always_known(self, users_shape):
        check_condition_types(parse_condition({"_id": "abc"}), users_shape, strict=True)
