"""Update parser tests."""

import pytest

from pysdbc._errors import InvalidUpdateError
from pysdbc._operators import Bucket
from pysdbc.updates import parse_update


class TestBuckets:
    def test_flat_mapping_is_assign(self):
        spec = parse_update({"name": "X", "age": 3})
        assert spec.assign == {"name": "X", "age": 3}
        assert spec.order == [Bucket.ASSIGN]

    def test_operator_buckets(self):
        spec = parse_update(
            {
                "$set": {"name": "X"},
                "$inc": {"age": 1},
                "$unset": {"nickname": ""},
                "$push": {"tags": "a"},
                "$pull": {"roles": "guest"},
            }
        )
        assert spec.assign == {"name": "X"}
        assert spec.increment == {"age": 1}
        assert spec.remove == ["nickname"]
        assert spec.append == {"tags": "a"}
        assert spec.detach == {"roles": "guest"}
        assert spec.total_operations == 5

    def test_add_to_set_folds_into_append(self):
        spec = parse_update({"$addToSet": {"tags": "a"}})
        assert spec.append == {"tags": "a"}
        assert spec.order == [Bucket.APPEND]

    def test_unset_accepts_list(self):
        assert parse_update({"$unset": ["a", "b"]}).remove == ["a", "b"]

    def test_order_follows_operator_appearance(self):
        spec = parse_update({"$inc": {"age": 1}, "$set": {"name": "X"}})
        assert spec.order == [Bucket.INCREMENT, Bucket.ASSIGN]
        assert spec.items(Bucket.INCREMENT) == [("age", 1)]

    def test_last_write_wins(self):
        spec = parse_update({"$set": {"age": 5}, "$inc": {"age": 1}})
        assert spec.assign == {}
        assert spec.increment == {"age": 1}
        assert spec.total_operations == 1

    def test_removal_items_have_no_value(self):
        spec = parse_update({"$unset": {"a": 1}})
        assert spec.items(Bucket.REMOVE) == [("a", None)]

    def test_empty_input(self):
        assert parse_update({}).is_empty()


class TestInvalid:
    def test_unknown_operator(self):
        with pytest.raises(InvalidUpdateError, match="invalid operator"):
            parse_update({"$rename": {"a": "b"}})

    def test_mixed_keys(self):
        with pytest.raises(InvalidUpdateError):
            parse_update({"$set": {"a": 1}, "b": 2})

    def test_operand_not_mapping(self):
        with pytest.raises(InvalidUpdateError):
            parse_update({"$set": ["a"]})

    @pytest.mark.parametrize("delta", ["1", True, None])
    def test_increment_must_be_number(self, delta):
        with pytest.raises(InvalidUpdateError):
            parse_update({"$inc": {"age": delta}})

    def test_zero_operations_from_non_empty_input(self):
        with pytest.raises(InvalidUpdateError):
            parse_update({"$set": {}})

    def test_not_mapping(self):
        with pytest.raises(InvalidUpdateError):
            parse_update([("a", 1)])

    def test_operator_as_field_name(self):
        with pytest.raises(InvalidUpdateError):
            parse_update({"$set": {"$a": 1}})
