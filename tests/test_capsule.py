"""Tests for the Extensions capsule and shared reference types."""

import pytest

from capsule import Extensions
from errors import InvalidInputError
from shared_types import EntityKind, EntityRef, RelationType, coerce_enum


class TestExtensions:
    def test_typed_getters(self):
        ext = Extensions({"name": "x", "n": 3, "ratio": 0.5, "on": True, "tags": ["a"], "meta": {"k": 1}})
        assert ext.get_str("name") == "x"
        assert ext.get_int("n") == 3
        assert ext.get_float("ratio") == 0.5
        assert ext.get_float("n") == 3.0
        assert ext.get_bool("on") is True
        assert ext.get_list("tags") == ["a"]
        assert ext.get_dict("meta") == {"k": 1}

    def test_missing_key(self):
        ext = Extensions()
        with pytest.raises(InvalidInputError):
            ext.get_str("absent")
        assert ext.get_str("absent", "fallback") == "fallback"

    def test_type_mismatch(self):
        ext = Extensions({"n": "3"})
        with pytest.raises(InvalidInputError):
            ext.get_int("n")

    def test_bool_is_not_int(self):
        ext = Extensions({"flag": True})
        with pytest.raises(InvalidInputError):
            ext.get_int("flag")

    def test_with_values_copies(self):
        ext = Extensions({"a": 1})
        changed = ext.with_values(b=2)
        assert changed == {"a": 1, "b": 2}
        assert ext == {"a": 1}

    def test_mapping_protocol(self):
        ext = Extensions({"a": 1, "b": 2})
        assert len(ext) == 2
        assert sorted(ext) == ["a", "b"]
        assert ext["a"] == 1
        assert ext.to_dict() == {"a": 1, "b": 2}


class TestEntityRef:
    def test_parse_and_str(self):
        ref = EntityRef.parse("task:abc")
        assert ref == EntityRef(EntityKind.TASK, "abc")
        assert str(ref) == "task:abc"

    def test_parse_rejects_missing_kind(self):
        with pytest.raises(InvalidInputError):
            EntityRef.parse("abc")

    def test_rejects_unknown_kind(self):
        with pytest.raises(InvalidInputError):
            EntityRef("epic", "1")

    def test_rejects_empty_id(self):
        with pytest.raises(InvalidInputError):
            EntityRef(EntityKind.TASK, "")

    def test_hashable(self):
        assert len({EntityRef("task", "1"), EntityRef(EntityKind.TASK, "1")}) == 1


def test_coerce_enum_message_lists_choices():
    with pytest.raises(InvalidInputError, match="blocks"):
        coerce_enum(RelationType, "nope", "relation type")
