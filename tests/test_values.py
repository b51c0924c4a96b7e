"""
Tests for runtime values: construction, equality, collections and display.
"""

import math

import pytest

from chronobranch.runtime import (
    Value, int_val, float_val, bool_val, string_val, list_val, set_val,
    potential_marker, list_push, set_insert, format_value, to_plain, from_plain,
    wrap_python,
)
from chronobranch.types import INT, FLOAT, BOOL, STRING, LIST, SET, POTENTIAL, resolve_type_name


class TestValues:
    """Test runtime value wrappers."""

    def test_int_value(self):
        v = int_val(42)
        assert v.data == 42
        assert v.type == INT

    def test_float_value(self):
        v = float_val(3.14)
        assert v.data == 3.14
        assert v.type == FLOAT

    def test_bool_and_string(self):
        assert bool_val(True).type == BOOL
        assert string_val("hi").data == "hi"
        assert string_val("hi").type == STRING

    def test_values_are_immutable(self):
        v = int_val(1)
        with pytest.raises(AttributeError):
            v.data = 2

    def test_kinds_never_equal(self):
        """Values of different kinds are distinct even when Python says ==."""
        assert int_val(1) != float_val(1.0)
        assert int_val(1) != bool_val(True)
        assert string_val("1") != int_val(1)

    def test_float_equality_by_bits(self):
        nan = float_val(float("nan"))
        assert nan == float_val(float("nan"))
        assert float_val(0.0) != float_val(-0.0)

    def test_hash_consistent_with_eq(self):
        assert hash(int_val(7)) == hash(int_val(7))
        assert len({int_val(1), int_val(1), float_val(1.0)}) == 2

    def test_marker_type(self):
        marker = potential_marker(3, 2)
        assert marker.type == POTENTIAL
        assert not marker.type.is_bindable


class TestCollections:
    """Test list and set values."""

    def test_empty_list(self):
        xs = list_val()
        assert xs.type == LIST
        assert len(xs) == 0

    def test_list_push_on_empty_gives_singleton(self):
        xs = list_push(list_val(), int_val(5))
        assert xs.data == (int_val(5),)

    def test_list_push_appends_in_order(self):
        xs = list_val()
        for n in (3, 1, 2):
            xs = list_push(xs, int_val(n))
        assert [v.data for v in xs.data] == [3, 1, 2]

    def test_list_push_does_not_mutate(self):
        original = list_val([int_val(1)])
        list_push(original, int_val(2))
        assert len(original) == 1

    def test_set_insert_on_empty_gives_singleton(self):
        s = set_insert(set_val(), string_val("a"))
        assert s.data == frozenset({string_val("a")})

    def test_set_insert_duplicate_keeps_membership(self):
        s = set_insert(set_val([int_val(1)]), int_val(1))
        assert len(s) == 1
        assert s == set_val([int_val(1)])

    def test_set_members_distinguish_kinds(self):
        s = set_val([int_val(1), float_val(1.0)])
        assert len(s) == 2

    def test_structural_equality(self):
        assert list_val([int_val(1), int_val(2)]) == list_val([int_val(1), int_val(2)])
        assert list_val([int_val(1), int_val(2)]) != list_val([int_val(2), int_val(1)])
        assert set_val([int_val(1), int_val(2)]) == set_val([int_val(2), int_val(1)])

    def test_list_and_set_are_not_equal(self):
        assert list_val() != set_val()

    def test_len_of_scalar(self):
        with pytest.raises(TypeError):
            len(int_val(3))


class TestFormatting:
    """Test display forms."""

    @pytest.mark.parametrize("value,text", [
        (int_val(-4), "-4"),
        (float_val(2.5), "2.5"),
        (float_val(1.0), "1.0"),
        (bool_val(True), "true"),
        (bool_val(False), "false"),
        (string_val("plain"), "plain"),
        (list_val(), "[]"),
        (set_val(), "{}"),
        (potential_marker(1, 2), "<potential #1.2>"),
    ])
    def test_display(self, value, text):
        assert format_value(value) == text
        assert str(value) == text

    def test_strings_quoted_inside_collections(self):
        xs = list_val([string_val("a"), int_val(1)])
        assert format_value(xs) == '["a", 1]'

    def test_set_display_sorted(self):
        s = set_val([int_val(3), int_val(1), int_val(2)])
        assert format_value(s) == "{1, 2, 3}"

    def test_nested_collections(self):
        xs = list_val([list_val(), set_val([string_val("q")])])
        assert format_value(xs) == '[[], {"q"}]'


class TestPlainConversion:
    """Test conversion to and from dump data."""

    def test_scalar_to_plain(self):
        assert to_plain(int_val(3)) == {"type": "int", "value": 3}
        assert to_plain(string_val("s")) == {"type": "string", "value": "s"}

    def test_collection_to_plain(self):
        data = to_plain(list_val([int_val(1), set_val([bool_val(False)])]))
        assert data == {
            "type": "list",
            "items": [
                {"type": "int", "value": 1},
                {"type": "set", "items": [{"type": "bool", "value": False}]},
            ],
        }

    def test_from_plain_restores_nested_value(self):
        value = list_val([int_val(1), set_val([string_val("a"), string_val("b")])])
        assert from_plain(to_plain(value)) == value

    def test_from_plain_coerces_float(self):
        """A whole-number float read back from YAML/JSON stays a float."""
        assert from_plain({"type": "float", "value": 2}) == float_val(2.0)

    def test_from_plain_unknown_type(self):
        with pytest.raises(ValueError):
            from_plain({"type": "dict", "value": {}})

    def test_resolve_type_name(self):
        assert resolve_type_name("set") == SET
        assert resolve_type_name("matrix") is None


class TestWrapPython:
    """Test wrapping plain Python objects."""

    def test_scalars(self):
        assert wrap_python(True) == bool_val(True)
        assert wrap_python(3) == int_val(3)
        assert wrap_python(0.5) == float_val(0.5)
        assert wrap_python("x") == string_val("x")

    def test_collections(self):
        assert wrap_python([1, "a"]) == list_val([int_val(1), string_val("a")])
        assert wrap_python({1, 2}) == set_val([int_val(1), int_val(2)])

    def test_value_passes_through(self):
        v = int_val(1)
        assert wrap_python(v) is v

    def test_unsupported(self):
        with pytest.raises(TypeError):
            wrap_python({"a": 1})
