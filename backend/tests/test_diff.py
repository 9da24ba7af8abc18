"""
Tests for the recipe change detection functions.

Tests cover:
- Absent values and the numeric tolerance
- Scalar field diffs
- Ingredient matching by SKU
- Step lists and settings blobs
- Comparator properties (Hypothesis)
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings, strategies as st

from rest_api.services.revisions.diff import (
    ChangeKind,
    diff_children,
    diff_opaque_collection,
    diff_scalars,
    diff_settings,
    is_absent,
    parse_number,
    stringify_value,
    values_differ,
)


class TestValueComparison:
    """Tests for values_differ() and its helpers."""

    @pytest.mark.parametrize("value", [None, "", "   ", "\t\n"])
    def test_absent_values(self, value):
        assert is_absent(value)

    @pytest.mark.parametrize("value", [0, 0.0, False, "0", "x"])
    def test_present_values(self, value):
        assert not is_absent(value)

    def test_absent_states_are_equal(self):
        """None, empty and blank strings are one state."""
        assert not values_differ(None, "")
        assert not values_differ("  ", None)

    def test_absent_versus_zero_is_a_change(self):
        assert values_differ(None, 0)
        assert values_differ("", "0")

    def test_string_and_number_within_tolerance(self):
        """"10.00" -> 10.0001 is not a change."""
        assert not values_differ("10.00", 10.0001)

    def test_string_and_number_beyond_tolerance(self):
        assert values_differ("10.00", 10.01)

    def test_decimal_comma(self):
        assert parse_number("10,5") == 10.5
        assert not values_differ("10,5", 10.5)

    def test_decimal_type(self):
        assert not values_differ(Decimal("2.50"), 2.5)

    def test_booleans_compare_as_numbers(self):
        assert not values_differ(True, 1)
        assert values_differ(True, False)

    def test_non_finite_falls_back_to_text(self):
        assert parse_number("nan") is None
        assert parse_number(float("inf")) is None
        assert not values_differ("nan", "nan")
        assert values_differ("nan", "inf")

    def test_text_is_trimmed(self):
        assert not values_differ("Flour ", " Flour")
        assert values_differ("Flour", "flour")

    def test_integers_too_large_for_float_fall_back_to_text(self):
        assert parse_number(10**400) is None
        assert values_differ(10**400, 1)
        assert not values_differ(10**400, 10**400)


class TestStringify:
    """Tests for stringify_value()"""

    def test_values(self):
        assert stringify_value(None) is None
        assert stringify_value(True) == "true"
        assert stringify_value(3.0) == "3.0"
        assert stringify_value(2.5) == "2.5"
        assert stringify_value("abc") == "abc"

    def test_structures_are_compact_json(self):
        assert stringify_value({"a": 1}) == '{"a":1}'
        assert stringify_value([1, 2]) == "[1,2]"


class TestDiffScalars:
    """Tests for diff_scalars()"""

    def test_reports_changed_watched_fields_in_order(self):
        pre = {"name": "Cookies", "waste_percent": 2.5, "notes": None}
        post = {"name": "Cookies XL", "waste_percent": 3.0, "notes": ""}

        changes = diff_scalars(pre, post, ["waste_percent", "notes", "name"])

        assert [c.field for c in changes] == ["waste_percent", "name"]
        assert changes[0].kind == ChangeKind.FIELD
        assert changes[0].old_value == 2.5
        assert changes[0].new_value == 3.0

    def test_ignores_unwatched_fields(self):
        changes = diff_scalars({"selling_price": 1}, {"selling_price": 2}, ["name"])
        assert changes == []

    def test_identical_images_have_no_changes(self):
        image = {"name": "Cookies", "waste_percent": 2.5}
        assert diff_scalars(image, dict(image), ["name", "waste_percent"]) == []


class TestDiffChildren:
    """Tests for diff_children()"""

    FLOUR = {"id": 1, "sku": "FLOUR-00", "name": "Flour 00", "qty_original": 50.0}
    BUTTER = {"id": 2, "sku": "BUTTER-82", "name": "Butter", "qty_original": 30.0}
    SUGAR = {"id": 3, "sku": "SUGAR", "name": "Sugar", "qty_original": 20.0}

    def test_added_removed_modified_order(self):
        pre = [self.FLOUR, self.BUTTER]
        post = [{**self.FLOUR, "id": 9, "qty_original": 55.0}, self.SUGAR]

        changes = diff_children(pre, post, ["name", "qty_original"])

        assert [c.kind for c in changes] == [
            ChangeKind.CHILD_REMOVED,
            ChangeKind.CHILD_ADDED,
            ChangeKind.CHILD_MODIFIED,
        ]
        removed, added, modified = changes
        assert removed.field == "ingredient"
        assert removed.old_value["sku"] == "BUTTER-82"
        assert added.new_value["sku"] == "SUGAR"
        assert modified.field == "ingredient.qty_original"
        assert (modified.old_value, modified.new_value) == (50.0, 55.0)

    def test_reinserted_child_with_same_values_is_no_change(self):
        """A new row id under the same SKU is not a remove/add pair."""
        post = [{**self.FLOUR, "id": 42}]
        assert diff_children([self.FLOUR], post, ["name", "qty_original"]) == []

    def test_one_descriptor_per_changed_field(self):
        post = [{**self.FLOUR, "name": "Flour Type 00", "qty_original": 51.0}]
        changes = diff_children([self.FLOUR], post, ["name", "qty_original"])
        assert [c.field for c in changes] == ["ingredient.name", "ingredient.qty_original"]
        assert all(c.child["sku"] == "FLOUR-00" for c in changes)

    def test_sku_is_trimmed_for_matching(self):
        post = [{**self.FLOUR, "sku": " FLOUR-00 "}]
        assert diff_children([self.FLOUR], post, ["name"]) == []

    def test_renamed_child_is_named_by_its_old_name(self):
        post = [{**self.FLOUR, "name": "Flour Type 00"}]
        changes = diff_children([self.FLOUR], post, ["name"])
        assert changes[0].child["name"] == "Flour 00"
        assert changes[0].new_value == "Flour Type 00"


class TestOpaqueCollections:
    """Tests for diff_opaque_collection() and diff_settings()"""

    KEYS = ("temperature", "minutes", "order")

    def test_equal_lists_ignore_ids_and_number_types(self):
        pre = [{"id": 1, "temperature": 180, "minutes": 8, "order": 0}]
        post = [{"id": 7, "temperature": 180.0, "minutes": 8.0, "order": 0}]
        assert diff_opaque_collection("oven_temperatures", pre, post, self.KEYS) == []

    def test_reordered_list_is_a_change(self):
        a = {"temperature": 180, "minutes": 8, "order": 0}
        b = {"temperature": 160, "minutes": 6, "order": 1}
        changes = diff_opaque_collection("oven_temperatures", [a, b], [b, a], self.KEYS)
        assert len(changes) == 1
        assert changes[0].kind == ChangeKind.COLLECTION
        assert changes[0].field == "oven_temperatures"

    def test_cleared_list_is_a_change(self):
        pre = [{"minutes": 4, "speed": 1, "order": 0}]
        assert len(diff_opaque_collection("mixing_times", pre, [])) == 1

    def test_integers_too_large_for_float_are_compared_as_is(self):
        assert len(diff_opaque_collection("steps", [{"a": 10**400}], [{"a": 1}])) == 1
        assert diff_opaque_collection("steps", [{"a": 10**400}], [{"a": 10**400}]) == []

    def test_settings_key_order_is_irrelevant(self):
        assert diff_settings("depositor_settings", '{"a": 1, "b": 2}', '{"b": 2, "a": 1}') == []

    def test_settings_value_change(self):
        changes = diff_settings("depositor_settings", '{"speed": 10}', '{"speed": 12}')
        assert len(changes) == 1
        assert changes[0].new_value == {"speed": 12}

    def test_settings_absent_states(self):
        assert diff_settings("depositor_settings", None, "") == []
        assert len(diff_settings("depositor_settings", None, "{}")) == 1


class TestComparatorProperties:
    """Property-based tests for the comparator."""

    numbers = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False)

    @given(value=numbers)
    @settings(max_examples=100)
    def test_number_equals_its_text(self, value):
        """Property: a number never differs from its own string form."""
        assert not values_differ(value, str(value))

    @given(a=st.one_of(st.none(), st.text(max_size=20), numbers, st.booleans()),
           b=st.one_of(st.none(), st.text(max_size=20), numbers, st.booleans()))
    @settings(max_examples=200)
    def test_symmetric(self, a, b):
        """Property: values_differ(a, b) == values_differ(b, a)."""
        assert values_differ(a, b) == values_differ(b, a)

    @given(image=st.dictionaries(
        st.sampled_from(["name", "notes", "waste_percent", "water_percent"]),
        st.one_of(st.none(), st.text(max_size=10), numbers),
    ))
    @settings(max_examples=100)
    def test_identical_images_never_differ(self, image):
        """Property: diffing an image against a copy of itself finds nothing."""
        fields = ["name", "notes", "waste_percent", "water_percent"]
        assert diff_scalars(image, dict(image), fields) == []
