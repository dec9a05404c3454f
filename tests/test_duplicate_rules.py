"""
Tests for Duplicate Detection
"""

from datetime import date

import pytest

from patronclean.services.duplicate_rules import (
    DuplicateAction,
    DuplicateOccurrence,
    DuplicatePlan,
    DuplicatePolicy,
    action_for_policy,
    describe_action,
    duplicate_key,
    find_duplicates,
    interactive_prompt,
)


class TestDuplicateKey:
    def test_string_and_number_differ(self):
        assert duplicate_key("1") != duplicate_key(1)

    def test_int_and_float_compare_by_value(self):
        assert duplicate_key(1) == duplicate_key(1.0)

    def test_dates(self):
        assert duplicate_key(date(2020, 1, 1)) == ("date", date(2020, 1, 1))

    @pytest.mark.parametrize("value", ["", None, True, False])
    def test_ignored_cells(self, value):
        assert duplicate_key(value) is None


class TestFindDuplicates:
    def test_later_occurrences_reported(self):
        found = find_duplicates(["Name", "A", "A", "B", "A"], "C")
        assert [d.row for d in found] == [3, 5]
        assert all(d.first_occurrence == "C2" for d in found)
        assert found[0].address == "C3"

    def test_header_not_compared(self):
        assert find_duplicates(["Name", "Name"], "A") == []

    def test_empty_cells_not_duplicates(self):
        assert find_duplicates(["Name", "", "", None, None], "A") == []

    def test_booleans_not_duplicates(self):
        assert find_duplicates(["Flag", True, True], "A") == []

    def test_mixed_types(self):
        found = find_duplicates(["Id", "1", 1, 1.0, "1"], "A")
        assert [(d.row, d.first_occurrence) for d in found] == [(4, "A3"), (5, "A2")]


class TestDuplicatePlan:
    def _occurrence(self, row, column="A"):
        return DuplicateOccurrence(column=column, row=row, value="x", first_occurrence=f"{column}2")

    def test_deletion_order_descending(self):
        plan = DuplicatePlan()
        plan.add(self._occurrence(3), DuplicateAction.REMOVE_ROW)
        plan.add(self._occurrence(7), DuplicateAction.REMOVE_ROW)
        plan.add(self._occurrence(5), DuplicateAction.REMOVE_ROW)
        assert plan.deletion_order() == [7, 5, 3]

    def test_same_row_deleted_once(self):
        plan = DuplicatePlan()
        plan.add(self._occurrence(4, "A"), DuplicateAction.REMOVE_ROW)
        plan.add(self._occurrence(4, "B"), DuplicateAction.REMOVE_ROW)
        assert plan.deletion_order() == [4]
        assert len(plan.handled) == 2

    def test_clear_and_skip(self):
        plan = DuplicatePlan()
        plan.add(self._occurrence(3), DuplicateAction.CLEAR_CELL)
        plan.add(self._occurrence(4), DuplicateAction.SKIP)
        assert plan.cells_to_clear == ["A3"]
        assert [o.row for o in plan.skipped] == [4]
        assert len(plan.handled) == 1


class TestPolicies:
    def test_bulk_policies(self):
        assert action_for_policy(DuplicatePolicy.REMOVE_ROW) is DuplicateAction.REMOVE_ROW
        assert action_for_policy(DuplicatePolicy.CLEAR_CELL) is DuplicateAction.CLEAR_CELL

    def test_interactive_has_no_bulk_action(self):
        with pytest.raises(ValueError):
            action_for_policy(DuplicatePolicy.INTERACTIVE)


class TestMessages:
    def test_prompt(self):
        occurrence = DuplicateOccurrence(column="B", row=6, value=9876543210.0, first_occurrence="B2")
        assert interactive_prompt(occurrence) == 'Value: "9876543210" at B6\nFirst seen at B2'

    def test_describe_removed_row(self):
        occurrence = DuplicateOccurrence(column="A", row=5, value="x", first_occurrence="A2")
        assert describe_action(occurrence, DuplicateAction.REMOVE_ROW) == (
            "Removed duplicate row. Value was 'x', first seen at A2."
        )

    def test_describe_cleared_cell(self):
        occurrence = DuplicateOccurrence(column="A", row=5, value="x", first_occurrence="A2")
        assert describe_action(occurrence, DuplicateAction.CLEAR_CELL).startswith("Cleared duplicate cell.")
