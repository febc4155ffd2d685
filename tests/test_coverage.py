"""Coverage metrics and roster assignment validation tests."""

from types import SimpleNamespace

import pytest

from staff_roster.services.coverage import (
    compute_coverage,
    coverage_warning,
    engaged_headcount,
    validate_roster_assignments,
)
from staff_roster.schemas.store import StoreSettings


def _slots(*user_ids):
    return [SimpleNamespace(user_id=uid) for uid in user_ids]


def _users(*ids):
    return {i: SimpleNamespace(id=i, full_name=f"User {i}") for i in ids}


class TestComputeCoverage:

    def test_partial_coverage(self):
        metrics = compute_coverage(_slots(1, 2, None), 3)
        assert metrics.total_slots == 3
        assert metrics.filled_slots == 2
        assert metrics.vacant_slots == 1
        assert metrics.coverage_percentage == 66.7
        assert metrics.actual_staff == 2

    def test_capped_at_hundred(self):
        assert compute_coverage(_slots(1, 2, 3, 4), 2).coverage_percentage == 100.0

    def test_no_filled_slots_is_zero(self):
        assert compute_coverage(_slots(None, None), 0).coverage_percentage == 0.0
        assert compute_coverage([], 3).coverage_percentage == 0.0

    def test_zero_minimum_with_staff_is_full(self):
        assert compute_coverage(_slots(1), 0).coverage_percentage == 100.0

    def test_actual_staff_counts_distinct_users(self):
        metrics = compute_coverage(_slots(1, 1, 2), 3)
        assert metrics.filled_slots == 3
        assert metrics.actual_staff == 2

    def test_warnings_carried(self):
        assert compute_coverage(_slots(1), 1, warnings=["x"]).warnings == ["x"]


def test_coverage_warning_message():
    assert coverage_warning(compute_coverage(_slots(1, 2), 3)) == "Coverage is 66.7% (2/3 required)"
    assert coverage_warning(compute_coverage(_slots(None), 3)) == "Coverage is 0% (0/3 required)"
    assert coverage_warning(compute_coverage(_slots(1, 2, 3), 3)) is None


def test_engaged_headcount_prefers_actual_user():
    slots = [
        SimpleNamespace(user_id=1, actual_user_id=None),
        SimpleNamespace(user_id=2, actual_user_id=3),
        SimpleNamespace(user_id=None, actual_user_id=None),
        SimpleNamespace(user_id=4, actual_user_id=1),
    ]
    assert engaged_headcount(slots) == 2


class TestValidateRosterAssignments:

    def _codes(self, result):
        return [e.code for e in result.errors]

    def test_valid_roster(self):
        settings = StoreSettings(min_staff_per_shift=2, max_staff_per_shift=5)
        result = validate_roster_assignments(_slots(1, 2), settings, _users(1, 2))
        assert result.valid
        assert result.warnings == []

    def test_min_staff_not_met(self):
        settings = StoreSettings(min_staff_per_shift=3)
        result = validate_roster_assignments(_slots(1), settings, _users(1))
        assert self._codes(result) == ["MIN_STAFF_NOT_MET"]
        assert result.warnings == ["Coverage is 33.3% (1/3 required)"]

    def test_max_staff_exceeded(self):
        settings = StoreSettings(min_staff_per_shift=1, max_staff_per_shift=2)
        result = validate_roster_assignments(_slots(1, 2, 3), settings, _users(1, 2, 3))
        assert self._codes(result) == ["MAX_STAFF_EXCEEDED"]

    def test_unknown_user(self):
        settings = StoreSettings(min_staff_per_shift=1)
        result = validate_roster_assignments(_slots(1, 42), settings, _users(1))
        assert self._codes(result) == ["USER_NOT_FOUND"]
        assert result.errors[0].field == "slots[1].userId"

    def test_duplicate_assignment(self):
        settings = StoreSettings(min_staff_per_shift=1)
        result = validate_roster_assignments(_slots(1, 1), settings, _users(1))
        assert self._codes(result) == ["DUPLICATE_ASSIGNMENT"]

    def test_vacant_slots_are_not_checked(self):
        settings = StoreSettings(min_staff_per_shift=2)
        result = validate_roster_assignments(_slots(None, None), settings, {})
        assert result.valid

    @pytest.mark.parametrize("allow_overlap, expected", [(False, ["SHIFT_CONFLICT"]), (True, [])])
    def test_shift_conflict(self, allow_overlap, expected):
        settings = StoreSettings(min_staff_per_shift=1, allow_overlap=allow_overlap)
        other = SimpleNamespace(shift_name="Evening Shift", slots=_slots(1))
        result = validate_roster_assignments(_slots(1), settings, _users(1), [other])
        assert self._codes(result) == expected

    def test_to_dict(self):
        settings = StoreSettings(min_staff_per_shift=2)
        data = validate_roster_assignments(_slots(1), settings, _users(1)).to_dict()
        assert data["valid"] is False
        assert data["errors"][0] == {
            "field": "slots",
            "message": "Minimum 2 staff required, 1 assigned",
            "code": "MIN_STAFF_NOT_MET",
        }
