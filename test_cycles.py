"""Overrides, the save-time budget check, and studied-vs-allocated progress."""
import pytest

from cycleplan.cycles import (
    InvalidHoursError,
    OverAllocationError,
    apply_overrides,
    cycle_progress,
    ensure_within_budget,
    over_allocation,
    studied_hours_by_subject,
    subject_progress,
    total_allocated,
    validate_override_hours,
)
from cycleplan.engine import compute_lesson_allocations


@pytest.fixture
def results():
    return compute_lesson_allocations([("a", "A", 6), ("b", "B", 4)], 10)


def test_apply_overrides_replaces_suggestion(results):
    effective = apply_overrides(results, {"b": 2.5})
    assert effective == [("a", 6.0), ("b", 2.5)]


def test_apply_overrides_ignores_unknown_subjects(results):
    assert apply_overrides(results, {"zzz": 3}) == [("a", 6.0), ("b", 4.0)]
    assert apply_overrides(results, None) == [("a", 6.0), ("b", 4.0)]


@pytest.mark.parametrize("bad", [0.5, 0, -2, 0.99, float("nan"), float("inf"), None])
def test_override_must_be_at_least_one_hour(bad):
    with pytest.raises(InvalidHoursError):
        validate_override_hours(bad)


def test_valid_override_values():
    assert validate_override_hours(1) == 1.0
    assert validate_override_hours(7.5) == 7.5
    assert validate_override_hours(1.2) == 1.2


def test_override_off_the_half_hour_grid():
    results = compute_lesson_allocations([("a", "A", 1), ("b", "B", 2)], 10)
    assert [r.suggested_hours for r in results] == [3.3, 6.7]
    # one step down from the 0.1h suggestion
    effective = apply_overrides(results, {"a": 2.8})
    assert effective == [("a", 2.8), ("b", 6.7)]
    assert over_allocation(effective, 10) == 0.0
    ensure_within_budget(effective, 10)


def test_over_allocation_reports_excess(results):
    effective = apply_overrides(results, {"a": 8})
    assert total_allocated(effective) == 12.0
    assert over_allocation(effective, 10) == 2.0
    with pytest.raises(OverAllocationError) as exc:
        ensure_within_budget(effective, 10)
    assert exc.value.excess == 2.0
    assert "2h" in str(exc.value)


def test_within_budget_passes(results):
    effective = apply_overrides(results, {"a": 5})
    assert over_allocation(effective, 10) == 0.0
    ensure_within_budget(effective, 10)


def test_subject_progress():
    p = subject_progress(4.0, 1.0)
    assert (p.remaining_hours, p.percent) == (3.0, 25.0)
    over = subject_progress(2.0, 3.0)
    assert over.remaining_hours == 0.0
    assert over.percent == 150.0
    assert subject_progress(0, 1).percent == 0.0


def test_cycle_progress_joins_sessions():
    allocations = [{"subject_id": "a", "allocated_hours": 6}, {"subject_id": "b", "allocated_hours": 4}]
    sessions = [
        {"subject_id": "a", "hours_studied": 1.5},
        {"subject_id": "a", "hours_studied": 1.5},
        {"subject_id": "c", "hours_studied": 9},
    ]
    assert studied_hours_by_subject(sessions) == {"a": 3.0, "c": 9.0}
    rows = cycle_progress(allocations, sessions, {"a": "Alpha"})
    assert [(r.name, r.studied_hours, r.remaining_hours) for r in rows] == [("Alpha", 3.0, 3.0), ("Subject", 0.0, 4.0)]
    assert rows[0].percent == 50.0
