"""
Cycle bookkeeping around the allocation engine: user overrides, the budget check
before saving, and studied-vs-allocated progress. The engine itself never sees overrides.
"""
import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from engine import MIN_SUBJECT_HOURS
from cycleplan.engine import AllocationResult

logger = logging.getLogger(__name__)

LESSON_CYCLE = "lesson"
QUESTION_CYCLE = "question"


class CycleError(Exception):
    """Base error for cycle planning and tracking."""


class InvalidHoursError(CycleError, ValueError):
    pass


class OverAllocationError(CycleError):
    def __init__(self, excess: float, total_allocated: float, total_hours: float):
        self.excess = excess
        self.total_allocated = total_allocated
        self.total_hours = total_hours
        super().__init__(
            f"Allocated {total_allocated:g}h exceeds the cycle budget of {total_hours:g}h by {excess:g}h"
        )


class NoActiveCycleError(CycleError):
    pass


@dataclass
class SubjectProgress:
    subject_id: str
    name: str
    allocated_hours: float
    studied_hours: float
    remaining_hours: float
    percent: float
    # unstudied lessons (lesson cycles) or unmet topics out of total_topics (question cycles)
    demand_count: int = 0
    total_topics: Optional[int] = None


def validate_override_hours(hours: float) -> float:
    """Any finite value of at least 1h. The form's 0.5h step is only the widget increment."""
    if hours is None or not math.isfinite(hours):
        raise InvalidHoursError(f"Override must be a number of hours, got {hours}")
    if hours < MIN_SUBJECT_HOURS:
        raise InvalidHoursError(f"Override must be at least {MIN_SUBJECT_HOURS:g}h, got {hours:g}h")
    return float(hours)


def apply_overrides(results: Iterable[AllocationResult], overrides: Optional[Mapping[str, float]] = None) -> List[Tuple[str, float]]:
    """
    Effective (subject_id, hours) per result: the override when given, else the suggestion.
    Overrides for subjects not in the results are ignored.
    """
    overrides = dict(overrides or {})
    effective = []
    for r in results:
        if r.key in overrides:
            effective.append((r.key, validate_override_hours(overrides.pop(r.key))))
        else:
            effective.append((r.key, r.suggested_hours))
    if overrides:
        logger.debug(f"Ignoring overrides for unknown subjects: {sorted(overrides)}")
    return effective


def total_allocated(effective: Iterable[Tuple[str, float]]) -> float:
    return sum(hours for _, hours in effective)


def over_allocation(effective: Iterable[Tuple[str, float]], total_hours: float) -> float:
    """Hours above the budget, 0 when within it. Sums of tenths are compared at 1e-6 precision."""
    return max(0.0, round(total_allocated(effective) - total_hours, 6))


def ensure_within_budget(effective: List[Tuple[str, float]], total_hours: float) -> None:
    allocated = total_allocated(effective)
    excess = over_allocation(effective, total_hours)
    if excess > 0:
        raise OverAllocationError(round(excess, 2), allocated, total_hours)


def validate_total_hours(total_hours: float) -> float:
    if total_hours is None or total_hours <= 0:
        raise InvalidHoursError(f"Total hours must be positive, got {total_hours}")
    return total_hours


def validate_study_hours(hours: float) -> float:
    if hours is None or hours <= 0:
        raise InvalidHoursError(f"Studied hours must be positive, got {hours}")
    return hours


def studied_hours_by_subject(sessions: Iterable[Dict]) -> Dict[str, float]:
    totals = defaultdict(float)
    for s in sessions:
        totals[s["subject_id"]] += s.get("hours_studied") or 0
    return dict(totals)


def subject_progress(allocated_hours: float, studied_hours: float, subject_id: str = "", name: str = "") -> SubjectProgress:
    remaining = max(0.0, allocated_hours - studied_hours)
    percent = (studied_hours / allocated_hours * 100) if allocated_hours > 0 else 0.0
    return SubjectProgress(subject_id, name, allocated_hours, studied_hours, remaining, percent)


def cycle_progress(
    allocations: Iterable[Dict],
    sessions: Iterable[Dict],
    names: Optional[Mapping[str, str]] = None,
) -> List[SubjectProgress]:
    """One progress row per allocation row, joined with logged study sessions."""
    studied = studied_hours_by_subject(sessions)
    names = names or {}
    return [
        subject_progress(
            a.get("allocated_hours") or 0,
            studied.get(a["subject_id"], 0.0),
            subject_id=a["subject_id"],
            name=names.get(a["subject_id"], "Subject"),
        )
        for a in allocations
    ]


def pending_total(progress: Iterable[SubjectProgress]) -> int:
    """Unstudied lessons or unmet topics summed over a cycle's subjects."""
    return sum(p.demand_count for p in progress)
