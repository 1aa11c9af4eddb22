"""
Allocation engine: proportional distribution of a study-hours budget across subjects.
Two configurations share one distributor: lesson cycles (demand = unstudied lessons,
0.1h steps, equal-split overflow) and question cycles (demand = topics below target,
0.5h steps, global-ratio overflow).
"""
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, asdict
from typing import Iterable, List, NamedTuple, Optional

from engine import LESSON_GRANULARITY, MIN_SUBJECT_HOURS, QUESTION_GRANULARITY

logger = logging.getLogger(__name__)

EQUAL_SPLIT = "equal_split"
RATIO = "ratio"


class LessonDemand(NamedTuple):
    subject_id: str
    name: str
    unstudied_count: int


class PerformanceDemand(NamedTuple):
    subject_id: str
    name: str
    unmet_count: int
    total_topics: int


@dataclass(frozen=True)
class DemandEntry:
    """One subject's demand for an allocation round. Label is carried through untouched."""
    key: str
    label: str
    demand_count: int
    total_topics: Optional[int] = None


@dataclass
class AllocationResult:
    key: str
    label: str
    demand_count: int
    share_percent: float
    suggested_hours: float
    total_topics: Optional[int] = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class DistributionPolicy:
    """
    How one allocator variant rounds and corrects overflow.

    Attributes:
        name: label used in logs
        granularity: hour step suggested values are rounded to (0.1 or 0.5)
        share_decimals: decimals kept on share_percent (1 or 0)
        overflow: EQUAL_SPLIT or RATIO
    """
    name: str
    granularity: float
    share_decimals: int
    overflow: str

    @property
    def steps_per_hour(self) -> int:
        return round(1 / self.granularity)

    def round_hours(self, hours: float) -> float:
        return round_half_up(hours, self.steps_per_hour)

    def round_share(self, percent: float) -> float:
        share = round_half_up(percent, 10 ** self.share_decimals)
        return int(share) if self.share_decimals == 0 else share


@dataclass(frozen=True)
class CycleBudget:
    total_hours: float
    target_percentage: Optional[float] = None
    min_questions: Optional[int] = None


LESSON_POLICY = DistributionPolicy("lesson", LESSON_GRANULARITY, 1, EQUAL_SPLIT)
QUESTION_POLICY = DistributionPolicy("question", QUESTION_GRANULARITY, 0, RATIO)


def round_half_up(value: float, steps: int = 1) -> float:
    """Round to the nearest 1/steps, halves going up (0.25 -> 0.3 with steps=10)."""
    return math.floor(value * steps + 0.5) / steps


def _floor_round(hours: float, policy: DistributionPolicy) -> float:
    return max(MIN_SUBJECT_HOURS, policy.round_hours(hours))


def _correct_equal_split(results: List[AllocationResult], excess: float, policy: DistributionPolicy):
    # Single pass: what the floor keeps is not handed to anyone else.
    adjustable = [r for r in results if r.suggested_hours > MIN_SUBJECT_HOURS]
    if not adjustable:
        logger.debug(f"{policy.name}: excess {excess:.2f}h but every subject is at the floor")
        return
    reduction = excess / len(adjustable)
    for r in adjustable:
        r.suggested_hours = _floor_round(r.suggested_hours - reduction, policy)


def _correct_ratio(results: List[AllocationResult], total_hours: float, total_suggested: float, policy: DistributionPolicy):
    ratio = total_hours / total_suggested
    for r in results:
        r.suggested_hours = _floor_round(r.suggested_hours * ratio, policy)


def distribute_hours(entries: Iterable[DemandEntry], total_hours: float, policy: DistributionPolicy) -> List[AllocationResult]:
    """
    Split total_hours across entries in proportion to their demand.

    Args:
        entries: demand entries, already filtered to demand_count > 0
        total_hours: positive budget for the cycle
        policy: rounding and overflow configuration

    Returns:
        One AllocationResult per entry, in input order. Empty input gives an empty list.
    """
    entries = list(entries)
    if not entries:
        return []

    total_demand = sum(e.demand_count for e in entries)
    results = []
    for e in entries:
        fraction = e.demand_count / total_demand
        results.append(AllocationResult(
            key=e.key,
            label=e.label,
            demand_count=e.demand_count,
            share_percent=policy.round_share(fraction * 100),
            suggested_hours=_floor_round(fraction * total_hours, policy),
            total_topics=e.total_topics,
        ))

    total_suggested = sum(r.suggested_hours for r in results)
    if total_suggested > total_hours:
        logger.debug(
            f"{policy.name}: suggested {total_suggested:.2f}h over budget {total_hours}h, applying {policy.overflow}"
        )
        if policy.overflow == EQUAL_SPLIT:
            _correct_equal_split(results, total_suggested - total_hours, policy)
        elif policy.overflow == RATIO:
            _correct_ratio(results, total_hours, total_suggested, policy)
        else:
            raise ValueError(f"Unknown overflow policy: {policy.overflow}")

    return results


# Row keys as they come back from the subjects and exam_subjects tables.
FIELD_ALIASES = {"subject_id": ("id",), "name": ("subject_name",)}


def _mapping_value(item: Mapping, name: str):
    for key in (name,) + FIELD_ALIASES.get(name, ()):
        if key in item:
            return item[key]
    raise KeyError(name)


def _coerce(item, cls):
    """Accept a NamedTuple, a mapping (field names or id/subject_name row keys), an object with those attributes, or a plain tuple."""
    if isinstance(item, cls):
        return item
    if isinstance(item, Mapping):
        return cls(*(_mapping_value(item, f) for f in cls._fields))
    if all(hasattr(item, f) for f in cls._fields):
        return cls(*(getattr(item, f) for f in cls._fields))
    return cls(*item)


def compute_lesson_allocations(subjects: Iterable, total_hours: float) -> List[AllocationResult]:
    """
    Lesson-progress allocation: subjects with more unstudied lessons get more hours.
    Subjects with nothing left to study are left out; all caught up -> [].
    """
    demands = [_coerce(s, LessonDemand) for s in subjects]
    entries = [
        DemandEntry(d.subject_id, d.name, d.unstudied_count)
        for d in demands
        if d.unstudied_count > 0
    ]
    logger.debug(f"Lesson allocation: {len(entries)}/{len(demands)} subjects with unstudied lessons")
    return distribute_hours(entries, total_hours, LESSON_POLICY)


def compute_question_allocations(subjects: Iterable, total_hours: float) -> List[AllocationResult]:
    """
    Performance-gap allocation over per-subject (unmet, relevant) topic counts.
    Subjects with no relevant topics or no unmet topics are left out.
    """
    demands = [_coerce(s, PerformanceDemand) for s in subjects]
    entries = [
        DemandEntry(d.subject_id, d.name, d.unmet_count, d.total_topics)
        for d in demands
        if d.total_topics > 0 and d.unmet_count > 0
    ]
    logger.debug(f"Question allocation: {len(entries)}/{len(demands)} subjects below target")
    return distribute_hours(entries, total_hours, QUESTION_POLICY)
