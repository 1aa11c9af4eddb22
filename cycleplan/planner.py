"""
Cycle planning against Supabase.
Reads demand (lessons or topic performance), runs the allocation engine, saves cycles and tracks progress.
"""
import logging
from typing import Dict, List, Mapping, Optional, Tuple
from uuid import UUID

import db
from engine import DEFAULT_MIN_QUESTIONS, DEFAULT_TARGET_PERCENTAGE
from cycleplan.cycles import (
    LESSON_CYCLE,
    QUESTION_CYCLE,
    CycleError,
    NoActiveCycleError,
    SubjectProgress,
    apply_overrides,
    cycle_progress,
    ensure_within_budget,
    validate_study_hours,
    validate_total_hours,
)
from cycleplan.engine import (
    AllocationResult,
    CycleBudget,
    LessonDemand,
    compute_lesson_allocations,
    compute_question_allocations,
)
from cycleplan.performance import SubjectPerformance, aggregate_subject_performance, count_unstudied

logger = logging.getLogger(__name__)


def validate_budget(budget: CycleBudget) -> CycleBudget:
    """Question-cycle settings: positive hours, target in 0-100, non-negative question minimum."""
    validate_total_hours(budget.total_hours)
    target = DEFAULT_TARGET_PERCENTAGE if budget.target_percentage is None else budget.target_percentage
    min_questions = DEFAULT_MIN_QUESTIONS if budget.min_questions is None else budget.min_questions
    if not 0 <= target <= 100:
        raise ValueError(f"Target percentage must be between 0 and 100, got {target}")
    if min_questions < 0:
        raise ValueError(f"Minimum questions must be >= 0, got {min_questions}")
    return CycleBudget(budget.total_hours, target, min_questions)


class CyclePlanner:
    """Wrapper around a Supabase client with lesson/question cycle operations."""

    def __init__(self, client=None):
        self.client = client if client is not None else db.get_supabase_uncached()

    # ============= Demand =============

    def lesson_demand(self, user_id: UUID | str) -> List[LessonDemand]:
        subjects = db.get_subjects(self.client, user_id)
        lessons = db.get_lessons(self.client, [s["id"] for s in subjects])
        return count_unstudied(subjects, lessons)

    def performance_demand(
        self,
        user_id: UUID | str,
        target_percentage: float,
        min_questions: int,
        include_met: bool = False,
    ) -> List[SubjectPerformance]:
        subjects = db.get_exam_subjects(self.client, user_id)
        subject_ids = [s["id"] for s in subjects]
        topics = db.get_exam_topics(self.client, subject_ids, relevant_only=True)
        performances = db.get_performances(self.client, subject_ids)
        return aggregate_subject_performance(
            subjects, topics, performances, target_percentage, min_questions, include_met=include_met
        )

    # ============= Proposals =============

    def propose_lesson_cycle(self, user_id: UUID | str, total_hours: float) -> List[AllocationResult]:
        validate_total_hours(total_hours)
        return compute_lesson_allocations(self.lesson_demand(user_id), total_hours)

    def propose_question_cycle(self, user_id: UUID | str, budget: CycleBudget) -> List[AllocationResult]:
        budget = validate_budget(budget)
        demand = self.performance_demand(user_id, budget.target_percentage, budget.min_questions)
        return compute_question_allocations(demand, budget.total_hours)

    # ============= Persistence =============

    def _save(self, user_id, kind: str, total_hours: float, results: List[AllocationResult], overrides, **settings) -> Dict:
        if not results:
            raise CycleError("No subjects to allocate")
        effective = apply_overrides(results, overrides)
        ensure_within_budget(effective, total_hours)
        cycle = db.create_cycle(self.client, user_id, kind, total_hours, **settings)
        db.insert_allocations(self.client, kind, cycle["id"], effective)
        logger.info(f"Saved {kind} cycle {cycle['id']}: {len(effective)} subjects, {total_hours}h")
        return cycle

    def save_lesson_cycle(
        self,
        user_id: UUID | str,
        total_hours: float,
        results: List[AllocationResult],
        overrides: Optional[Mapping[str, float]] = None,
    ) -> Dict:
        """
        Persist a lesson cycle and its allocations.

        Args:
            user_id: owner of the cycle
            total_hours: cycle budget
            results: allocation proposal shown to the user
            overrides: subject_id -> hours typed by the user, replacing the suggestion

        Returns:
            The inserted study_cycles row

        Raises:
            OverAllocationError: effective hours exceed total_hours
        """
        validate_total_hours(total_hours)
        return self._save(user_id, LESSON_CYCLE, total_hours, results, overrides)

    def save_question_cycle(
        self,
        user_id: UUID | str,
        budget: CycleBudget,
        results: List[AllocationResult],
        overrides: Optional[Mapping[str, float]] = None,
    ) -> Dict:
        budget = validate_budget(budget)
        return self._save(
            user_id,
            QUESTION_CYCLE,
            budget.total_hours,
            results,
            overrides,
            target_percentage=budget.target_percentage,
            min_questions=budget.min_questions,
        )

    # ============= Tracking =============

    def current_cycle(self, user_id: UUID | str, kind: str) -> Optional[Dict]:
        return db.get_latest_cycle(self.client, user_id, kind)

    def _require_cycle(self, user_id, kind: str) -> Dict:
        cycle = self.current_cycle(user_id, kind)
        if cycle is None:
            raise NoActiveCycleError(f"No active {kind} cycle")
        return cycle

    def _subject_names(self, user_id, kind: str) -> Dict[str, str]:
        if kind == LESSON_CYCLE:
            return {s["id"]: s["name"] for s in db.get_subjects(self.client, user_id)}
        return {s["id"]: s["subject_name"] for s in db.get_exam_subjects(self.client, user_id)}

    def _current_demand(self, user_id, kind: str, cycle: Dict) -> Dict[str, Tuple[int, Optional[int]]]:
        """subject_id -> (unstudied lessons, None) or (unmet topics, relevant topics) as of now."""
        if kind == LESSON_CYCLE:
            return {d.subject_id: (d.unstudied_count, None) for d in self.lesson_demand(user_id)}
        # judged against the settings saved with the cycle, not the current form values
        target = cycle.get("target_percentage")
        min_questions = cycle.get("min_questions")
        performance = self.performance_demand(
            user_id,
            DEFAULT_TARGET_PERCENTAGE if target is None else target,
            DEFAULT_MIN_QUESTIONS if min_questions is None else min_questions,
            include_met=True,
        )
        return {p.subject_id: (p.unmet_count, p.total_topics) for p in performance}

    def track_cycle(self, user_id: UUID | str, kind: str) -> List[SubjectProgress]:
        """
        Progress for each subject of the latest cycle ([] when none exists).

        Rows carry allocated vs studied hours plus the subject's current demand:
        unstudied lessons for lesson cycles, unmet out of relevant topics for
        question cycles (evaluated with the cycle's own target and minimum).
        """
        cycle = self.current_cycle(user_id, kind)
        if cycle is None:
            return []
        allocations = db.get_allocations(self.client, kind, cycle["id"])
        sessions = db.get_study_sessions(self.client, kind, cycle["id"])
        progress = cycle_progress(allocations, sessions, self._subject_names(user_id, kind))
        demand = self._current_demand(user_id, kind, cycle)
        missing = (0, None) if kind == LESSON_CYCLE else (0, 0)
        for p in progress:
            p.demand_count, p.total_topics = demand.get(p.subject_id, missing)
        return progress

    def log_study_hours(self, user_id: UUID | str, kind: str, subject_id: str, hours: float) -> Dict:
        validate_study_hours(hours)
        cycle = self._require_cycle(user_id, kind)
        row = db.insert_study_session(self.client, kind, cycle["id"], subject_id, hours)
        logger.info(f"Logged {hours}h for subject {subject_id} in {kind} cycle {cycle['id']}")
        return row

    def update_total_hours(self, user_id: UUID | str, kind: str, total_hours: float) -> Dict:
        validate_total_hours(total_hours)
        cycle = self._require_cycle(user_id, kind)
        db.update_cycle_total_hours(self.client, kind, cycle["id"], total_hours)
        return {**cycle, "total_hours": total_hours}
