"""
Demand aggregation over flat Supabase rows.
Lessons -> unstudied counts per subject; topics + notebook performance -> unmet-target counts.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from engine import TOP_SUBJECTS
from cycleplan.engine import LessonDemand, round_half_up

logger = logging.getLogger(__name__)


@dataclass
class TopicStatus:
    topic_id: str
    name: str
    accuracy: int
    answered: int
    meets_target: bool


@dataclass
class SubjectPerformance:
    """Relevant-topic status for one exam subject. Satisfies the question allocator's input shape."""
    subject_id: str
    name: str
    unmet_count: int
    total_topics: int
    topics: List[TopicStatus] = field(default_factory=list)


def count_unstudied(subjects: Iterable[Dict], lessons: Iterable[Dict]) -> List[LessonDemand]:
    """
    Fold lesson rows into one (id, name, unstudied_count) per subject, in subject order.
    Subjects without lessons are kept with a count of 0; the allocator drops them.
    """
    unstudied = defaultdict(int)
    for lesson in lessons:
        if not lesson.get("is_studied"):
            unstudied[lesson["subject_id"]] += 1
    return [LessonDemand(s["id"], s["name"], unstudied[s["id"]]) for s in subjects]


def topic_accuracy(correct: int, answered: int) -> int:
    """Whole-number accuracy percentage; 0 when nothing was answered."""
    if not answered:
        return 0
    return int(round_half_up(correct / answered * 100))


def latest_performance(records: Iterable[Dict]) -> Optional[Dict]:
    """Most recent record by created_at (ISO strings compare chronologically)."""
    latest = None
    for r in records:
        if latest is None or (r.get("created_at") or "") > (latest.get("created_at") or ""):
            latest = r
    return latest


def latest_result(records: Iterable[Dict]) -> Tuple[int, int]:
    """(accuracy, answered) of the most recent record; (0, 0) when there is none."""
    latest = latest_performance(records) or {}
    answered = latest.get("answered_questions") or 0
    return topic_accuracy(latest.get("correct_answers") or 0, answered), answered


def meets_target(accuracy: float, answered: int, target_percentage: float, min_questions: int) -> bool:
    return accuracy >= target_percentage and answered >= min_questions


def evaluate_topics(
    topics: Iterable[Dict],
    performances: Iterable[Dict],
    target_percentage: float,
    min_questions: int,
) -> List[TopicStatus]:
    """
    Status of every relevant topic against the target. Irrelevant topics are skipped.
    A topic never attempted has accuracy 0 and 0 answered, so it is always unmet.
    """
    by_topic = defaultdict(list)
    for p in performances:
        by_topic[p["exam_topic_id"]].append(p)

    statuses = []
    for topic in topics:
        if not topic.get("is_relevant", True):
            continue
        accuracy, answered = latest_result(by_topic.get(topic["id"], []))
        statuses.append(TopicStatus(
            topic_id=topic["id"],
            name=topic.get("topic_name", ""),
            accuracy=accuracy,
            answered=answered,
            meets_target=meets_target(accuracy, answered, target_percentage, min_questions),
        ))
    return statuses


def aggregate_subject_performance(
    subjects: Iterable[Dict],
    topics: Iterable[Dict],
    performances: Iterable[Dict],
    target_percentage: float,
    min_questions: int,
    include_met: bool = False,
) -> List[SubjectPerformance]:
    """
    Per-subject unmet-target counts, ready for compute_question_allocations.

    Args:
        subjects: exam_subjects rows (id, subject_name)
        topics: exam_topics rows (id, exam_subject_id, topic_name, is_relevant)
        performances: question_performance rows (exam_topic_id, correct_answers, answered_questions, created_at)
        target_percentage: minimum accuracy (0-100) for a topic to count as met
        min_questions: minimum answered questions for the accuracy to count
        include_met: keep subjects whose relevant topics all meet the target (tracking views)

    Returns:
        Subjects with at least one relevant topic (and, unless include_met, at least one unmet).
    """
    performances = list(performances)
    topics_by_subject = defaultdict(list)
    for t in topics:
        topics_by_subject[t["exam_subject_id"]].append(t)

    out = []
    for s in subjects:
        statuses = evaluate_topics(topics_by_subject.get(s["id"], []), performances, target_percentage, min_questions)
        if not statuses:
            continue
        unmet = sum(1 for t in statuses if not t.meets_target)
        if unmet == 0 and not include_met:
            continue
        out.append(SubjectPerformance(s["id"], s.get("subject_name", ""), unmet, len(statuses), statuses))
    logger.debug(f"Aggregated performance: {len(out)} subjects (target {target_percentage}%, min {min_questions} questions)")
    return out


def summarize_performance(exam_subjects: Iterable[Dict], performances: Iterable[Dict], top_n: int = TOP_SUBJECTS) -> Dict:
    """Dashboard totals: answered, correct, average accuracy and the best subjects by accuracy."""
    names = {s["id"]: s.get("subject_name", "") for s in exam_subjects}
    per_subject = {}
    total_answered = 0
    total_correct = 0
    for p in performances:
        answered = p.get("answered_questions") or 0
        correct = p.get("correct_answers") or 0
        total_answered += answered
        total_correct += correct
        name = names.get(p.get("exam_subject_id"))
        if name is None:
            continue
        stats = per_subject.setdefault(name, {"correct": 0, "total": 0})
        stats["correct"] += correct
        stats["total"] += answered

    top = sorted(
        (
            {"name": name, "accuracy": (st["correct"] / st["total"] * 100) if st["total"] > 0 else 0.0}
            for name, st in per_subject.items()
        ),
        key=lambda x: x["accuracy"],
        reverse=True,
    )
    return {
        "total_answered": total_answered,
        "total_correct": total_correct,
        "average_accuracy": (total_correct / total_answered * 100) if total_answered > 0 else 0.0,
        "top_subjects": top[:top_n],
    }
