"""Parse semicolon CSVs (lessons, exam subjects/topics, notebook performance) and import them into Supabase."""
import argparse
import logging
from pathlib import Path

from db import (
    create_exam_subject,
    create_notebook,
    create_subject,
    find_exam_subject,
    find_exam_topic,
    get_supabase_uncached,
    insert_exam_topics,
    insert_lessons,
    insert_performance,
)

logger = logging.getLogger(__name__)

DELIMITER = ";"


def _data_lines(content: str) -> list[str]:
    """Non-blank lines without the header."""
    lines = [line for line in content.split("\n") if line.strip()]
    return lines[1:]


def parse_lessons_csv(content: str) -> list[dict]:
    """name;description -- the description keeps any further semicolons."""
    lessons = []
    skipped = 0
    for line in _data_lines(content):
        parts = line.split(DELIMITER)
        if len(parts) < 2:
            skipped += 1
            continue
        name = parts[0].strip()
        description = DELIMITER.join(parts[1:]).strip()
        if not name or not description:
            skipped += 1
            continue
        lessons.append({"name": name, "description": description})
    logger.debug("Parsed %d lessons (%d lines skipped)", len(lessons), skipped)
    return lessons


def parse_exam_subjects_csv(content: str) -> list[dict]:
    """subject;topic"""
    rows = []
    for line in _data_lines(content):
        parts = line.split(DELIMITER)
        if len(parts) < 2:
            continue
        subject = parts[0].strip()
        topic = parts[1].strip()
        if subject and topic:
            rows.append({"subject": subject, "topic": topic})
    return rows


def _parse_int(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_performance_csv(content: str) -> list[dict]:
    """notebook_id;subject;topic;correct;answered;total -- rows with non-integer counts are dropped."""
    rows = []
    for line in _data_lines(content):
        parts = line.split(DELIMITER)
        if len(parts) < 6:
            continue
        notebook_id, subject, topic = (p.strip() for p in parts[:3])
        correct, answered, total = (_parse_int(p) for p in parts[3:6])
        if not (notebook_id and subject and topic) or None in (correct, answered, total):
            continue
        rows.append({
            "notebook_id": notebook_id,
            "subject": subject,
            "topic": topic,
            "correct_answers": correct,
            "answered_questions": answered,
            "total_questions": total,
        })
    return rows


def group_topics(rows: list[dict]) -> dict[str, list[str]]:
    """subject -> topics, both in first-seen order, duplicates dropped."""
    grouped: dict[str, list[str]] = {}
    for row in rows:
        topics = grouped.setdefault(row["subject"], [])
        if row["topic"] not in topics:
            topics.append(row["topic"])
    return grouped


def import_lessons(client, user_id: str, subject_name: str, lessons: list[dict]) -> dict:
    if not lessons:
        raise ValueError("No valid lessons found in CSV")
    subject = create_subject(client, user_id, subject_name)
    inserted = insert_lessons(client, subject["id"], lessons)
    logger.info("Created subject %r with %d lessons", subject_name, len(inserted))
    return subject


def import_exam_subjects(client, user_id: str, rows: list[dict]) -> int:
    """Create each exam subject with its topics (all relevant). Returns the topic count."""
    if not rows:
        raise ValueError("No valid subjects found in CSV")
    n_topics = 0
    for subject_name, topics in group_topics(rows).items():
        subject = create_exam_subject(client, user_id, subject_name)
        n_topics += len(insert_exam_topics(client, subject["id"], topics))
    return n_topics


def import_performance(client, user_id: str, rows: list[dict]) -> tuple[int, int]:
    """
    Create one notebook (id from the first row) and its performance records.
    Rows whose subject or topic is not registered are skipped.

    Returns:
        (imported, skipped)
    """
    if not rows:
        raise ValueError("No valid data found in CSV")
    notebook = create_notebook(client, user_id, rows[0]["notebook_id"])
    records = []
    skipped = 0
    for row in rows:
        subject = find_exam_subject(client, user_id, row["subject"])
        topic = find_exam_topic(client, subject["id"], row["topic"]) if subject else None
        if not topic:
            logger.warning("Skipping %s / %s: subject or topic not registered", row["subject"], row["topic"])
            skipped += 1
            continue
        records.append({
            "notebook_id": notebook["id"],
            "exam_subject_id": subject["id"],
            "exam_topic_id": topic["id"],
            "correct_answers": row["correct_answers"],
            "answered_questions": row["answered_questions"],
            "total_questions": row["total_questions"],
        })
    insert_performance(client, records)
    return len(records), skipped


PARSERS = {
    "lessons": parse_lessons_csv,
    "exam-subjects": parse_exam_subjects_csv,
    "performance": parse_performance_csv,
}


def run_import(kind: str, csv_path: Path, user_id: str, subject: str | None = None, dry_run: bool = False):
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")
    rows = PARSERS[kind](csv_path.read_text(encoding="utf-8"))
    if dry_run:
        print(f"Dry run: parsed {len(rows)} {kind} rows from {csv_path}")
        if rows:
            print("Sample row:", rows[0])
        return
    client = get_supabase_uncached()
    if kind == "lessons":
        if not subject:
            raise ValueError("--subject is required for lesson imports")
        import_lessons(client, user_id, subject, rows)
        print(f"Imported {len(rows)} lessons into {subject!r}")
    elif kind == "exam-subjects":
        n_topics = import_exam_subjects(client, user_id, rows)
        print(f"Imported {n_topics} topics from {csv_path}")
    else:
        imported, skipped = import_performance(client, user_id, rows)
        print(f"Imported {imported} performance records ({skipped} skipped)")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Import semicolon-delimited CSVs into Supabase.")
    parser.add_argument("kind", choices=sorted(PARSERS), help="What the CSV contains")
    parser.add_argument("csv", help="Path to the .csv file (first line is a header)")
    parser.add_argument("--user-id", required=True, help="Owner of the imported rows")
    parser.add_argument("--subject", default=None, help="Subject name for lesson imports")
    parser.add_argument("--dry-run", action="store_true", help="Parse only, do not insert")
    args = parser.parse_args()
    run_import(args.kind, Path(args.csv), args.user_id, subject=args.subject, dry_run=args.dry_run)
