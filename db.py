"""Supabase CRUD for subjects, lessons, exam topics, performance and cycles. Client is cached via Streamlit."""
import logging
import os
from uuid import UUID

import streamlit as st
from dotenv import load_dotenv
from supabase import create_client, Client

load_dotenv()

log = logging.getLogger(__name__)

# kind -> (cycles table, allocations table, study sessions table)
CYCLE_TABLES = {
    "lesson": ("study_cycles", "cycle_allocations", "study_sessions"),
    "question": ("question_cycles", "question_cycle_allocations", "question_study_sessions"),
}


def _env_client() -> Client:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(url, key)


@st.cache_resource
def get_supabase() -> Client:
    return _env_client()


def get_supabase_uncached() -> Client:
    """For CLI/scripts (no Streamlit context)."""
    return _env_client()


def _cycle_tables(kind: str) -> tuple[str, str, str]:
    try:
        return CYCLE_TABLES[kind]
    except KeyError:
        raise ValueError(f"Unknown cycle kind: {kind!r}") from None


def fetch_all(client: Client, table: str, columns: str = "*", eq: dict | None = None, in_: dict | None = None, page_size: int = 1000) -> list[dict]:
    """Fetch every matching row in pages (Supabase default limit is often 1000)."""
    all_rows = []
    offset = 0
    while True:
        query = client.table(table).select(columns)
        for col, value in (eq or {}).items():
            query = query.eq(col, value)
        for col, values in (in_ or {}).items():
            query = query.in_(col, list(values))
        r = query.range(offset, offset + page_size - 1).execute()
        data = r.data or []
        if not data:
            break
        all_rows.extend(data)
        if len(data) < page_size:
            break
        offset += page_size
    return all_rows


def insert_chunked(client: Client, table: str, rows: list[dict], chunk_size: int = 200) -> list[dict]:
    """Insert rows in chunks; returns the inserted rows."""
    inserted = []
    n_chunks = (len(rows) + chunk_size - 1) // chunk_size
    for i in range(0, len(rows), chunk_size):
        chunk = rows[i : i + chunk_size]
        log.info("Inserting %s chunk %d/%d (%d rows)", table, i // chunk_size + 1, n_chunks, len(chunk))
        r = client.table(table).insert(chunk).execute()
        inserted.extend(r.data or [])
    return inserted


# --- Subjects & lessons ---

def get_subjects(client: Client, user_id: UUID | str) -> list[dict]:
    return client.table("subjects").select("id, name").eq("user_id", str(user_id)).order("name").execute().data or []


def create_subject(client: Client, user_id: UUID | str, name: str) -> dict:
    r = client.table("subjects").insert({"user_id": str(user_id), "name": name}).execute()
    return r.data[0]


def rename_subject(client: Client, subject_id: str, name: str):
    return client.table("subjects").update({"name": name}).eq("id", subject_id).execute()


def delete_subject(client: Client, subject_id: str):
    return client.table("subjects").delete().eq("id", subject_id).execute()


def get_lessons(client: Client, subject_ids: list[str]) -> list[dict]:
    if not subject_ids:
        return []
    return fetch_all(client, "lessons", "id, subject_id, name, description, is_studied", in_={"subject_id": subject_ids})


def insert_lessons(client: Client, subject_id: str, lessons: list[dict], chunk_size: int = 200) -> list[dict]:
    rows = [{"subject_id": subject_id, "name": l["name"], "description": l["description"]} for l in lessons]
    return insert_chunked(client, "lessons", rows, chunk_size=chunk_size)


def set_lesson_studied(client: Client, lesson_id: str, is_studied: bool):
    return client.table("lessons").update({"is_studied": is_studied}).eq("id", lesson_id).execute()


def update_lesson(client: Client, lesson_id: str, name: str, description: str):
    return client.table("lessons").update({"name": name, "description": description}).eq("id", lesson_id).execute()


def delete_lesson(client: Client, lesson_id: str):
    return client.table("lessons").delete().eq("id", lesson_id).execute()


# --- Exam subjects, topics, notebooks, performance ---

def get_exam_subjects(client: Client, user_id: UUID | str) -> list[dict]:
    return (
        client.table("exam_subjects")
        .select("id, subject_name")
        .eq("user_id", str(user_id))
        .order("subject_name")
        .execute()
        .data
        or []
    )


def find_exam_subject(client: Client, user_id: UUID | str, subject_name: str) -> dict | None:
    r = client.table("exam_subjects").select("id").eq("user_id", str(user_id)).eq("subject_name", subject_name).limit(1).execute()
    return (r.data or [None])[0]


def create_exam_subject(client: Client, user_id: UUID | str, subject_name: str) -> dict:
    r = client.table("exam_subjects").insert({"user_id": str(user_id), "subject_name": subject_name}).execute()
    return r.data[0]


def delete_exam_subject(client: Client, exam_subject_id: str):
    return client.table("exam_subjects").delete().eq("id", exam_subject_id).execute()


def get_exam_topics(client: Client, exam_subject_ids: list[str], relevant_only: bool = False) -> list[dict]:
    if not exam_subject_ids:
        return []
    eq = {"is_relevant": True} if relevant_only else None
    return fetch_all(client, "exam_topics", "id, exam_subject_id, topic_name, is_relevant", eq=eq, in_={"exam_subject_id": exam_subject_ids})


def insert_exam_topics(client: Client, exam_subject_id: str, topic_names: list[str]) -> list[dict]:
    rows = [{"exam_subject_id": exam_subject_id, "topic_name": t, "is_relevant": True} for t in topic_names]
    return insert_chunked(client, "exam_topics", rows)


def find_exam_topic(client: Client, exam_subject_id: str, topic_name: str) -> dict | None:
    r = client.table("exam_topics").select("id").eq("exam_subject_id", exam_subject_id).eq("topic_name", topic_name).limit(1).execute()
    return (r.data or [None])[0]


def set_topic_relevance(client: Client, topic_id: str, is_relevant: bool):
    return client.table("exam_topics").update({"is_relevant": is_relevant}).eq("id", topic_id).execute()


def create_notebook(client: Client, user_id: UUID | str, notebook_id: str) -> dict:
    r = client.table("question_notebooks").insert({"user_id": str(user_id), "notebook_id": notebook_id}).execute()
    return r.data[0]


def get_notebooks(client: Client, user_id: UUID | str) -> list[dict]:
    return client.table("question_notebooks").select("*").eq("user_id", str(user_id)).order("uploaded_at", desc=True).execute().data or []


def insert_performance(client: Client, rows: list[dict]) -> list[dict]:
    return insert_chunked(client, "question_performance", rows)


def get_performances(client: Client, exam_subject_ids: list[str]) -> list[dict]:
    if not exam_subject_ids:
        return []
    return fetch_all(
        client,
        "question_performance",
        "id, notebook_id, exam_subject_id, exam_topic_id, correct_answers, answered_questions, total_questions, created_at",
        in_={"exam_subject_id": exam_subject_ids},
    )


# --- Cycles ---

def get_latest_cycle(client: Client, user_id: UUID | str, kind: str) -> dict | None:
    cycles_table, _, _ = _cycle_tables(kind)
    r = client.table(cycles_table).select("*").eq("user_id", str(user_id)).order("created_at", desc=True).limit(1).execute()
    return (r.data or [None])[0]


def create_cycle(client: Client, user_id: UUID | str, kind: str, total_hours: float, **settings) -> dict:
    """Insert a cycle row. Question cycles also store target_percentage and min_questions."""
    cycles_table, _, _ = _cycle_tables(kind)
    row = {"user_id": str(user_id), "total_hours": total_hours, **settings}
    r = client.table(cycles_table).insert(row).execute()
    return r.data[0]


def update_cycle_total_hours(client: Client, kind: str, cycle_id: str, total_hours: float):
    cycles_table, _, _ = _cycle_tables(kind)
    return client.table(cycles_table).update({"total_hours": total_hours}).eq("id", cycle_id).execute()


def insert_allocations(client: Client, kind: str, cycle_id: str, allocations: list[tuple[str, float]]) -> list[dict]:
    _, allocations_table, _ = _cycle_tables(kind)
    rows = [{"cycle_id": cycle_id, "subject_id": subject_id, "allocated_hours": hours} for subject_id, hours in allocations]
    return insert_chunked(client, allocations_table, rows)


def get_allocations(client: Client, kind: str, cycle_id: str) -> list[dict]:
    _, allocations_table, _ = _cycle_tables(kind)
    return client.table(allocations_table).select("*").eq("cycle_id", cycle_id).execute().data or []


def get_study_sessions(client: Client, kind: str, cycle_id: str) -> list[dict]:
    _, _, sessions_table = _cycle_tables(kind)
    return fetch_all(client, sessions_table, eq={"cycle_id": cycle_id})


def insert_study_session(client: Client, kind: str, cycle_id: str, subject_id: str, hours_studied: float) -> dict:
    _, _, sessions_table = _cycle_tables(kind)
    row = {"cycle_id": cycle_id, "subject_id": subject_id, "hours_studied": hours_studied}
    r = client.table(sessions_table).insert(row).execute()
    return r.data[0]


# --- Dashboard ---

def get_dashboard_counts(client: Client, user_id: UUID | str) -> dict:
    """Returns dict with subject and lesson counts (for dashboard)."""
    out = {"subjects": 0, "lessons": 0, "studied": 0}
    try:
        subjects = get_subjects(client, user_id)
        lessons = get_lessons(client, [s["id"] for s in subjects])
        out["subjects"] = len(subjects)
        out["lessons"] = len(lessons)
        out["studied"] = sum(1 for l in lessons if l.get("is_studied"))
    except Exception as e:
        log.error(f"Error getting dashboard counts: {e}")
    return out
