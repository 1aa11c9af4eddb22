"""Supabase helpers against the in-memory fake, plus the printed schema."""
import pytest

import db
from init_db import schema_statements


def test_env_client_requires_credentials(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
        db.get_supabase_uncached()


def test_fetch_all_pages_through_results(fake_client):
    fake_client.tables["lessons"] = [{"id": str(i), "subject_id": "s" if i % 2 else "t"} for i in range(7)]
    rows = db.fetch_all(fake_client, "lessons", eq={"subject_id": "s"}, page_size=2)
    assert [r["id"] for r in rows] == ["1", "3", "5"]
    # two full pages and a short one
    assert fake_client.queries == 2


def test_unknown_cycle_kind(fake_client, user_id):
    with pytest.raises(ValueError, match="Unknown cycle kind"):
        db.get_latest_cycle(fake_client, user_id, "weekly")


def test_lesson_crud(fake_client, user_id):
    subject = db.create_subject(fake_client, user_id, "Civil")
    inserted = db.insert_lessons(fake_client, subject["id"], [{"name": "A1", "description": "x"}, {"name": "A2", "description": "y"}], chunk_size=1)
    assert len(inserted) == 2
    db.set_lesson_studied(fake_client, inserted[0]["id"], True)
    db.update_lesson(fake_client, inserted[1]["id"], "A2b", "z")
    db.delete_lesson(fake_client, inserted[0]["id"])
    lessons = db.get_lessons(fake_client, [subject["id"]])
    assert [(l["name"], l["description"]) for l in lessons] == [("A2b", "z")]
    db.rename_subject(fake_client, subject["id"], "Direito Civil")
    assert db.get_subjects(fake_client, user_id)[0]["name"] == "Direito Civil"
    assert db.get_lessons(fake_client, []) == []


def test_dashboard_counts(fake_client, user_id):
    subject = db.create_subject(fake_client, user_id, "Civil")
    rows = db.insert_lessons(fake_client, subject["id"], [{"name": "A", "description": "x"}, {"name": "B", "description": "y"}])
    db.set_lesson_studied(fake_client, rows[0]["id"], True)
    assert db.get_dashboard_counts(fake_client, user_id) == {"subjects": 1, "lessons": 2, "studied": 1}


def test_topic_relevance(fake_client, user_id):
    subject = db.create_exam_subject(fake_client, user_id, "Civil")
    topics = db.insert_exam_topics(fake_client, subject["id"], ["Contratos", "Posse"])
    db.set_topic_relevance(fake_client, topics[1]["id"], False)
    relevant = db.get_exam_topics(fake_client, [subject["id"]], relevant_only=True)
    assert [t["topic_name"] for t in relevant] == ["Contratos"]
    assert db.find_exam_topic(fake_client, subject["id"], "Posse")["id"] == topics[1]["id"]
    assert db.find_exam_subject(fake_client, user_id, "Penal") is None


def test_schema_covers_every_table():
    sql = "\n".join(schema_statements())
    for table in [
        "subjects", "lessons", "study_cycles", "cycle_allocations", "study_sessions",
        "exam_subjects", "exam_topics", "question_notebooks", "question_performance",
        "question_cycles", "question_cycle_allocations", "question_study_sessions",
    ]:
        assert f"CREATE TABLE IF NOT EXISTS {table} (" in sql
