"""Semicolon CSV parsing and import into Supabase tables."""
import pytest

from importer import (
    group_topics,
    import_exam_subjects,
    import_lessons,
    import_performance,
    parse_exam_subjects_csv,
    parse_lessons_csv,
    parse_performance_csv,
    run_import,
)

LESSONS_CSV = """aula;descricao
Aula 01;Introdução ao Direito Civil
Aula 02;Pessoas naturais; capacidade

Aula 03;
;sem nome
linha sem separador
"""

EXAM_CSV = """materia;assunto
Direito Civil;Contratos
Direito Civil;Posse
Direito Penal;Dolo
Direito Civil;Contratos
Direito Penal;
"""

PERFORMANCE_CSV = """caderno;materia;assunto;acertos;resolvidas;total
NB-1;Direito Civil;Contratos;8;10;12
NB-1;Direito Civil;Posse;x;10;12
NB-1;Direito Penal;Dolo;5;9;9
NB-1;Direito Civil;Desconhecido;1;1;1
NB-1;curto;demais
"""


def test_parse_lessons_keeps_semicolons_in_description():
    lessons = parse_lessons_csv(LESSONS_CSV)
    assert lessons == [
        {"name": "Aula 01", "description": "Introdução ao Direito Civil"},
        {"name": "Aula 02", "description": "Pessoas naturais; capacidade"},
    ]


def test_parse_lessons_header_only():
    assert parse_lessons_csv("aula;descricao\n") == []


def test_parse_exam_subjects_and_group():
    rows = parse_exam_subjects_csv(EXAM_CSV)
    assert len(rows) == 4
    assert group_topics(rows) == {"Direito Civil": ["Contratos", "Posse"], "Direito Penal": ["Dolo"]}


def test_parse_performance_drops_bad_counts():
    rows = parse_performance_csv(PERFORMANCE_CSV)
    assert [(r["subject"], r["topic"]) for r in rows] == [
        ("Direito Civil", "Contratos"),
        ("Direito Penal", "Dolo"),
        ("Direito Civil", "Desconhecido"),
    ]
    assert rows[0]["correct_answers"] == 8
    assert rows[0]["answered_questions"] == 10
    assert rows[0]["total_questions"] == 12


def test_import_lessons_creates_subject(fake_client, user_id):
    subject = import_lessons(fake_client, user_id, "Direito Civil", parse_lessons_csv(LESSONS_CSV))
    assert fake_client.tables["subjects"][0]["name"] == "Direito Civil"
    lessons = fake_client.tables["lessons"]
    assert len(lessons) == 2
    assert all(l["subject_id"] == subject["id"] for l in lessons)


def test_import_lessons_rejects_empty(fake_client, user_id):
    with pytest.raises(ValueError):
        import_lessons(fake_client, user_id, "Vazio", [])


def test_import_exam_subjects_marks_topics_relevant(fake_client, user_id):
    n = import_exam_subjects(fake_client, user_id, parse_exam_subjects_csv(EXAM_CSV))
    assert n == 3
    assert [s["subject_name"] for s in fake_client.tables["exam_subjects"]] == ["Direito Civil", "Direito Penal"]
    assert all(t["is_relevant"] for t in fake_client.tables["exam_topics"])


def test_import_performance_skips_unknown_topics(fake_client, user_id):
    import_exam_subjects(fake_client, user_id, parse_exam_subjects_csv(EXAM_CSV))
    imported, skipped = import_performance(fake_client, user_id, parse_performance_csv(PERFORMANCE_CSV))
    assert (imported, skipped) == (2, 1)
    notebooks = fake_client.tables["question_notebooks"]
    assert [n["notebook_id"] for n in notebooks] == ["NB-1"]
    records = fake_client.tables["question_performance"]
    assert {r["notebook_id"] for r in records} == {notebooks[0]["id"]}


def test_run_import_dry_run(tmp_path, capsys, user_id):
    path = tmp_path / "aulas.csv"
    path.write_text(LESSONS_CSV, encoding="utf-8")
    run_import("lessons", path, user_id, subject="Direito Civil", dry_run=True)
    assert "parsed 2 lessons rows" in capsys.readouterr().out


def test_run_import_missing_file(tmp_path, user_id):
    with pytest.raises(FileNotFoundError):
        run_import("lessons", tmp_path / "nope.csv", user_id)
