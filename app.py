"""Study Cycle Planner — multi-page Streamlit dashboard."""
import os
import sys
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

import db
from engine import (
    DEFAULT_LESSON_CYCLE_HOURS,
    DEFAULT_MIN_QUESTIONS,
    DEFAULT_QUESTION_CYCLE_HOURS,
    DEFAULT_TARGET_PERCENTAGE,
    MIN_SUBJECT_HOURS,
    OVERRIDE_STEP,
)
from importer import (
    import_exam_subjects,
    import_lessons,
    import_performance,
    parse_exam_subjects_csv,
    parse_lessons_csv,
    parse_performance_csv,
)
from cycleplan.cycles import LESSON_CYCLE, QUESTION_CYCLE, CycleError, over_allocation, pending_total, total_allocated
from cycleplan.engine import CycleBudget
from cycleplan.performance import latest_result, summarize_performance
from cycleplan.planner import CyclePlanner

PAGES = ["Dashboard", "Subjects", "Study Cycle", "Performance", "Question Cycle"]

st.set_page_config(page_title="Study Cycle Planner", layout="wide")
st.sidebar.title("Study Cycle Planner")
default_page = st.query_params.get("page", "Dashboard")
if default_page not in PAGES:
    default_page = "Dashboard"
page = st.sidebar.radio("Navigate", PAGES, index=PAGES.index(default_page), label_visibility="collapsed")
user_id = st.sidebar.text_input("User ID", value=os.environ.get("STUDY_USER_ID", ""))
if not user_id:
    st.info("Set a user ID in the sidebar (or STUDY_USER_ID in .env) to load your data.")
    st.stop()

try:
    client = db.get_supabase()
except ValueError as e:
    st.error(f"Could not connect to Supabase. Check .env (SUPABASE_URL, SUPABASE_KEY). {e}")
    st.stop()
planner = CyclePlanner(client)


def render_overrides(results, total_hours: float, key_prefix: str) -> tuple[dict, bool]:
    """Editable hours per subject; returns (overrides, over_allocated)."""
    overrides = {}
    for r in results:
        col1, col2 = st.columns([3, 1])
        with col1:
            if r.total_topics is not None:
                st.write(f"**{r.label}** — {r.demand_count} of {r.total_topics} topics below target ({r.share_percent}%)")
            else:
                st.write(f"**{r.label}** — {r.demand_count} unstudied lessons ({r.share_percent}%)")
        with col2:
            hours = st.number_input(
                "Hours",
                min_value=MIN_SUBJECT_HOURS,
                step=OVERRIDE_STEP,
                value=float(r.suggested_hours),
                key=f"{key_prefix}_{r.key}",
                label_visibility="collapsed",
            )
        if hours != r.suggested_hours:
            overrides[r.key] = hours
    effective = [(r.key, overrides.get(r.key, r.suggested_hours)) for r in results]
    allocated = total_allocated(effective)
    excess = over_allocation(effective, total_hours)
    st.metric("Allocated", f"{allocated:g}h / {total_hours:g}h")
    if excess > 0:
        st.error(f"Over-allocated by {excess:.1f}h. Reduce some subjects before saving.")
    return overrides, excess > 0


def render_tracking(kind: str):
    cycle = planner.current_cycle(user_id, kind)
    if cycle is None:
        st.info("No active cycle. Create one in the other tab.")
        return
    col1, col2 = st.columns([1, 3])
    with col1:
        new_total = st.number_input("Total hours", min_value=1.0, value=float(cycle["total_hours"]), key=f"{kind}_total")
        if new_total != float(cycle["total_hours"]) and st.button("Update total", key=f"{kind}_update_total"):
            planner.update_total_hours(user_id, kind, new_total)
            st.rerun()
    if kind == QUESTION_CYCLE:
        with col2:
            st.caption(f"Target: {cycle.get('target_percentage')}% accuracy · at least {cycle.get('min_questions')} questions per topic")

    progress = planner.track_cycle(user_id, kind)
    if kind == QUESTION_CYCLE:
        st.metric("Topics below target", pending_total(progress))
    else:
        st.metric("Unstudied lessons", pending_total(progress))

    for p in progress:
        st.subheader(p.name)
        st.progress(min(1.0, p.percent / 100))
        st.caption(f"{p.studied_hours:g}h of {p.allocated_hours:g}h · {p.remaining_hours:.1f}h left")
        if kind == QUESTION_CYCLE:
            st.caption(f"{p.demand_count} of {p.total_topics} topics below target")
        else:
            st.caption(f"{p.demand_count} unstudied lessons")
        c1, c2 = st.columns([1, 3])
        with c1:
            hours = st.number_input("Hours studied", min_value=0.0, step=0.5, key=f"{kind}_log_{p.subject_id}")
        with c2:
            if st.button("Log hours", key=f"{kind}_btn_{p.subject_id}") and hours > 0:
                try:
                    planner.log_study_hours(user_id, kind, p.subject_id, hours)
                    st.success("Hours logged.")
                    st.rerun()
                except CycleError as e:
                    st.error(str(e))


# ----- Dashboard -----
if page == "Dashboard":
    st.header("Dashboard")
    counts = db.get_dashboard_counts(client, user_id)
    exam_subjects = db.get_exam_subjects(client, user_id)
    stats = summarize_performance(exam_subjects, db.get_performances(client, [s["id"] for s in exam_subjects]))
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Subjects", counts["subjects"])
    with col2:
        st.metric("Lessons studied", f"{counts['studied']}/{counts['lessons']}")
    with col3:
        st.metric("Questions answered", stats["total_answered"])
    with col4:
        st.metric("Average accuracy", f"{stats['average_accuracy']:.1f}%")
    if stats["top_subjects"]:
        st.subheader("Best subjects by accuracy")
        st.bar_chart({s["name"]: s["accuracy"] for s in stats["top_subjects"]})

# ----- Subjects -----
elif page == "Subjects":
    st.header("Subjects")
    with st.expander("Import lessons from CSV (name;description)"):
        name = st.text_input("Subject name")
        upload = st.file_uploader("CSV file", type=["csv"], key="lessons_csv")
        if st.button("Import", disabled=not (name and upload)):
            try:
                lessons = parse_lessons_csv(upload.getvalue().decode("utf-8"))
                import_lessons(client, user_id, name, lessons)
                st.success(f"Imported {len(lessons)} lessons.")
                st.rerun()
            except Exception as e:
                st.error(f"Import failed: {e}")

    subjects = db.get_subjects(client, user_id)
    lessons = db.get_lessons(client, [s["id"] for s in subjects])
    for subject in subjects:
        own = [l for l in lessons if l["subject_id"] == subject["id"]]
        studied = sum(1 for l in own if l.get("is_studied"))
        with st.expander(f"{subject['name']} — {studied}/{len(own)} studied"):
            for lesson in own:
                checked = st.checkbox(
                    f"{lesson['name']}: {lesson['description']}",
                    value=bool(lesson.get("is_studied")),
                    key=f"lesson_{lesson['id']}",
                )
                if checked != bool(lesson.get("is_studied")):
                    db.set_lesson_studied(client, lesson["id"], checked)
                    st.rerun()
            if st.button("Delete subject", key=f"del_{subject['id']}"):
                db.delete_subject(client, subject["id"])
                st.rerun()

# ----- Study Cycle -----
elif page == "Study Cycle":
    st.header("Study Cycle")
    create_tab, track_tab = st.tabs(["Create cycle", "Track cycle"])
    with create_tab:
        total_hours = st.number_input("Total hours", min_value=1, value=DEFAULT_LESSON_CYCLE_HOURS, step=1)
        results = planner.propose_lesson_cycle(user_id, total_hours)
        if not results:
            st.success("All lessons studied. Nothing to allocate.")
        else:
            overrides, over = render_overrides(results, total_hours, "lesson")
            if st.button("Save cycle", type="primary", disabled=over):
                try:
                    planner.save_lesson_cycle(user_id, total_hours, results, overrides)
                    st.success("Cycle saved.")
                except CycleError as e:
                    st.error(str(e))
    with track_tab:
        render_tracking(LESSON_CYCLE)

# ----- Performance -----
elif page == "Performance":
    st.header("Performance")
    col1, col2 = st.columns(2)
    with col1:
        upload = st.file_uploader("Exam subjects CSV (subject;topic)", type=["csv"], key="exam_csv")
        if upload and st.button("Import subjects"):
            try:
                n = import_exam_subjects(client, user_id, parse_exam_subjects_csv(upload.getvalue().decode("utf-8")))
                st.success(f"Imported {n} topics.")
            except Exception as e:
                st.error(f"Import failed: {e}")
    with col2:
        upload = st.file_uploader("Notebook CSV (notebook;subject;topic;correct;answered;total)", type=["csv"], key="perf_csv")
        if upload and st.button("Import notebook"):
            try:
                imported, skipped = import_performance(client, user_id, parse_performance_csv(upload.getvalue().decode("utf-8")))
                st.success(f"Imported {imported} records ({skipped} skipped).")
            except Exception as e:
                st.error(f"Import failed: {e}")

    exam_subjects = db.get_exam_subjects(client, user_id)
    topics = db.get_exam_topics(client, [s["id"] for s in exam_subjects])
    performances = db.get_performances(client, [s["id"] for s in exam_subjects])
    for subject in exam_subjects:
        with st.expander(subject["subject_name"]):
            for topic in (t for t in topics if t["exam_subject_id"] == subject["id"]):
                accuracy, answered = latest_result(p for p in performances if p["exam_topic_id"] == topic["id"])
                relevant = st.checkbox(
                    f"{topic['topic_name']} — {accuracy}% over {answered} questions (latest notebook)",
                    value=bool(topic.get("is_relevant")),
                    key=f"topic_{topic['id']}",
                )
                if relevant != bool(topic.get("is_relevant")):
                    db.set_topic_relevance(client, topic["id"], relevant)
                    st.rerun()

# ----- Question Cycle -----
elif page == "Question Cycle":
    st.header("Question Cycle")
    create_tab, track_tab = st.tabs(["Create cycle", "Track cycle"])
    with create_tab:
        col1, col2, col3 = st.columns(3)
        with col1:
            total_hours = st.number_input("Total hours", min_value=1, value=DEFAULT_QUESTION_CYCLE_HOURS, step=1)
        with col2:
            target = st.number_input("Target accuracy (%)", min_value=0, max_value=100, value=DEFAULT_TARGET_PERCENTAGE)
        with col3:
            min_questions = st.number_input("Minimum questions", min_value=0, value=DEFAULT_MIN_QUESTIONS)
        budget = CycleBudget(total_hours, target, min_questions)
        results = planner.propose_question_cycle(user_id, budget)
        if not results:
            st.success("Every relevant topic meets the target. Nothing to allocate.")
        else:
            overrides, over = render_overrides(results, total_hours, "question")
            if st.button("Save cycle", type="primary", disabled=over):
                try:
                    planner.save_question_cycle(user_id, budget, results, overrides)
                    st.success("Question cycle saved.")
                except CycleError as e:
                    st.error(str(e))
    with track_tab:
        render_tracking(QUESTION_CYCLE)
