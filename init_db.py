"""Print the Supabase schema for the study cycle planner (run it in the Supabase SQL Editor)."""
import os

from dotenv import load_dotenv

load_dotenv()

SCHEMA_SQL = """
-- Lesson tracking
CREATE TABLE IF NOT EXISTS subjects (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    name TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS lessons (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    subject_id UUID NOT NULL REFERENCES subjects(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    is_studied BOOLEAN DEFAULT FALSE,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

-- Lesson cycles
CREATE TABLE IF NOT EXISTS study_cycles (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    total_hours NUMERIC(6,1) NOT NULL CHECK (total_hours > 0),
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS cycle_allocations (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    cycle_id UUID NOT NULL REFERENCES study_cycles(id) ON DELETE CASCADE,
    subject_id UUID NOT NULL REFERENCES subjects(id) ON DELETE CASCADE,
    allocated_hours NUMERIC(6,1) NOT NULL CHECK (allocated_hours >= 1),
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS study_sessions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    cycle_id UUID NOT NULL REFERENCES study_cycles(id) ON DELETE CASCADE,
    subject_id UUID NOT NULL REFERENCES subjects(id) ON DELETE CASCADE,
    hours_studied NUMERIC(6,1) NOT NULL CHECK (hours_studied > 0),
    study_date DATE DEFAULT CURRENT_DATE,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

-- Exam topics and question-bank performance
CREATE TABLE IF NOT EXISTS exam_subjects (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    subject_name TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS exam_topics (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    exam_subject_id UUID NOT NULL REFERENCES exam_subjects(id) ON DELETE CASCADE,
    topic_name TEXT NOT NULL,
    is_relevant BOOLEAN DEFAULT TRUE,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS question_notebooks (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    notebook_id TEXT NOT NULL,
    uploaded_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS question_performance (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    notebook_id UUID NOT NULL REFERENCES question_notebooks(id) ON DELETE CASCADE,
    exam_subject_id UUID NOT NULL REFERENCES exam_subjects(id) ON DELETE CASCADE,
    exam_topic_id UUID NOT NULL REFERENCES exam_topics(id) ON DELETE CASCADE,
    correct_answers INT NOT NULL,
    answered_questions INT NOT NULL,
    total_questions INT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Question cycles
CREATE TABLE IF NOT EXISTS question_cycles (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL,
    total_hours NUMERIC(6,1) NOT NULL CHECK (total_hours > 0),
    target_percentage INT NOT NULL DEFAULT 70 CHECK (target_percentage BETWEEN 0 AND 100),
    min_questions INT NOT NULL DEFAULT 10 CHECK (min_questions >= 0),
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS question_cycle_allocations (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    cycle_id UUID NOT NULL REFERENCES question_cycles(id) ON DELETE CASCADE,
    subject_id UUID NOT NULL REFERENCES exam_subjects(id) ON DELETE CASCADE,
    allocated_hours NUMERIC(6,1) NOT NULL CHECK (allocated_hours >= 1),
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS question_study_sessions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    cycle_id UUID NOT NULL REFERENCES question_cycles(id) ON DELETE CASCADE,
    subject_id UUID NOT NULL REFERENCES exam_subjects(id) ON DELETE CASCADE,
    hours_studied NUMERIC(6,1) NOT NULL CHECK (hours_studied > 0),
    study_date DATE DEFAULT CURRENT_DATE,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_subjects_user_id ON subjects(user_id);
CREATE INDEX IF NOT EXISTS idx_lessons_subject_id ON lessons(subject_id);
CREATE INDEX IF NOT EXISTS idx_exam_topics_subject_id ON exam_topics(exam_subject_id);
CREATE INDEX IF NOT EXISTS idx_question_performance_topic ON question_performance(exam_topic_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_study_cycles_user_created ON study_cycles(user_id, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_question_cycles_user_created ON question_cycles(user_id, created_at DESC);
"""


def schema_statements() -> list[str]:
    return [s.strip() for s in SCHEMA_SQL.split(";") if s.strip()]


def main():
    print("Study cycle planner schema")
    print(f"URL: {os.getenv('SUPABASE_URL') or '(SUPABASE_URL not set)'}")
    statements = schema_statements()
    for i, stmt in enumerate(statements, 1):
        first_line = next(line for line in stmt.splitlines() if not line.startswith("--"))
        print(f"  {i:2d}/{len(statements)}  {first_line[:60]}")
    print("\nSupabase's client cannot run DDL; paste this into Supabase > SQL Editor > New Query:")
    print(SCHEMA_SQL)


if __name__ == "__main__":
    main()
