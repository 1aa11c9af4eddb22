"""Planning constants: hour granularities, floors and form defaults. No logic."""
# Lesson cycles round to 0.1h, question cycles to 0.5h; every subject gets at least 1h.

MIN_SUBJECT_HOURS = 1.0
LESSON_GRANULARITY = 0.1
QUESTION_GRANULARITY = 0.5
OVERRIDE_STEP = 0.5

DEFAULT_LESSON_CYCLE_HOURS = 30
DEFAULT_QUESTION_CYCLE_HOURS = 20
DEFAULT_TARGET_PERCENTAGE = 70
DEFAULT_MIN_QUESTIONS = 10
TOP_SUBJECTS = 5
