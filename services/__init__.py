"""
Services layer - pure Python business logic with NO Streamlit dependencies.

This layer contains:
- catalog.py: Exam facts and the seed subject list
- core.py: Application state, update functions and persistence
- metrics.py: Priority computation and subject ranking
- dashboard.py: Overall progress stats and display tables
- analysis.py: Prompt shaping and the AI coaching analysis request

All functions accept explicit parameters and return plain dicts/lists
(or a new AppState for updates).
"""

# Catalog
from services.catalog import (
    EXAM_SUBJECTS,
    EXAM_TOTAL_QUESTIONS,
    hour_goal,
    build_subject,
)

# Core state functions
from services.core import (
    AppState,
    empty_state,
    # Updates
    initialize_subjects,
    add_exercise,
    add_study_hours,
    update_knowledge_level,
    validate_exercise_input,
    # Persistence
    load_state,
    save_state,
    state_to_payloads,
    state_from_payloads,
)

# Metrics functions
from services.metrics import (
    DEFAULT_KNOWLEDGE_LEVEL,
    get_knowledge_level,
    reported_knowledge_level,
    compute_priority,
    rank_subjects,
)

# Dashboard functions
from services.dashboard import (
    compute_stats,
    performance_status,
    subject_progress_pct,
    priority_frame,
    exercise_history_frame,
)

# Analysis
from services.analysis import (
    AnalysisRequester,
    request_analysis,
    build_subject_records,
    build_recent_exercise_records,
    build_analysis_prompt,
    extract_text,
)

__all__ = [
    # Catalog
    "EXAM_SUBJECTS",
    "EXAM_TOTAL_QUESTIONS",
    "hour_goal",
    "build_subject",
    # Core - State
    "AppState",
    "empty_state",
    # Core - Updates
    "initialize_subjects",
    "add_exercise",
    "add_study_hours",
    "update_knowledge_level",
    "validate_exercise_input",
    # Core - Persistence
    "load_state",
    "save_state",
    "state_to_payloads",
    "state_from_payloads",
    # Metrics
    "DEFAULT_KNOWLEDGE_LEVEL",
    "get_knowledge_level",
    "reported_knowledge_level",
    "compute_priority",
    "rank_subjects",
    # Dashboard
    "compute_stats",
    "performance_status",
    "subject_progress_pct",
    "priority_frame",
    "exercise_history_frame",
    # Analysis
    "AnalysisRequester",
    "request_analysis",
    "build_subject_records",
    "build_recent_exercise_records",
    "build_analysis_prompt",
    "extract_text",
]
