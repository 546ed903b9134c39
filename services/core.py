"""
Core state functions for the Concurso Study Tracker.

These functions are designed to be:
- Pure Python (NO Streamlit dependencies)
- Explicit inputs (state is passed in and a new state is returned)
- JSON-serializable records (subjects and exercises are plain dicts)

Every accepted update returns a new AppState with version + 1.
A rejected update returns the very same AppState instance.

Persistence is a separate, explicit step: call save_state() after an
update. Keys are written one by one, so a crash mid-save can leave the
three keys out of sync. In-memory state stays authoritative.

Usage:
    from services.core import load_state, add_exercise, save_state

    state = load_state(store)
    state = add_exercise(state, "Atualidades", correct=7, total=10)
    report = save_state(state, store)
"""

import json
import math
import os
import sys
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Tuple, Union, Sequence

# Add parent directory to path for security import
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from security import sanitize_string, validate_numeric_range
from services.catalog import EXAM_SUBJECTS, build_subject
from services.metrics import MAX_KNOWLEDGE_LEVEL

SUBJECTS_KEY = "concurso-subjects-v2"
EXERCISES_KEY = "concurso-exercises-v2"
LEVELS_KEY = "concurso-levels"
STORAGE_KEYS = (SUBJECTS_KEY, EXERCISES_KEY, LEVELS_KEY)

# JSON type each key must hold
PAYLOAD_TYPES = {SUBJECTS_KEY: list, EXERCISES_KEY: list, LEVELS_KEY: dict}

SUBJECT_FIELDS = ("id", "name", "question_count", "category", "difficulty", "hours_studied", "goal_hours")
EXERCISE_FIELDS = ("id", "subject", "correct", "total", "percentage", "topics", "date")

MAX_TOPIC_LENGTH = 200


@dataclass(frozen=True)
class AppState:
    """Complete in-memory state of the tracker."""
    subjects: Tuple[Dict[str, Any], ...] = ()
    exercises: Tuple[Dict[str, Any], ...] = ()
    knowledge_levels: Dict[str, int] = field(default_factory=dict)
    initialized: bool = False
    version: int = 0


def empty_state() -> AppState:
    return AppState()


def as_whole_number(value: Any) -> int:
    """
    Convert a count to int without truncating.

    7, 7.0 and "7" pass; 7.9, "7.9", True and None raise.

    Raises:
        TypeError, ValueError or OverflowError
    """
    if isinstance(value, bool):
        raise TypeError(f"not a number: {value!r}")
    if isinstance(value, str):
        return int(value.strip())
    number = int(value)
    if number != value:
        raise ValueError(f"not a whole number: {value!r}")
    return number


def _bump(state: AppState, **changes) -> AppState:
    return replace(state, version=state.version + 1, **changes)


def _log_rejected(action: str, reason: str) -> None:
    print(f"[store] Rejected {action}: {reason}", file=sys.stderr)


# ============================================================================
# SUBJECTS
# ============================================================================

def initialize_subjects(
    state: AppState,
    catalog: Sequence[Dict[str, Any]] = EXAM_SUBJECTS
) -> AppState:
    """
    Seed the subject list from the exam catalog.

    Exercises and knowledge levels already in the state are kept.
    """
    subjects = tuple(build_subject(entry) for entry in catalog)
    return _bump(state, subjects=subjects, initialized=True)


def add_study_hours(state: AppState, subject_id: str, hours: float) -> AppState:
    """
    Add study hours to a subject.

    Args:
        state: Current state
        subject_id: Subject id (equal to its name)
        hours: Hours to add, must be positive

    Returns:
        New state, or the same state if rejected
    """
    if not validate_numeric_range(hours, min_val=0):
        _log_rejected("study hours", f"hours must be positive, got {hours!r}")
        return state

    hours_value = float(hours)
    if hours_value == 0 or not math.isfinite(hours_value):
        _log_rejected("study hours", f"hours must be positive and finite, got {hours!r}")
        return state

    if not any(s["id"] == subject_id for s in state.subjects):
        _log_rejected("study hours", f"unknown subject {subject_id!r}")
        return state

    subjects = tuple(
        {**s, "hours_studied": s["hours_studied"] + hours_value} if s["id"] == subject_id else s
        for s in state.subjects
    )
    return _bump(state, subjects=subjects)


# ============================================================================
# KNOWLEDGE LEVELS
# ============================================================================

def update_knowledge_level(state: AppState, subject_name: str, level: Union[int, str]) -> AppState:
    """
    Overwrite the self-reported knowledge level (0-10) of a subject.
    """
    try:
        level_int = as_whole_number(level)
    except (TypeError, ValueError, OverflowError):
        _log_rejected("knowledge level", f"not an integer: {level!r}")
        return state

    if not validate_numeric_range(level_int, min_val=0, max_val=MAX_KNOWLEDGE_LEVEL):
        _log_rejected("knowledge level", f"out of range: {level_int}")
        return state

    levels = {**state.knowledge_levels, subject_name: level_int}
    return _bump(state, knowledge_levels=levels)


# ============================================================================
# EXERCISES
# ============================================================================

def parse_topics(topics: Union[str, Sequence[str], None]) -> List[str]:
    """Split a comma-separated topic string, trimming and dropping empties."""
    if not topics:
        return []
    if isinstance(topics, str):
        parts = topics.split(",")
    else:
        parts = list(topics)
    cleaned = [sanitize_string(t, max_length=MAX_TOPIC_LENGTH) for t in parts]
    return [t for t in cleaned if t]


def validate_exercise_input(subject: Optional[str], correct: Any, total: Any) -> Optional[str]:
    """
    Check exercise input before recording.

    Returns:
        None if valid, otherwise a short reason
    """
    if not subject or not str(subject).strip():
        return "no subject selected"
    try:
        correct_int = as_whole_number(correct)
        total_int = as_whole_number(total)
    except (TypeError, ValueError, OverflowError):
        return "correct and total must be integers"
    if total_int <= 0:
        return "total must be greater than zero"
    if not validate_numeric_range(correct_int, min_val=0, max_val=total_int):
        return "correct must be between 0 and total"
    return None


def _next_exercise_id(exercises: Sequence[Dict[str, Any]], now: datetime) -> int:
    # Time-based, kept strictly increasing
    candidate = int(now.timestamp() * 1000)
    if exercises and candidate <= exercises[-1]["id"]:
        candidate = exercises[-1]["id"] + 1
    return candidate


def add_exercise(
    state: AppState,
    subject: Optional[str],
    correct: Any,
    total: Any,
    topics: Union[str, Sequence[str], None] = "",
    now: Optional[datetime] = None
) -> AppState:
    """
    Append a practice-exercise result.

    Args:
        state: Current state
        subject: Subject name (as selected in the UI)
        correct: Number of correct answers
        total: Number of questions, must be > 0
        topics: Missed topics, comma-separated string or list
        now: Creation time (default: current UTC time)

    Returns:
        New state, or the same state if the input is invalid
    """
    reason = validate_exercise_input(subject, correct, total)
    if reason:
        _log_rejected("exercise", reason)
        return state

    now = now or datetime.now(timezone.utc)
    correct_int = as_whole_number(correct)
    total_int = as_whole_number(total)

    exercise = {
        "id": _next_exercise_id(state.exercises, now),
        "subject": subject,
        "correct": correct_int,
        "total": total_int,
        "percentage": 100 * correct_int / total_int,
        "topics": parse_topics(topics),
        "date": now.isoformat(),
    }
    return _bump(state, exercises=state.exercises + (exercise,))


# ============================================================================
# PERSISTENCE
# ============================================================================

def state_to_payloads(state: AppState) -> Dict[str, str]:
    """Serialize the three collections to their JSON payloads, by key."""
    return {
        SUBJECTS_KEY: json.dumps(list(state.subjects), ensure_ascii=False),
        EXERCISES_KEY: json.dumps(list(state.exercises), ensure_ascii=False),
        LEVELS_KEY: json.dumps(state.knowledge_levels, ensure_ascii=False),
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _check_subject(subject: Any) -> Dict[str, Any]:
    if not isinstance(subject, dict):
        raise ValueError(f"subject is not an object: {subject!r}")
    missing = [f for f in SUBJECT_FIELDS if f not in subject]
    if missing:
        raise ValueError(f"subject missing fields {missing}")
    if not isinstance(subject["name"], str) or not isinstance(subject["id"], str):
        raise ValueError(f"subject name/id must be strings: {subject['name']!r}")
    for field_name in ("question_count", "difficulty", "hours_studied", "goal_hours"):
        if not _is_number(subject[field_name]) or subject[field_name] < 0:
            raise ValueError(f"subject {subject['name']!r} has a bad {field_name}")
    return subject


def _check_exercise(exercise: Any) -> Dict[str, Any]:
    if not isinstance(exercise, dict):
        raise ValueError(f"exercise is not an object: {exercise!r}")
    missing = [f for f in EXERCISE_FIELDS if f not in exercise]
    if missing:
        raise ValueError(f"exercise missing fields {missing}")
    if not isinstance(exercise["subject"], str) or not isinstance(exercise["date"], str):
        raise ValueError(f"exercise {exercise['id']!r} has a bad subject or date")
    if not all(_is_number(exercise[f]) for f in ("id", "correct", "total", "percentage")):
        raise ValueError(f"exercise {exercise['id']!r} has a non-numeric count")
    if exercise["total"] <= 0:
        raise ValueError(f"exercise {exercise['id']!r} has total <= 0")
    if not isinstance(exercise["topics"], list) or not all(isinstance(t, str) for t in exercise["topics"]):
        raise ValueError(f"exercise {exercise['id']!r} topics must be a list of strings")
    return exercise


def _check_level(name: str, level: Any) -> int:
    level_int = as_whole_number(level)
    if not validate_numeric_range(level_int, min_val=0, max_val=MAX_KNOWLEDGE_LEVEL):
        raise ValueError(f"level for {name!r} out of range: {level!r}")
    return level_int


def decode_payload(key: str, raw: str) -> Any:
    """
    Parse and check the stored JSON for one key.

    Returns:
        tuple of subjects, tuple of exercises, or dict of levels

    Raises:
        ValueError (or TypeError) if the payload or any element is malformed
    """
    value = json.loads(raw)
    if not isinstance(value, PAYLOAD_TYPES[key]):
        raise ValueError(f"expected a JSON {PAYLOAD_TYPES[key].__name__}")

    if key == SUBJECTS_KEY:
        return tuple(_check_subject(s) for s in value)
    if key == EXERCISES_KEY:
        return tuple(_check_exercise(e) for e in value)
    return {name: _check_level(name, level) for name, level in value.items()}


def _state_from_values(values: Dict[str, Any]) -> AppState:
    subjects = values.get(SUBJECTS_KEY)
    return AppState(
        subjects=subjects if subjects is not None else (),
        exercises=values.get(EXERCISES_KEY) or (),
        knowledge_levels=values.get(LEVELS_KEY) or {},
        initialized=subjects is not None,
    )


def state_from_payloads(payloads: Dict[str, Optional[str]]) -> AppState:
    """
    Rebuild state from stored payloads.

    A missing key yields an empty collection. The state counts as
    initialized only when the subjects key is present. Malformed
    payloads raise; load_state() is the lenient entry point.
    """
    return _state_from_values({
        key: decode_payload(key, raw)
        for key, raw in payloads.items()
        if key in PAYLOAD_TYPES and raw is not None
    })


def load_state(store) -> AppState:
    """
    Load state from a key-value store exposing get(key) -> Optional[str].

    A key that cannot be read, parsed or checked is logged and treated
    as absent.
    """
    values: Dict[str, Any] = {}
    for key in STORAGE_KEYS:
        try:
            raw = store.get(key)
            if raw is not None:
                values[key] = decode_payload(key, raw)
        except Exception as e:
            print(f"[store] Could not load '{key}': {e}", file=sys.stderr)

    if SUBJECTS_KEY not in values:
        print("[store] No saved subjects, starting fresh", file=sys.stderr)

    return _state_from_values(values)


def save_state(
    state: AppState,
    store,
    keys: Optional[Sequence[str]] = None
) -> Dict[str, Any]:
    """
    Write the state to a key-value store exposing set(key, value).

    Args:
        state: State to persist
        store: Key-value store
        keys: Restrict the write to these keys (default: all three)

    Returns:
        Dict with ok, saved (keys written), failed ({key: error}) and
        failure ('persistence_error' or None)
    """
    saved = []
    failed = {}

    for key, payload in state_to_payloads(state).items():
        if keys is not None and key not in keys:
            continue
        try:
            store.set(key, payload)
            saved.append(key)
        except Exception as e:
            print(f"[store] Failed to save '{key}': {e}", file=sys.stderr)
            failed[key] = str(e)

    return {
        "ok": not failed,
        "saved": saved,
        "failed": failed,
        "failure": "persistence_error" if failed else None,
        "version": state.version,
    }
