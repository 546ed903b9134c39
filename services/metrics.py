"""
Priority computation for exam subjects.
These are pure computation functions with NO Streamlit UI dependencies.

The priority score blends:
- Performance gap: 100 - average exercise percentage
- Knowledge gap: 10 - self-reported knowledge level
- Study gap: goal hours still missing
and scales the blend by exam weight, difficulty and subject category.
"""

from typing import Dict, Any, List, Optional, Tuple, Sequence

from services.catalog import CATEGORY_SPECIFIC

# Neutral prior when a subject has no exercises yet
NEUTRAL_PERFORMANCE = 50.0

# Used for both scoring and display when no level was reported
DEFAULT_KNOWLEDGE_LEVEL = 5
MAX_KNOWLEDGE_LEVEL = 10

PERFORMANCE_WEIGHT = 0.3
KNOWLEDGE_WEIGHT = 0.25
STUDY_WEIGHT = 0.2
KNOWLEDGE_SCALE = 10
STUDY_SCALE = 2

SPECIFIC_MULTIPLIER = 1.2
GENERAL_MULTIPLIER = 1.0


def reported_knowledge_level(knowledge_levels: Dict[str, int], subject_name: str) -> Optional[int]:
    """Return the level the user reported for a subject, or None."""
    level = knowledge_levels.get(subject_name)
    if level is None:
        return None
    return int(level)


def get_knowledge_level(knowledge_levels: Dict[str, int], subject_name: str) -> int:
    """Knowledge level for a subject, falling back to DEFAULT_KNOWLEDGE_LEVEL."""
    level = reported_knowledge_level(knowledge_levels, subject_name)
    return DEFAULT_KNOWLEDGE_LEVEL if level is None else level


def subject_exercises(exercises: Sequence[Dict[str, Any]], subject_name: str) -> List[Dict[str, Any]]:
    """Exercises logged for a subject, in insertion order."""
    return [e for e in exercises if e["subject"] == subject_name]


def exercise_count_for(exercises: Sequence[Dict[str, Any]], subject_name: str) -> int:
    return len(subject_exercises(exercises, subject_name))


def average_performance(exercises: Sequence[Dict[str, Any]]) -> Optional[float]:
    """Mean of the stored exercise percentages, or None when there are none."""
    if not exercises:
        return None
    return sum(float(e["percentage"]) for e in exercises) / len(exercises)


def compute_priority(
    subject: Dict[str, Any],
    exercises: Sequence[Dict[str, Any]],
    knowledge_levels: Dict[str, int]
) -> Dict[str, Any]:
    """
    Compute the study priority of a single subject.

    Args:
        subject: Subject dict (name, question_count, category, difficulty,
                 hours_studied, goal_hours)
        exercises: Full exercise collection (filtered here by subject name)
        knowledge_levels: Mapping of subject name -> level 0-10

    Returns:
        Dict with priority, performance_gap, knowledge_gap, study_gap,
        avg_performance (rounded for display) and score (unrounded priority,
        the value rankings compare).
    """
    avg = average_performance(subject_exercises(exercises, subject["name"]))
    if avg is None:
        avg = NEUTRAL_PERFORMANCE
    performance_gap = 100 - avg

    knowledge_gap = MAX_KNOWLEDGE_LEVEL - get_knowledge_level(knowledge_levels, subject["name"])

    study_gap = max(0, subject["goal_hours"] - subject["hours_studied"])

    if subject["category"] == CATEGORY_SPECIFIC:
        type_multiplier = SPECIFIC_MULTIPLIER
    else:
        type_multiplier = GENERAL_MULTIPLIER

    base_priority = (
        (performance_gap * PERFORMANCE_WEIGHT) +
        (knowledge_gap * KNOWLEDGE_SCALE * KNOWLEDGE_WEIGHT) +
        (study_gap * STUDY_SCALE * STUDY_WEIGHT)
    )

    score = (
        base_priority
        * (subject["question_count"] / 10)
        * (subject["difficulty"] / 3)
        * type_multiplier
    )

    return {
        "priority": round(score, 2),
        "performance_gap": round(performance_gap, 1),
        "knowledge_gap": knowledge_gap,
        "study_gap": round(float(study_gap), 1),
        "avg_performance": round(avg, 1),
        "score": score,
    }


def rank_subjects(
    subjects: Sequence[Dict[str, Any]],
    exercises: Sequence[Dict[str, Any]],
    knowledge_levels: Dict[str, int]
) -> List[Tuple[Dict[str, Any], Dict[str, Any]]]:
    """
    Rank subjects by descending priority.

    Sorting uses the unrounded score. Python's sort is stable, so subjects
    with equal scores keep their input order.

    Returns:
        List of (subject, priority_result) tuples
    """
    scored = [(s, compute_priority(s, exercises, knowledge_levels)) for s in subjects]
    return sorted(scored, key=lambda pair: pair[1]["score"], reverse=True)
