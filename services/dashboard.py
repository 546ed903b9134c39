"""
Dashboard helper functions: overall progress stats and display tables.

NO Streamlit dependencies - pure Python business logic.
"""

from typing import List, Dict, Any, Sequence, Tuple

import pandas as pd

from services.catalog import EXAM_TOTAL_QUESTIONS, CATEGORY_SPECIFIC
from services.metrics import reported_knowledge_level

# ============ PERFORMANCE STATUS ============
# Thresholds on the average exercise percentage
EXCELLENT_THRESHOLD = 70.0
ON_TRACK_THRESHOLD = 60.0


def compute_stats(
    subjects: Sequence[Dict[str, Any]],
    exercises: Sequence[Dict[str, Any]]
) -> Dict[str, Any]:
    """
    Compute overall progress metrics.

    Returns:
        Dict with:
        - total_questions: int (fixed exam size)
        - exercise_count: int
        - average_percentage: float (0 when nothing logged)
        - hours_studied: float
        - goal_hours: int
        - progress_pct: float (0 when goal_hours is 0)
    """
    if exercises:
        average = sum(float(e["percentage"]) for e in exercises) / len(exercises)
    else:
        average = 0.0

    hours_studied = sum(s["hours_studied"] for s in subjects)
    goal_hours = sum(s["goal_hours"] for s in subjects)
    progress = (hours_studied / goal_hours * 100) if goal_hours > 0 else 0.0

    return {
        "total_questions": EXAM_TOTAL_QUESTIONS,
        "exercise_count": len(exercises),
        "average_percentage": round(average, 1),
        "hours_studied": hours_studied,
        "goal_hours": goal_hours,
        "progress_pct": round(progress, 1),
    }


def performance_status(average_percentage: float) -> str:
    """Map the overall exercise average to 'excellent', 'on_track' or 'needs_focus'."""
    if average_percentage >= EXCELLENT_THRESHOLD:
        return "excellent"
    if average_percentage >= ON_TRACK_THRESHOLD:
        return "on_track"
    return "needs_focus"


def subject_progress_pct(subject: Dict[str, Any]) -> float:
    """Hours studied vs goal for one subject, capped at 100."""
    goal = subject["goal_hours"]
    if goal <= 0:
        return 0.0
    return min(subject["hours_studied"] / goal * 100, 100.0)


# ============ DISPLAY TABLES ============

def priority_frame(
    ranked: List[Tuple[Dict[str, Any], Dict[str, Any]]],
    knowledge_levels: Dict[str, int]
) -> pd.DataFrame:
    """Ranked subjects as a table, one row per subject, rank starting at 1."""
    rows = []
    for rank, (subject, result) in enumerate(ranked, start=1):
        rows.append({
            "rank": rank,
            "subject": subject["name"],
            "questions": subject["question_count"],
            "category": "Específica" if subject["category"] == CATEGORY_SPECIFIC else "Geral",
            "priority": result["priority"],
            "avg_performance": result["avg_performance"],
            "knowledge_level": reported_knowledge_level(knowledge_levels, subject["name"]),
            "hours_studied": subject["hours_studied"],
            "goal_hours": subject["goal_hours"],
        })
    return pd.DataFrame(rows, columns=[
        "rank", "subject", "questions", "category", "priority",
        "avg_performance", "knowledge_level", "hours_studied", "goal_hours",
    ])


def exercise_history_frame(exercises: Sequence[Dict[str, Any]]) -> pd.DataFrame:
    """Exercise history, newest first, with dates formatted dd/mm/yyyy."""
    columns = ["date", "subject", "correct", "total", "percentage", "topics"]
    if not exercises:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(list(exercises))
    df["date"] = pd.to_datetime(df["date"], utc=True, format="ISO8601").dt.strftime("%d/%m/%Y")
    df["percentage"] = df["percentage"].astype(float).round(1)
    df["topics"] = df["topics"].apply(lambda topics: ", ".join(topics))
    return df.iloc[::-1][columns].reset_index(drop=True)
