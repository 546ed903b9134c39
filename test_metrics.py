"""
Unit tests for subject priority computation and ranking.
"""

import pytest

from services.catalog import EXAM_SUBJECTS, CATEGORY_GENERAL, CATEGORY_SPECIFIC, build_subject, hour_goal
from services.metrics import (
    DEFAULT_KNOWLEDGE_LEVEL,
    compute_priority,
    rank_subjects,
    get_knowledge_level,
    reported_knowledge_level,
    average_performance,
)


def make_subject(name="Atualidades", question_count=10, category=CATEGORY_GENERAL,
                 difficulty=3, hours_studied=0, goal_hours=None):
    return {
        "id": name,
        "name": name,
        "question_count": question_count,
        "category": category,
        "difficulty": difficulty,
        "hours_studied": hours_studied,
        "goal_hours": hour_goal(question_count) if goal_hours is None else goal_hours,
    }


def make_exercise(subject, correct, total, ex_id=1):
    return {
        "id": ex_id,
        "subject": subject,
        "correct": correct,
        "total": total,
        "percentage": 100 * correct / total,
        "topics": [],
        "date": "2025-01-01T12:00:00+00:00",
    }


class TestCatalog:
    """Seed subjects and hour goals"""

    def test_ten_subjects_totalling_180_questions(self):
        assert len(EXAM_SUBJECTS) == 10
        assert sum(s["question_count"] for s in EXAM_SUBJECTS) == 180

    def test_hour_goal_rounds_up(self):
        assert hour_goal(25) == 13
        assert hour_goal(20) == 10
        assert hour_goal(15) == 8

    def test_build_subject_uses_name_as_id(self):
        subject = build_subject(EXAM_SUBJECTS[0])
        assert subject["id"] == subject["name"]
        assert subject["hours_studied"] == 0
        assert subject["goal_hours"] == hour_goal(subject["question_count"])


class TestKnowledgeLevel:
    """Single default for unreported levels"""

    def test_unreported_defaults_to_five(self):
        assert get_knowledge_level({}, "Atualidades") == DEFAULT_KNOWLEDGE_LEVEL == 5
        assert reported_knowledge_level({}, "Atualidades") is None

    def test_level_zero_is_kept(self):
        assert get_knowledge_level({"Atualidades": 0}, "Atualidades") == 0
        assert reported_knowledge_level({"Atualidades": 0}, "Atualidades") == 0


class TestComputePriority:
    """Gap terms and the composite priority"""

    def test_no_exercises_uses_neutral_performance(self):
        result = compute_priority(make_subject(), [], {})
        assert result["avg_performance"] == 50.0
        assert result["performance_gap"] == 50.0

    def test_average_ignores_other_subjects(self):
        exercises = [
            make_exercise("Atualidades", 8, 10),
            make_exercise("Língua Portuguesa", 1, 10, ex_id=2),
        ]
        result = compute_priority(make_subject(), exercises, {})
        assert result["avg_performance"] == 80.0
        assert result["performance_gap"] == 20.0

    def test_study_gap_never_negative(self):
        behind = compute_priority(make_subject(hours_studied=2, goal_hours=5), [], {})
        ahead = compute_priority(make_subject(hours_studied=9, goal_hours=5), [], {})
        assert behind["study_gap"] == 3
        assert ahead["study_gap"] == 0

    def test_knowledge_gap_from_level(self):
        assert compute_priority(make_subject(), [], {})["knowledge_gap"] == 5
        assert compute_priority(make_subject(), [], {"Atualidades": 9})["knowledge_gap"] == 1
        assert compute_priority(make_subject(), [], {"Atualidades": 0})["knowledge_gap"] == 10

    def test_specific_multiplier(self):
        general = compute_priority(make_subject(category=CATEGORY_GENERAL), [], {})
        specific = compute_priority(make_subject(category=CATEGORY_SPECIFIC), [], {})
        assert specific["score"] == pytest.approx(general["score"] * 1.2)

    def test_worked_example(self):
        subject = make_subject("Direito Constitucional", 25, CATEGORY_SPECIFIC, 4)
        result = compute_priority(subject, [make_exercise("Direito Constitucional", 15, 25)], {})
        assert result["avg_performance"] == 60.0
        assert result["performance_gap"] == 40.0
        assert result["knowledge_gap"] == 5
        assert result["study_gap"] == 13
        assert result["priority"] == pytest.approx(118.8)

    def test_monotonic_in_performance_gap(self):
        subject = make_subject()
        weak = compute_priority(subject, [make_exercise("Atualidades", 2, 10)], {})
        strong = compute_priority(subject, [make_exercise("Atualidades", 9, 10)], {})
        assert weak["score"] >= strong["score"]

    def test_monotonic_in_knowledge_gap(self):
        subject = make_subject()
        scores = [compute_priority(subject, [], {"Atualidades": lvl})["score"] for lvl in range(11)]
        assert scores == sorted(scores, reverse=True)

    def test_monotonic_in_study_gap(self):
        scores = [
            compute_priority(make_subject(hours_studied=h, goal_hours=5), [], {})["score"]
            for h in range(8)
        ]
        assert scores == sorted(scores, reverse=True)


class TestRankSubjects:
    """Ordering by descending score"""

    def test_descending_order(self):
        subjects = [build_subject(s) for s in EXAM_SUBJECTS]
        ranked = rank_subjects(subjects, [], {})
        scores = [result["score"] for _, result in ranked]
        assert scores == sorted(scores, reverse=True)
        assert ranked[0][0]["name"] == "Regimento Interno da Câmara"

    def test_ties_keep_input_order(self):
        subjects = [make_subject(name) for name in ("B", "A", "C")]
        ranked = rank_subjects(subjects, [], {})
        assert [s["name"] for s, _ in ranked] == ["B", "A", "C"]

    def test_empty(self):
        assert rank_subjects([], [], {}) == []

    def test_average_performance_empty(self):
        assert average_performance([]) is None
