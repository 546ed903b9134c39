"""
Exam catalog: the subjects of the edital and fixed exam facts.

These values are external facts about the Câmara dos Deputados exam
(Analista Legislativo, Cebraspe) and are not computed anywhere.
"""

import math
from typing import Dict, Any, List

# ============ EXAM FACTS ============

EXAM_NAME = "Câmara dos Deputados - Analista Legislativo"
EXAM_TOTAL_QUESTIONS = 180
EXAM_GENERAL_QUESTIONS = 90
EXAM_SPECIFIC_QUESTIONS = 90
EXAM_SCORING_SCHEME = "Certo/Errado (Cebraspe)"
EXAM_ESSAY_POINTS = 60
EXAM_PASSING_THRESHOLD = "~60-70% de acerto"

CATEGORY_GENERAL = "general"
CATEGORY_SPECIFIC = "specific"
CATEGORIES = (CATEGORY_GENERAL, CATEGORY_SPECIFIC)

# Study hours budgeted per exam question
HOUR_GOAL_RATIO = 0.5

# ============ SEED SUBJECTS ============

EXAM_SUBJECTS: List[Dict[str, Any]] = [
    {"name": "Língua Portuguesa", "question_count": 20, "category": CATEGORY_GENERAL, "difficulty": 3},
    {"name": "Raciocínio Lógico e Analítico", "question_count": 15, "category": CATEGORY_GENERAL, "difficulty": 4},
    {"name": "Direito Administrativo", "question_count": 20, "category": CATEGORY_GENERAL, "difficulty": 4},
    {"name": "Administração Pública", "question_count": 15, "category": CATEGORY_GENERAL, "difficulty": 3},
    {"name": "Noções de Informática", "question_count": 10, "category": CATEGORY_GENERAL, "difficulty": 2},
    {"name": "Atualidades", "question_count": 10, "category": CATEGORY_GENERAL, "difficulty": 2},
    {"name": "Regimento Interno da Câmara", "question_count": 30, "category": CATEGORY_SPECIFIC, "difficulty": 5},
    {"name": "Direito Constitucional", "question_count": 25, "category": CATEGORY_SPECIFIC, "difficulty": 4},
    {"name": "Processo Legislativo", "question_count": 20, "category": CATEGORY_SPECIFIC, "difficulty": 4},
    {"name": "Gestão Pública e Orçamento", "question_count": 15, "category": CATEGORY_SPECIFIC, "difficulty": 4},
]


def hour_goal(question_count: int) -> int:
    """Study-hour goal for a subject, fixed when the subject is created."""
    return math.ceil(question_count * HOUR_GOAL_RATIO)


def build_subject(entry: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create a Subject record from a catalog entry.

    The id is the subject name, so it stays stable across reloads.
    """
    name = entry["name"]
    return {
        "id": name,
        "name": name,
        "question_count": int(entry["question_count"]),
        "category": entry["category"],
        "difficulty": int(entry["difficulty"]),
        "hours_studied": 0,
        "goal_hours": hour_goal(int(entry["question_count"])),
    }
