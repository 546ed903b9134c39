"""
Unit tests for application state updates and persistence.
"""

import json
from datetime import datetime, timezone

import pytest

from conftest import MemoryStore, FailingStore, BrokenReadStore
from services.catalog import EXAM_SUBJECTS
from services.metrics import rank_subjects
from services.core import (
    SUBJECTS_KEY, EXERCISES_KEY, LEVELS_KEY,
    empty_state,
    initialize_subjects,
    add_exercise,
    add_study_hours,
    update_knowledge_level,
    validate_exercise_input,
    parse_topics,
    state_to_payloads,
    state_from_payloads,
    load_state,
    save_state,
)

FIXED_NOW = datetime(2025, 3, 10, 14, 30, tzinfo=timezone.utc)


def seeded_state():
    return initialize_subjects(empty_state())


class TestInitializeSubjects:
    """Seeding the subject list"""

    def test_seeds_catalog(self):
        state = seeded_state()
        assert state.initialized
        assert len(state.subjects) == len(EXAM_SUBJECTS)
        assert state.version == 1

    def test_keeps_exercises_and_levels(self):
        state = add_exercise(seeded_state(), "Atualidades", 5, 10, now=FIXED_NOW)
        state = update_knowledge_level(state, "Atualidades", 8)
        reseeded = initialize_subjects(state)
        assert reseeded.exercises == state.exercises
        assert reseeded.knowledge_levels == {"Atualidades": 8}


class TestAddExercise:
    """Recording practice results"""

    def test_percentage_exact(self):
        state = add_exercise(seeded_state(), "Atualidades", 7, 10, now=FIXED_NOW)
        exercise = state.exercises[-1]
        assert exercise["percentage"] == 70.0
        assert exercise["correct"] == 7
        assert exercise["total"] == 10
        assert exercise["date"] == FIXED_NOW.isoformat()

    def test_zero_total_is_noop(self):
        state = seeded_state()
        assert add_exercise(state, "Atualidades", 0, 0) is state

    def test_missing_subject_is_noop(self):
        state = seeded_state()
        assert add_exercise(state, "", 3, 10) is state
        assert add_exercise(state, None, 3, 10) is state

    def test_correct_above_total_is_noop(self):
        state = seeded_state()
        assert add_exercise(state, "Atualidades", 11, 10) is state
        assert add_exercise(state, "Atualidades", -1, 10) is state

    def test_topics_trimmed_and_ordered(self):
        state = add_exercise(seeded_state(), "Atualidades", 5, 10, " crase , , regência ", now=FIXED_NOW)
        assert state.exercises[-1]["topics"] == ["crase", "regência"]

    def test_ids_strictly_increasing(self):
        state = seeded_state()
        for _ in range(3):
            state = add_exercise(state, "Atualidades", 5, 10, now=FIXED_NOW)
        ids = [e["id"] for e in state.exercises]
        assert ids == sorted(set(ids))
        assert ids[0] == int(FIXED_NOW.timestamp() * 1000)

    def test_version_bumps_once_per_update(self):
        state = seeded_state()
        updated = add_exercise(state, "Atualidades", 5, 10, now=FIXED_NOW)
        assert updated.version == state.version + 1
        assert state.exercises == ()


class TestValidateExerciseInput:

    def test_reasons(self):
        assert validate_exercise_input("Atualidades", 5, 10) is None
        assert validate_exercise_input("", 5, 10) == "no subject selected"
        assert validate_exercise_input("Atualidades", 0, 0) == "total must be greater than zero"
        assert validate_exercise_input("Atualidades", "x", 10) == "correct and total must be integers"
        assert validate_exercise_input("Atualidades", 12, 10) == "correct must be between 0 and total"

    def test_parse_topics_accepts_list(self):
        assert parse_topics(["a", " b ", ""]) == ["a", "b"]
        assert parse_topics("") == []
        assert parse_topics(None) == []

    def test_fractional_counts_rejected(self):
        assert validate_exercise_input("Atualidades", 7.9, 10) == "correct and total must be integers"
        assert validate_exercise_input("Atualidades", 7, 10.5) == "correct and total must be integers"
        assert validate_exercise_input("Atualidades", "7.9", 10) == "correct and total must be integers"
        assert validate_exercise_input("Atualidades", 7.0, "10") is None

    def test_fractional_exercise_not_recorded(self):
        state = seeded_state()
        assert add_exercise(state, "Atualidades", 7.9, 10.5) is state
        recorded = add_exercise(state, "Atualidades", 7.0, 10.0, now=FIXED_NOW).exercises[-1]
        assert recorded["correct"] == 7 and recorded["total"] == 10
        assert recorded["percentage"] == 70.0


class TestStudyHoursAndLevels:
    """Hours are additive, levels overwrite"""

    def test_add_hours(self):
        state = add_study_hours(seeded_state(), "Atualidades", 2)
        state = add_study_hours(state, "Atualidades", 1.5)
        subject = next(s for s in state.subjects if s["id"] == "Atualidades")
        assert subject["hours_studied"] == 3.5

    def test_goal_hours_unchanged_by_hours(self):
        state = add_study_hours(seeded_state(), "Atualidades", 20)
        subject = next(s for s in state.subjects if s["id"] == "Atualidades")
        assert subject["goal_hours"] == 5

    def test_rejected_hours(self):
        state = seeded_state()
        assert add_study_hours(state, "Atualidades", 0) is state
        assert add_study_hours(state, "Atualidades", -1) is state
        assert add_study_hours(state, "Inexistente", 1) is state

    def test_level_overwrites(self):
        state = update_knowledge_level(seeded_state(), "Atualidades", 3)
        state = update_knowledge_level(state, "Atualidades", "7")
        assert state.knowledge_levels == {"Atualidades": 7}

    def test_level_out_of_range_rejected(self):
        state = seeded_state()
        assert update_knowledge_level(state, "Atualidades", 11) is state
        assert update_knowledge_level(state, "Atualidades", -1) is state
        assert update_knowledge_level(state, "Atualidades", "alto") is state

    def test_hours_as_numeric_string(self):
        state = add_study_hours(seeded_state(), "Atualidades", "2")
        subject = next(s for s in state.subjects if s["id"] == "Atualidades")
        assert subject["hours_studied"] == 2.0
        assert isinstance(subject["hours_studied"], float)

    def test_non_finite_hours_rejected(self):
        state = seeded_state()
        assert add_study_hours(state, "Atualidades", float("inf")) is state
        assert add_study_hours(state, "Atualidades", "inf") is state
        assert add_study_hours(state, "Atualidades", float("nan")) is state
        assert add_study_hours(state, "Atualidades", "duas") is state
        assert add_study_hours(state, "Atualidades", True) is state

    def test_fractional_level_rejected(self):
        state = seeded_state()
        assert update_knowledge_level(state, "Atualidades", 7.5) is state
        assert update_knowledge_level(state, "Atualidades", None) is state


class TestPersistence:
    """Payload round trip and store reporting"""

    def make_state(self):
        state = add_exercise(seeded_state(), "Atualidades", 7, 10, "crase", now=FIXED_NOW)
        state = add_study_hours(state, "Atualidades", 2)
        return update_knowledge_level(state, "Atualidades", 0)

    def test_round_trip(self):
        state = self.make_state()
        restored = state_from_payloads(state_to_payloads(state))
        assert restored.subjects == state.subjects
        assert restored.exercises == state.exercises
        assert restored.knowledge_levels == state.knowledge_levels
        assert restored.initialized

    def test_payloads_are_json(self):
        payloads = state_to_payloads(self.make_state())
        assert isinstance(json.loads(payloads[SUBJECTS_KEY]), list)
        assert isinstance(json.loads(payloads[EXERCISES_KEY]), list)
        assert json.loads(payloads[LEVELS_KEY]) == {"Atualidades": 0}

    def test_save_then_load(self):
        store = MemoryStore()
        state = self.make_state()
        report = save_state(state, store)
        assert report["ok"]
        assert report["failure"] is None
        assert set(report["saved"]) == {SUBJECTS_KEY, EXERCISES_KEY, LEVELS_KEY}

        loaded = load_state(store)
        assert loaded.subjects == state.subjects
        assert loaded.exercises == state.exercises
        assert loaded.knowledge_levels == state.knowledge_levels

    def test_save_subset_of_keys(self):
        store = MemoryStore()
        report = save_state(self.make_state(), store, keys=[LEVELS_KEY])
        assert report["saved"] == [LEVELS_KEY]
        assert store.writes == [LEVELS_KEY]

    def test_save_failure_reported(self):
        report = save_state(self.make_state(), FailingStore(failing_keys={EXERCISES_KEY}))
        assert not report["ok"]
        assert report["failure"] == "persistence_error"
        assert list(report["failed"]) == [EXERCISES_KEY]
        assert EXERCISES_KEY not in report["saved"]

    def test_empty_store_loads_uninitialized(self):
        state = load_state(MemoryStore())
        assert not state.initialized
        assert state.subjects == ()
        assert state.exercises == ()
        assert state.knowledge_levels == {}

    def test_malformed_key_treated_as_absent(self):
        good = state_to_payloads(self.make_state())
        store = MemoryStore({
            SUBJECTS_KEY: good[SUBJECTS_KEY],
            EXERCISES_KEY: "{not json",
            LEVELS_KEY: "[1, 2]",
        })
        state = load_state(store)
        assert state.initialized
        assert state.exercises == ()
        assert state.knowledge_levels == {}

    def test_unreadable_store_starts_fresh(self):
        state = load_state(BrokenReadStore())
        assert not state.initialized
        assert state.subjects == ()

    def test_null_level_drops_levels_key(self):
        good = state_to_payloads(self.make_state())
        store = MemoryStore({
            SUBJECTS_KEY: good[SUBJECTS_KEY],
            LEVELS_KEY: '{"Atualidades": null}',
        })
        state = load_state(store)
        assert state.initialized
        assert state.knowledge_levels == {}

    def test_out_of_range_level_drops_levels_key(self):
        for raw in ('{"Atualidades": 11}', '{"Atualidades": 7.5}', '{"Atualidades": true}'):
            assert load_state(MemoryStore({LEVELS_KEY: raw})).knowledge_levels == {}
        assert load_state(MemoryStore({LEVELS_KEY: '{"Atualidades": "7"}'})).knowledge_levels == {"Atualidades": 7}

    def test_non_object_subjects_treated_as_absent(self):
        state = load_state(MemoryStore({SUBJECTS_KEY: "[1, 2]"}))
        assert not state.initialized
        assert state.subjects == ()
        assert rank_subjects(state.subjects, state.exercises, state.knowledge_levels) == []

    def test_subject_missing_fields_treated_as_absent(self):
        store = MemoryStore({SUBJECTS_KEY: json.dumps([{"id": "Atualidades", "name": "Atualidades"}])})
        assert load_state(store).subjects == ()

    def test_bad_exercise_drops_exercises_key(self):
        good = json.loads(state_to_payloads(self.make_state())[EXERCISES_KEY])
        broken = [
            [1, 2],
            [{**good[0], "total": 0}],
            [{**good[0], "correct": None}],
            [{**good[0], "topics": "crase"}],
            [{k: v for k, v in good[0].items() if k != "subject"}],
        ]
        for payload in broken:
            state = load_state(MemoryStore({EXERCISES_KEY: json.dumps(payload)}))
            assert state.exercises == ()

    def test_state_from_payloads_raises_on_bad_element(self):
        with pytest.raises((TypeError, ValueError)):
            state_from_payloads({LEVELS_KEY: '{"Atualidades": null}'})
