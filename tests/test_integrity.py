"""Tests für die Konsistenzprüfung (IntegrityValidator)."""

from analysis.integrity_validator import IntegrityValidator
from conftest import make_school_data
from engine.store import ENROLLMENTS, GROUPS, LEVELS, SUBJECTS, EntityStore
from models.enrollment import Enrollment
from models.group import AcademicGroup, EvaluationCriteria, LevelSubject


def _store() -> EntityStore:
    return EntityStore.from_school_data(make_school_data())


def _rules(report) -> set[str]:
    return {v.rule for v in report.violations}


def _broken_group(store: EntityStore, group_id: str, **update) -> None:
    """Ersetzt eine Gruppe ohne Validierung (simuliert fremd geladene Daten)."""
    group = store.get_group(group_id)
    store.replace(GROUPS, AcademicGroup.model_construct(**{**dict(group), **update}))


class TestIntegrityValidator:
    def test_consistent_fixture(self):
        report = IntegrityValidator().validate(_store())
        assert report.is_valid
        assert report.errors == []

    def test_group_over_capacity(self):
        store = _store()
        _broken_group(store, "g-small", student_ids=["s-1", "s-2", "s-3"])
        report = IntegrityValidator().validate(store)
        assert not report.is_valid
        assert "group_capacity" in _rules(report)

    def test_duplicate_member(self):
        store = _store()
        _broken_group(store, "g-big", student_ids=["s-2", "s-2"])
        assert "group_duplicate_member" in _rules(IntegrityValidator().validate(store))

    def test_archived_group_active_and_occupied(self):
        store = _store()
        _broken_group(store, "g-archived", is_active=True, student_ids=["s-2"])
        rules = _rules(IntegrityValidator().validate(store))
        assert {"archived_group_active", "archived_group_not_empty"} <= rules

    def test_duplicate_active_enrollment(self):
        store = _store()
        store.insert(ENROLLMENTS, Enrollment(id="enr-2", student_id="s-1", subject_id="mat",
                                             level_id="mat-b", group_id="mat-bb"))
        report = IntegrityValidator().validate(store)
        assert "duplicate_active_enrollment" in _rules(report)

    def test_unknown_references(self):
        store = _store()
        store.insert(ENROLLMENTS, Enrollment(id="enr-x", student_id="s-2", subject_id="nope",
                                             level_id="x", group_id="y"))
        _broken_group(store, "g-other", level_id="lvl-9", student_ids=["ghost"])
        report = IntegrityValidator().validate(store)
        rules = _rules(report)
        assert {"unknown_subject", "unknown_level", "unknown_student"} <= rules
        ghost = next(v for v in report.violations if v.rule == "unknown_student")
        assert ghost.severity == "warning"

    def test_counter_drift_is_warning(self):
        """Abweichende Fachzähler sind nur Warnungen."""
        store = _store()
        subject = store.get_subject("mat")
        store.replace(SUBJECTS, subject.with_counters({"mat-bb": 2}, {}))
        report = IntegrityValidator().validate(store)
        assert report.is_valid
        assert "subject_group_counter" in {v.rule for v in report.warnings}

    def test_evaluation_weights_warning(self):
        store = _store()
        level = store.get_level("lvl-1")
        store.replace(LEVELS, level.model_copy(update={"subjects": [
            LevelSubject(id="ls-1", subject_id="mat", subject_name="Matemáticas",
                         evaluation_criteria=[
                             EvaluationCriteria(id="c-1", name="Examen", weight=60),
                             EvaluationCriteria(id="c-2", name="Tareas", weight=30),
                         ]),
        ]}))
        report = IntegrityValidator().validate(store)
        assert report.is_valid
        assert [v.rule for v in report.warnings] == ["evaluation_weights"]

    def test_engine_keeps_data_consistent(self, session):
        """Nach beliebigen Engine-Operationen bleibt der Bestand fehlerfrei."""
        session.capacity.assign_student_to_group("s-2", "g-small")
        session.capacity.enroll_student("s-2", "mat", "mat-i", "mat-ia")
        session.capacity.transfer_student("s-1", "mat-a", "fis", "fis-b", "fis-a")
        session.capacity.change_level_student("s-2", "mat", "mat-b", "mat-bb")
        report = session.validate()
        assert report.is_valid and report.warnings == []
