"""Tests für die Stammdatenpflege (CatalogService)."""

import pytest
from pydantic import ValidationError

from conftest import make_group
from engine.errors import (
    CapacityExceededError,
    DuplicateIdError,
    InactiveGroupError,
    InUseError,
    InvalidValueError,
    NonEmptyGroupError,
    NotFoundError,
)
from engine.store import ENROLLMENTS
from models.enrollment import Enrollment
from models.group import EducationalLevel
from models.patches import (
    EnrollmentPatch,
    GroupPatch,
    LevelPatch,
    StudentPatch,
    SubjectGroupPatch,
    SubjectLevelPatch,
    SubjectPatch,
)
from models.student import Student
from models.subject import Subject, SubjectGroup, SubjectLevel


def _subject(sid: str = "qui", code: str = "QUI101") -> Subject:
    return Subject(
        id=sid, name="Química", code=code,
        levels=[SubjectLevel(id=f"{sid}-b", name="Básico", max_students=20)],
        groups=[SubjectGroup(id=f"{sid}-a", name="Grupo A", level_id=f"{sid}-b",
                             teacher_id="t-3", max_students=10)],
    )


# ─── GRUPPEN / STUFEN ─────────────────────────────────────────────────────────

class TestGroups:
    def test_add_group_stamps_dates(self, session):
        group = session.catalog.add_group(make_group("g-new"))
        assert group.created_at is not None and group.updated_at is not None
        assert session.store.contains("groups", "g-new")
        assert len(session.history) == 0

    def test_add_group_rejects_duplicate_and_unknown_level(self, session):
        with pytest.raises(DuplicateIdError):
            session.catalog.add_group(make_group("g-big"))
        with pytest.raises(NotFoundError):
            session.catalog.add_group(make_group("g-x", level_id="lvl-9"))

    def test_add_group_must_be_empty(self, session):
        with pytest.raises(InvalidValueError):
            session.catalog.add_group(make_group("g-x", students=["s-2"]))

    def test_update_group_name_and_capacity(self, session):
        updated = session.catalog.update_group(
            "g-small", GroupPatch(name="1A", max_capacity=25)
        )
        assert updated.name == "1A" and updated.max_capacity == 25
        assert updated.student_ids == ["s-1"]

    def test_capacity_below_occupancy_rejected(self, session):
        """Maximalkapazität unter aktueller Belegung → CapacityExceededError."""
        with pytest.raises(CapacityExceededError):
            session.catalog.update_group("g-small", GroupPatch(max_capacity=0))
        assert session.store.get_group("g-small").max_capacity == 2

    def test_activate_archived_group_rejected(self, session):
        with pytest.raises(InactiveGroupError):
            session.catalog.update_group("g-archived", GroupPatch(is_active=True))

    def test_patch_cannot_touch_occupancy(self):
        """Belegungsfelder sind nicht Teil des Patches."""
        with pytest.raises(ValidationError):
            GroupPatch(student_ids=["s-9"])
        with pytest.raises(ValidationError):
            GroupPatch(is_archived=True)

    def test_level_lifecycle(self, session):
        session.catalog.add_level(EducationalLevel(id="lvl-3", name="Bachillerato"))
        session.catalog.update_level("lvl-3", LevelPatch(order=3))
        assert session.store.get_level("lvl-3").order == 3
        session.catalog.delete_level("lvl-3")
        assert not session.store.contains("levels", "lvl-3")

    def test_delete_level_in_use(self, session):
        with pytest.raises(InUseError):
            session.catalog.delete_level("lvl-2")


# ─── SCHÜLER ──────────────────────────────────────────────────────────────────

class TestStudents:
    def test_add_and_deactivate(self, session):
        session.catalog.add_student(Student(id="s-6", name="Ana"))
        assert session.store.get_student("s-6").created_at is not None
        session.catalog.update_student("s-6", StudentPatch(is_active=False))
        assert session.store.get_student("s-6").is_active is False

    def test_duplicate_student(self, session):
        with pytest.raises(DuplicateIdError):
            session.catalog.add_student(Student(id="s-1", name="Doppelt"))


# ─── FÄCHER ───────────────────────────────────────────────────────────────────

class TestSubjects:
    def test_add_subject(self, session):
        subject = session.catalog.add_subject(_subject())
        assert subject.code == "QUI101"
        assert session.store.get_subject("qui").groups[0].id == "qui-a"

    def test_code_must_be_unique(self, session):
        """Fachcode wird normalisiert und muss eindeutig sein."""
        with pytest.raises(DuplicateIdError) as exc:
            session.catalog.add_subject(_subject(code=" mat101 "))
        assert "MAT101" in str(exc.value)

    def test_update_code_normalised_and_checked(self, session):
        updated = session.catalog.update_subject("fis", SubjectPatch(code="fis102"))
        assert updated.code == "FIS102"
        with pytest.raises(DuplicateIdError):
            session.catalog.update_subject("fis", SubjectPatch(code="MAT101"))

    def test_new_subject_counters_must_be_zero(self, session):
        subject = _subject()
        subject.groups[0].current_students = 3
        with pytest.raises(InvalidValueError):
            session.catalog.add_subject(subject)

    def test_subject_group_ids_globally_unique(self, session):
        subject = _subject()
        subject.groups[0].id = "mat-a"
        with pytest.raises(DuplicateIdError):
            session.catalog.add_subject(subject)

    def test_delete_subject_with_active_enrollment(self, session):
        with pytest.raises(InUseError):
            session.catalog.delete_subject("mat")

    def test_delete_subject_removes_old_enrollments(self, session):
        session.capacity.remove_student("s-1", "mat")
        session.catalog.delete_subject("mat")
        assert not session.store.contains("subjects", "mat")
        assert not session.store.contains("enrollments", "enr-1")


class TestSubjectParts:
    def test_add_update_delete_level(self, session):
        session.catalog.add_subject_level("mat", SubjectLevel(id="mat-x", name="Avanzado",
                                                              max_students=20))
        session.catalog.update_subject_level("mat", "mat-x",
                                             SubjectLevelPatch(max_students=12))
        assert session.store.get_subject("mat").get_level("mat-x").max_students == 12
        session.catalog.delete_subject_level("mat", "mat-x")
        assert session.store.get_subject("mat").get_level("mat-x") is None

    def test_delete_level_with_groups_or_enrollments(self, session):
        with pytest.raises(InUseError):
            session.catalog.delete_subject_level("mat", "mat-b")
        with pytest.raises(InUseError):
            session.catalog.delete_subject_level("mat", "mat-i")

    def test_level_capacity_below_counter(self, session):
        with pytest.raises(CapacityExceededError):
            session.catalog.update_subject_level("mat", "mat-b",
                                                 SubjectLevelPatch(max_students=0))

    def test_add_subject_group(self, session):
        session.catalog.add_subject_group(
            "mat", SubjectGroup(id="mat-ib", name="Grupo B", level_id="mat-i",
                                teacher_id="t-2", max_students=10),
        )
        assert session.store.subject_of_group("mat-ib").id == "mat"
        with pytest.raises(NotFoundError):
            session.catalog.add_subject_group(
                "mat", SubjectGroup(id="mat-z", name="Z", level_id="nope",
                                    teacher_id="t-2", max_students=10),
            )

    def test_update_subject_group_keeps_counter(self, session):
        session.catalog.update_subject_group("mat", "mat-a",
                                             SubjectGroupPatch(teacher_name="Prof. Ruiz"))
        group = session.store.get_subject("mat").get_group("mat-a")
        assert group.teacher_name == "Prof. Ruiz" and group.current_students == 1
        with pytest.raises(CapacityExceededError):
            session.catalog.update_subject_group("mat", "mat-a",
                                                 SubjectGroupPatch(max_students=0))

    def test_delete_occupied_subject_group(self, session):
        with pytest.raises(NonEmptyGroupError):
            session.catalog.delete_subject_group("mat", "mat-a")
        session.catalog.delete_subject_group("mat", "mat-bb")
        assert session.store.get_subject("mat").get_group("mat-bb") is None

    def test_delete_subject_group_with_active_enrollment(self, session):
        """Zähler 0, aber aktive Einschreibung in der Gruppe → InUseError."""
        session.store.insert(ENROLLMENTS, Enrollment(
            id="enr-x", student_id="s-2", subject_id="mat", level_id="mat-b",
            group_id="mat-bb",
        ))
        assert session.store.get_subject("mat").get_group("mat-bb").current_students == 0

        with pytest.raises(InUseError):
            session.catalog.delete_subject_group("mat", "mat-bb")
        assert session.store.get_subject("mat").get_group("mat-bb") is not None


class TestEnrollmentRecord:
    def test_update_attendance_and_grade(self, session):
        updated = session.catalog.update_enrollment_record(
            "enr-1", EnrollmentPatch(attendance=75.5, grade=8.0)
        )
        assert updated.attendance == 75.5 and updated.grade == 8.0
        assert updated.is_active

    def test_patch_ranges_and_forbidden_fields(self):
        with pytest.raises(ValidationError):
            EnrollmentPatch(attendance=101)
        with pytest.raises(ValidationError):
            EnrollmentPatch(status="dropped")
