"""Gemeinsame Test-Bausteine: Mini-Datenbestand, Zeitgeber, Sessions."""

from datetime import datetime, timedelta, timezone

import pytest

from config.schema import AppConfig, PersistenceConfig, SyncStrategy
from engine.persistence import DemoAdapter
from engine.session import SchoolSession
from models.enrollment import Enrollment, GroupAssignment
from models.group import AcademicGroup, EducationalLevel
from models.school_data import SchoolData
from models.student import Student
from models.subject import Subject, SubjectGroup, SubjectLevel


class TickClock:
    """Deterministische Uhr: jeder Aufruf eine Sekunde später."""

    def __init__(self, start: datetime = datetime(2024, 9, 2, 8, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


def make_group(gid: str, max_capacity: int = 30, students: list[str] | None = None,
               **kw) -> AcademicGroup:
    return AcademicGroup(
        id=gid,
        name=kw.pop("name", f"Gruppe {gid}"),
        level_id=kw.pop("level_id", "lvl-1"),
        academic_year=kw.pop("academic_year", "2024-2025"),
        max_capacity=max_capacity,
        tutor_id=kw.pop("tutor_id", "t-1"),
        student_ids=students or [],
        **kw,
    )


def make_school_data() -> SchoolData:
    """Kleiner, konsistenter Bestand.

    Gruppen: g-small (2 Plätze, s-1 belegt), g-big, g-inactive,
    g-archived (Vorjahr), g-other (anderer Tutor/Stufe).
    Fächer: MAT (2 Stufen, 3 Gruppen; s-1 in mat-a), FIS (fis-a 1 Platz),
    HIS (inaktiv). Schüler s-1…s-4 aktiv, s-5 inaktiv.
    """
    levels = [
        EducationalLevel(id="lvl-1", name="Educación Primaria", order=1),
        EducationalLevel(id="lvl-2", name="Educación Secundaria", order=2),
    ]
    groups = [
        make_group("g-small", max_capacity=2, students=["s-1"]),
        make_group("g-big", max_capacity=30),
        make_group("g-inactive", is_active=False),
        make_group("g-archived", academic_year="2023-2024",
                   is_active=False, is_archived=True),
        make_group("g-other", level_id="lvl-2", tutor_id="t-2"),
    ]
    students = [Student(id=f"s-{i}", name=f"Schüler {i}") for i in range(1, 5)]
    students.append(Student(id="s-5", name="Schüler 5", is_active=False))

    subjects = [
        Subject(
            id="mat", name="Matemáticas", code="mat101", department="Ciencias Exactas",
            levels=[
                SubjectLevel(id="mat-b", name="Básico", order=1, max_students=30,
                             current_students=1),
                SubjectLevel(id="mat-i", name="Intermedio", order=2, max_students=25),
            ],
            groups=[
                SubjectGroup(id="mat-a", name="Grupo A", level_id="mat-b",
                             teacher_id="t-1", max_students=2, current_students=1),
                SubjectGroup(id="mat-bb", name="Grupo B", level_id="mat-b",
                             teacher_id="t-2", max_students=15),
                SubjectGroup(id="mat-ia", name="Grupo A", level_id="mat-i",
                             teacher_id="t-1", max_students=10),
            ],
        ),
        Subject(
            id="fis", name="Física", code="FIS101", department="Ciencias Exactas",
            levels=[SubjectLevel(id="fis-b", name="Básico", max_students=25)],
            groups=[SubjectGroup(id="fis-a", name="Grupo A", level_id="fis-b",
                                 teacher_id="t-2", max_students=1)],
        ),
        Subject(
            id="his", name="Historia", code="HIS101", department="Humanidades",
            is_active=False,
            levels=[SubjectLevel(id="his-b", name="Básico", max_students=30)],
            groups=[SubjectGroup(id="his-a", name="Grupo A", level_id="his-b",
                                 teacher_id="t-2", max_students=30)],
        ),
    ]
    enrollments = [
        Enrollment(id="enr-1", student_id="s-1", subject_id="mat", level_id="mat-b",
                   group_id="mat-a", attendance=90.0),
    ]
    assignments = [
        GroupAssignment(id="asg-1", student_id="s-1", group_id="g-small"),
    ]
    return SchoolData(levels=levels, groups=groups, students=students,
                      subjects=subjects, enrollments=enrollments,
                      group_assignments=assignments)


def make_session(strategy: SyncStrategy = SyncStrategy.OPTIMISTIC, adapter=None,
                 **rules) -> SchoolSession:
    config = AppConfig(
        actor_id="admin-1",
        persistence=PersistenceConfig(sync_strategy=strategy, retry_attempts=1),
    )
    if rules:
        config = config.model_copy(
            update={"rules": config.rules.model_copy(update=rules)}
        )
    return SchoolSession(make_school_data(), config,
                         adapter=adapter if adapter is not None else DemoAdapter(),
                         clock=TickClock())


class FlakyAdapter(DemoAdapter):
    """Demo-Adapter, der ausgewählte Aufrufe mit ConnectionError ablehnt.

    ``fail_on``: Menge von (action, kind) oder (action, kind, record_id).
    ``failures``: Anzahl der Fehlschläge pro passendem Aufruf (None = immer).
    """

    def __init__(self, fail_on=(), failures=None) -> None:
        super().__init__()
        self.fail_on = set(fail_on)
        self.failures = failures
        self.attempts: list[tuple[str, str, str]] = []
        self._failed: dict[tuple, int] = {}

    def _maybe_fail(self, action: str, kind: str, record_id: str) -> None:
        self.attempts.append((action, kind, record_id))
        for key in ((action, kind), (action, kind, record_id)):
            if key in self.fail_on:
                count = self._failed.get(key, 0)
                if self.failures is None or count < self.failures:
                    self._failed[key] = count + 1
                    raise ConnectionError(f"Netzwerkfehler bei {action} {kind}/{record_id}")

    def create(self, kind, record):
        self._maybe_fail("create", kind, record["id"])
        super().create(kind, record)

    def update(self, kind, record_id, patch):
        self._maybe_fail("update", kind, record_id)
        super().update(kind, record_id, patch)

    def delete(self, kind, record_id):
        self._maybe_fail("delete", kind, record_id)
        super().delete(kind, record_id)


@pytest.fixture
def session() -> SchoolSession:
    return make_session()


@pytest.fixture
def strict_session() -> SchoolSession:
    return make_session(SyncStrategy.STRICT)
