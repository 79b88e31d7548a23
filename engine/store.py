"""EntityStore: autoritative In-Memory-Sammlungen aller Entitäten.

Reiner Datenhalter mit ID-Lookup. Einfügen/Ersetzen/Löschen sind Primitive
für CapacityEngine und CatalogService; fachliche Regeln prüfen diese selbst.
"""

import threading
from typing import Optional

from pydantic import BaseModel

from engine.errors import DuplicateIdError, NotFoundError
from models.enrollment import Enrollment, EnrollmentStatus, GroupAssignment
from models.group import AcademicGroup, EducationalLevel
from models.school_data import SchoolData
from models.student import Student
from models.subject import Subject, SubjectGroup

# Tabellen-Namen, identisch mit den Feldern von SchoolData
GROUPS = "groups"
LEVELS = "levels"
SUBJECTS = "subjects"
STUDENTS = "students"
ENROLLMENTS = "enrollments"
GROUP_ASSIGNMENTS = "group_assignments"
HISTORY = "history"

KINDS = (LEVELS, GROUPS, STUDENTS, SUBJECTS, ENROLLMENTS, GROUP_ASSIGNMENTS)

# Anzeigenamen für Fehlermeldungen
KIND_LABELS = {
    GROUPS: "Gruppe",
    LEVELS: "Stufe",
    SUBJECTS: "Fach",
    STUDENTS: "Schüler",
    ENROLLMENTS: "Einschreibung",
    GROUP_ASSIGNMENTS: "Gruppenzuordnung",
    HISTORY: "Protokolleintrag",
}


class EntityStore:
    """Dict-basierte Sammlungen pro Entitätstyp, Reihenfolge = Einfügereihenfolge."""

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, BaseModel]] = {kind: {} for kind in KINDS}
        # Serialisiert alle Mutationen (Validierung + Änderung = ein kritischer Abschnitt)
        self.lock = threading.RLock()

    # ─── Primitive ───

    def _table(self, kind: str) -> dict[str, BaseModel]:
        try:
            return self._tables[kind]
        except KeyError:
            raise ValueError(f"Unbekannter Entitätstyp: {kind}") from None

    def insert(self, kind: str, entity: BaseModel) -> None:
        table = self._table(kind)
        if entity.id in table:
            raise DuplicateIdError(KIND_LABELS[kind], entity.id)
        table[entity.id] = entity

    def replace(self, kind: str, entity: BaseModel) -> None:
        table = self._table(kind)
        if entity.id not in table:
            raise NotFoundError(KIND_LABELS[kind], entity.id)
        table[entity.id] = entity

    def delete(self, kind: str, entity_id: str) -> BaseModel:
        table = self._table(kind)
        try:
            return table.pop(entity_id)
        except KeyError:
            raise NotFoundError(KIND_LABELS[kind], entity_id) from None

    def get(self, kind: str, entity_id: str) -> BaseModel:
        try:
            return self._table(kind)[entity_id]
        except KeyError:
            raise NotFoundError(KIND_LABELS[kind], entity_id) from None

    def find(self, kind: str, entity_id: str) -> Optional[BaseModel]:
        return self._table(kind).get(entity_id)

    def contains(self, kind: str, entity_id: str) -> bool:
        return entity_id in self._table(kind)

    def all(self, kind: str) -> list:
        return list(self._table(kind).values())

    # ─── Typisierte Lookups ───

    def get_group(self, group_id: str) -> AcademicGroup:
        return self.get(GROUPS, group_id)

    def get_level(self, level_id: str) -> EducationalLevel:
        return self.get(LEVELS, level_id)

    def get_subject(self, subject_id: str) -> Subject:
        return self.get(SUBJECTS, subject_id)

    def get_student(self, student_id: str) -> Student:
        return self.get(STUDENTS, student_id)

    def get_enrollment(self, enrollment_id: str) -> Enrollment:
        return self.get(ENROLLMENTS, enrollment_id)

    def get_group_assignment(self, assignment_id: str) -> GroupAssignment:
        return self.get(GROUP_ASSIGNMENTS, assignment_id)

    @property
    def groups(self) -> list[AcademicGroup]:
        return self.all(GROUPS)

    @property
    def levels(self) -> list[EducationalLevel]:
        return self.all(LEVELS)

    @property
    def subjects(self) -> list[Subject]:
        return self.all(SUBJECTS)

    @property
    def students(self) -> list[Student]:
        return self.all(STUDENTS)

    @property
    def enrollments(self) -> list[Enrollment]:
        return self.all(ENROLLMENTS)

    @property
    def group_assignments(self) -> list[GroupAssignment]:
        return self.all(GROUP_ASSIGNMENTS)

    def list_groups_by_level(self, level_id: str) -> list[AcademicGroup]:
        return [g for g in self.groups if g.level_id == level_id]

    def list_groups_by_tutor(self, tutor_id: str) -> list[AcademicGroup]:
        return [g for g in self.groups if g.tutor_id == tutor_id]

    def find_active_enrollment(self, student_id: str, subject_id: str) -> Optional[Enrollment]:
        return next(
            (e for e in self.enrollments
             if e.student_id == student_id and e.subject_id == subject_id
             and e.status == EnrollmentStatus.ACTIVE),
            None,
        )

    def find_enrollment_in_group(self, student_id: str,
                                 subject_group_id: str) -> Optional[Enrollment]:
        """Aktive Einschreibung eines Schülers in einer bestimmten Fachgruppe."""
        return next(
            (e for e in self.enrollments
             if e.student_id == student_id and e.group_id == subject_group_id
             and e.status == EnrollmentStatus.ACTIVE),
            None,
        )

    def find_active_group_assignment(self, student_id: str,
                                     group_id: str) -> Optional[GroupAssignment]:
        return next(
            (a for a in self.group_assignments
             if a.student_id == student_id and a.group_id == group_id and a.is_active),
            None,
        )

    def subject_of_group(self, subject_group_id: str) -> Optional[Subject]:
        """Fach, zu dem eine Fachgruppe gehört."""
        return next(
            (s for s in self.subjects if s.get_group(subject_group_id) is not None),
            None,
        )

    def get_subject_group(self, subject_id: str, subject_group_id: str) -> SubjectGroup:
        group = self.get_subject(subject_id).get_group(subject_group_id)
        if group is None:
            raise NotFoundError("Fachgruppe", subject_group_id)
        return group

    # ─── Snapshot ───

    @classmethod
    def from_school_data(cls, data: SchoolData) -> "EntityStore":
        """Baut einen Store aus einem Snapshot. Doppelte IDs → DuplicateIdError."""
        store = cls()
        for kind in KINDS:
            for entity in getattr(data, kind):
                store.insert(kind, entity)
        return store

    def to_school_data(self, **extra) -> SchoolData:
        """Erzeugt einen Snapshot; ``extra`` ergänzt z.B. history oder Metadaten."""
        fields = {kind: self.all(kind) for kind in KINDS}
        fields.update(extra)
        return SchoolData(**fields)

    def __repr__(self) -> str:
        counts = ", ".join(f"{k}={len(self._tables[k])}" for k in KINDS)
        return f"EntityStore({counts})"
