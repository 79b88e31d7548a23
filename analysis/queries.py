"""Abfragen und Berichte über den aktuellen Datenbestand.

Alle Methoden lesen nur und berechnen ihr Ergebnis bei jedem Aufruf neu
aus dem EntityStore (kein Caching).
"""

from collections import defaultdict
from typing import Optional

from pydantic import BaseModel

from engine.store import GROUPS, LEVELS, STUDENTS, SUBJECTS, EntityStore
from models.enrollment import Enrollment
from models.group import AcademicGroup
from models.student import Student
from models.subject import Subject, SubjectGroup


# ─── Bericht-Modelle ──────────────────────────────────────────────────────────

class SubjectStats(BaseModel):
    """Kennzahlen des Fächerangebots."""

    total_subjects: int
    active_subjects: int
    total_enrollments: int                # nur aktive Einschreibungen
    average_enrollment_per_subject: float
    subjects_by_department: dict[str, int]
    enrollments_by_level: dict[str, int]  # Stufenname → aktive Einschreibungen


class GroupReport(BaseModel):
    """Auswertung einer akademischen Gruppe."""

    group_id: str
    name: str
    level_name: str
    academic_year: str
    occupancy: int
    max_capacity: int
    utilisation: float                    # 0.0–1.0
    members: list[str]                    # Schülernamen
    enrollments_by_level: dict[str, int]  # "MAT101 Básico" → Anzahl
    average_attendance: Optional[float] = None


class LevelReport(BaseModel):
    """Auswertung einer Bildungsstufe über alle ihre Gruppen."""

    level_id: str
    name: str
    group_count: int
    active_group_count: int
    student_count: int
    total_capacity: int
    utilisation: float


class DashboardCounts(BaseModel):
    """Zähler für die Übersichtsseite."""

    total_groups: int                     # nicht archiviert
    active_groups: int
    inactive_groups: int
    archived_groups: int
    assigned_students: int
    average_utilisation: int              # Prozent, gerundet
    total_students: int
    active_students: int
    total_subjects: int
    active_enrollments: int


def _ratio(part: int, whole: int) -> float:
    return round(part / whole, 4) if whole > 0 else 0.0


# ─── Facade ───────────────────────────────────────────────────────────────────

class QueryFacade:
    """Lesende Sichten auf den EntityStore."""

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    # ── Gruppen ───────────────────────────────────────────────────────────────

    def get_available_groups(self) -> list[AcademicGroup]:
        """Aktive Gruppen mit freiem Platz."""
        return [g for g in self.store.groups
                if g.is_active and g.current_capacity < g.max_capacity]

    def get_active_groups(self) -> list[AcademicGroup]:
        """Alle nicht archivierten Gruppen (auch inaktive)."""
        return [g for g in self.store.groups if not g.is_archived]

    def get_archived_groups(self) -> list[AcademicGroup]:
        return [g for g in self.store.groups if g.is_archived]

    def get_students_by_group(self, group_id: str) -> list[Student]:
        """Mitglieder einer Gruppe; unbekannte Gruppe oder Schüler-ID → ausgelassen."""
        group = self.store.find(GROUPS, group_id)
        if group is None:
            return []
        members = (self.store.find(STUDENTS, sid) for sid in group.student_ids)
        return [s for s in members if s is not None]

    def get_groups_by_level(self, level_id: str) -> list[AcademicGroup]:
        return self.store.list_groups_by_level(level_id)

    def get_groups_by_tutor(self, tutor_id: str) -> list[AcademicGroup]:
        return self.store.list_groups_by_tutor(tutor_id)

    # ── Fächer & Einschreibungen ─────────────────────────────────────────────

    def get_available_subject_groups(self, subject_id: str,
                                     level_id: str) -> list[SubjectGroup]:
        subject = self.store.find(SUBJECTS, subject_id)
        if subject is None:
            return []
        return [g for g in subject.groups if g.level_id == level_id and g.has_capacity]

    def get_enrollments_by_student(self, student_id: str) -> list[Enrollment]:
        return [e for e in self.store.enrollments
                if e.student_id == student_id and e.is_active]

    def get_enrollments_by_subject(self, subject_id: str) -> list[Enrollment]:
        return [e for e in self.store.enrollments
                if e.subject_id == subject_id and e.is_active]

    def search_subjects(self, query: str) -> list[Subject]:
        """Volltextsuche über Name, Code, Abteilung und Beschreibung."""
        if not query.strip():
            return self.store.subjects
        needle = query.lower()
        return [
            s for s in self.store.subjects
            if needle in s.name.lower() or needle in s.code.lower()
            or needle in s.department.lower() or needle in s.description.lower()
        ]

    def filter_subjects_by_department(self, department: str) -> list[Subject]:
        if department == "all":
            return self.store.subjects
        return [s for s in self.store.subjects if s.department == department]

    # ── Berichte ──────────────────────────────────────────────────────────────

    def subject_stats(self) -> SubjectStats:
        subjects = self.store.subjects
        active_subjects = [s for s in subjects if s.is_active]
        active = [e for e in self.store.enrollments if e.is_active]

        by_department: dict[str, int] = defaultdict(int)
        for subject in subjects:
            by_department[subject.department] += 1

        by_level: dict[str, int] = defaultdict(int)
        for enrollment in active:
            subject = self.store.find(SUBJECTS, enrollment.subject_id)
            level = subject.get_level(enrollment.level_id) if subject else None
            if level is not None:
                by_level[level.name] += 1

        return SubjectStats(
            total_subjects=len(subjects),
            active_subjects=len(active_subjects),
            total_enrollments=len(active),
            average_enrollment_per_subject=(
                round(len(active) / len(active_subjects), 2) if active_subjects else 0.0
            ),
            subjects_by_department=dict(by_department),
            enrollments_by_level=dict(by_level),
        )

    def group_report(self, group_id: str) -> GroupReport:
        """Mitglieder, deren Fachstufen und durchschnittliche Anwesenheit.

        Raises:
            NotFoundError: Gruppe existiert nicht.
        """
        group = self.store.get_group(group_id)
        level = self.store.find(LEVELS, group.level_id)
        members = self.get_students_by_group(group_id)
        member_ids = set(group.student_ids)

        by_level: dict[str, int] = defaultdict(int)
        attendance: list[float] = []
        for enrollment in self.store.enrollments:
            if enrollment.student_id not in member_ids or not enrollment.is_active:
                continue
            attendance.append(enrollment.attendance)
            subject = self.store.find(SUBJECTS, enrollment.subject_id)
            if subject is None:
                continue
            sub_level = subject.get_level(enrollment.level_id)
            label = f"{subject.code} {sub_level.name if sub_level else enrollment.level_id}"
            by_level[label] += 1

        return GroupReport(
            group_id=group.id,
            name=group.name,
            level_name=level.name if level else group.level_id,
            academic_year=group.academic_year,
            occupancy=group.current_capacity,
            max_capacity=group.max_capacity,
            utilisation=_ratio(group.current_capacity, group.max_capacity),
            members=[s.name for s in members],
            enrollments_by_level=dict(sorted(by_level.items())),
            average_attendance=(
                round(sum(attendance) / len(attendance), 1) if attendance else None
            ),
        )

    def level_report(self, level_id: str) -> LevelReport:
        level = self.store.get_level(level_id)
        groups = [g for g in self.store.list_groups_by_level(level_id) if not g.is_archived]
        students = sum(g.current_capacity for g in groups)
        capacity = sum(g.max_capacity for g in groups)
        return LevelReport(
            level_id=level.id,
            name=level.name,
            group_count=len(groups),
            active_group_count=sum(1 for g in groups if g.is_active),
            student_count=students,
            total_capacity=capacity,
            utilisation=_ratio(students, capacity),
        )

    def dashboard_counts(self) -> DashboardCounts:
        current = self.get_active_groups()
        with_capacity = [g for g in current if g.max_capacity > 0]
        average = (
            round(sum(g.current_capacity / g.max_capacity * 100 for g in with_capacity)
                  / len(with_capacity))
            if with_capacity else 0
        )
        students = self.store.students
        return DashboardCounts(
            total_groups=len(current),
            active_groups=sum(1 for g in current if g.is_active),
            inactive_groups=sum(1 for g in current if not g.is_active),
            archived_groups=len(self.get_archived_groups()),
            assigned_students=sum(g.current_capacity for g in self.store.groups),
            average_utilisation=average,
            total_students=len(students),
            active_students=sum(1 for s in students if s.is_active),
            total_subjects=len(self.store.subjects),
            active_enrollments=sum(1 for e in self.store.enrollments if e.is_active),
        )
