"""CatalogService: Stammdatenpflege ohne Belegungsfelder.

Änderungen laufen über typisierte Patches (``models.patches``), die keine
Belegungsfelder enthalten. Neue Einträge müssen leer angelegt werden
(keine Schüler, Zähler 0). Katalogänderungen werden persistiert und
geloggt, aber nicht im Zuordnungsprotokoll erfasst.
"""

import logging

from pydantic import BaseModel

from engine.base import Change, Mutator, insert, mutation, remove, replace
from engine.errors import (
    CapacityExceededError,
    DuplicateIdError,
    InactiveGroupError,
    InUseError,
    InvalidValueError,
    NonEmptyGroupError,
    NotFoundError,
)
from engine.store import ENROLLMENTS, GROUPS, LEVELS, STUDENTS, SUBJECTS
from models.enrollment import Enrollment, EnrollmentStatus
from models.group import AcademicGroup, EducationalLevel
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

logger = logging.getLogger(__name__)


class CatalogService(Mutator):
    """Anlegen, Ändern und Löschen von Stammdaten."""

    def _stamp(self, entity: BaseModel, created: bool = False) -> BaseModel:
        now = self._now()
        update = {"updated_at": now}
        if created and getattr(entity, "created_at", None) is None:
            update["created_at"] = now
        return entity.model_copy(update=update)

    def _save(self, change: Change) -> None:
        self._commit([change])
        logger.info("Katalog: %s %s/%s", change.action, change.kind, change.entity_id)

    # ─── Akademische Gruppen ─────────────────────────────────────────────────

    @mutation
    def add_group(self, group: AcademicGroup) -> AcademicGroup:
        self._require(group_id=group.id, level_id=group.level_id, tutor_id=group.tutor_id)
        if self.store.contains(GROUPS, group.id):
            raise DuplicateIdError("Gruppe", group.id)
        self.store.get_level(group.level_id)
        if group.student_ids or group.is_archived:
            raise InvalidValueError(
                "student_ids", f"Neue Gruppe {group.id} muss leer und nicht archiviert sein")
        group = self._stamp(group, created=True)
        self._save(insert(GROUPS, group))
        return group

    @mutation
    def update_group(self, group_id: str, patch: GroupPatch) -> AcademicGroup:
        """Ändert Stammdaten einer Gruppe.

        Die Maximalkapazität darf nicht unter die aktuelle Belegung sinken;
        eine archivierte Gruppe kann nur über ``unarchive_group`` aktiv werden.
        """
        self._require(group_id=group_id)
        group = self.store.get_group(group_id)
        changes = patch.changes()
        if changes.get("level_id") is not None:
            self.store.get_level(changes["level_id"])
        new_max = changes.get("max_capacity")
        if new_max is not None and new_max < group.current_capacity:
            raise CapacityExceededError(group_id, group.current_capacity, new_max)
        if changes.get("is_active") and group.is_archived:
            raise InactiveGroupError(
                group_id, detail=f"Gruppe '{group_id}' ist archiviert – zuerst reaktivieren"
            )
        updated = self._stamp(group.model_copy(update=_not_none(changes)))
        self._save(replace(GROUPS, updated))
        return updated

    # ─── Bildungsstufen ──────────────────────────────────────────────────────

    @mutation
    def add_level(self, level: EducationalLevel) -> EducationalLevel:
        self._require(level_id=level.id)
        if self.store.contains(LEVELS, level.id):
            raise DuplicateIdError("Stufe", level.id)
        self._save(insert(LEVELS, level))
        return level

    @mutation
    def update_level(self, level_id: str, patch: LevelPatch) -> EducationalLevel:
        self._require(level_id=level_id)
        level = self.store.get_level(level_id)
        updated = level.model_copy(update=_not_none(patch.changes()))
        self._save(replace(LEVELS, updated))
        return updated

    @mutation
    def delete_level(self, level_id: str) -> None:
        self._require(level_id=level_id)
        self.store.get_level(level_id)
        groups = self.store.list_groups_by_level(level_id)
        if groups:
            raise InUseError("Stufe", level_id, f"{len(groups)} Gruppe(n) verweisen darauf")
        self._save(remove(LEVELS, level_id))

    # ─── Schüler ─────────────────────────────────────────────────────────────

    @mutation
    def add_student(self, student: Student) -> Student:
        self._require(student_id=student.id)
        if self.store.contains(STUDENTS, student.id):
            raise DuplicateIdError("Schüler", student.id)
        if student.created_at is None:
            student = student.model_copy(update={"created_at": self._now()})
        self._save(insert(STUDENTS, student))
        return student

    @mutation
    def update_student(self, student_id: str, patch: StudentPatch) -> Student:
        self._require(student_id=student_id)
        student = self.store.get_student(student_id)
        updated = student.model_copy(update=_not_none(patch.changes()))
        self._save(replace(STUDENTS, updated))
        return updated

    # ─── Fächer ──────────────────────────────────────────────────────────────

    def _check_code_unique(self, code: str, subject_id: str) -> None:
        for other in self.store.subjects:
            if other.code == code and other.id != subject_id:
                raise DuplicateIdError(
                    "Fach", subject_id,
                    detail=f"Fachcode '{code}' wird bereits von '{other.name}' verwendet",
                )

    @mutation
    def add_subject(self, subject: Subject) -> Subject:
        self._require(subject_id=subject.id)
        if self.store.contains(SUBJECTS, subject.id):
            raise DuplicateIdError("Fach", subject.id)
        self._check_code_unique(subject.code, subject.id)
        for item in [*subject.levels, *subject.groups]:
            if item.current_students:
                raise InvalidValueError(
                    "current_students",
                    f"Neues Fach {subject.id}: Zähler von '{item.id}' muss 0 sein")
        for sg in subject.groups:
            if subject.get_level(sg.level_id) is None:
                raise NotFoundError("Stufe", sg.level_id)
            if self.store.subject_of_group(sg.id) is not None:
                raise DuplicateIdError("Fachgruppe", sg.id)
        subject = self._stamp(subject, created=True)
        self._save(insert(SUBJECTS, subject))
        return subject

    @mutation
    def update_subject(self, subject_id: str, patch: SubjectPatch) -> Subject:
        self._require(subject_id=subject_id)
        subject = self.store.get_subject(subject_id)
        changes = _not_none(patch.changes())
        # model_validate statt model_copy: Fachcode wird normalisiert
        updated = Subject.model_validate({**subject.model_dump(), **changes})
        self._check_code_unique(updated.code, subject_id)
        updated = self._stamp(updated)
        self._save(replace(SUBJECTS, updated))
        return updated

    @mutation
    def delete_subject(self, subject_id: str) -> None:
        """Löscht ein Fach samt seiner nicht aktiven Einschreibungen."""
        self._require(subject_id=subject_id)
        self.store.get_subject(subject_id)
        related = [e for e in self.store.enrollments if e.subject_id == subject_id]
        active = [e for e in related if e.status == EnrollmentStatus.ACTIVE]
        if active:
            raise InUseError("Fach", subject_id, f"{len(active)} aktive Einschreibung(en)")
        changes = [remove(ENROLLMENTS, e.id) for e in related]
        changes.append(remove(SUBJECTS, subject_id))
        self._commit(changes)
        logger.info("Katalog: Fach %s gelöscht (%d alte Einschreibungen)",
                    subject_id, len(related))

    # ─── Fach-Stufen ─────────────────────────────────────────────────────────

    def _update_subject_parts(self, subject: Subject,
                              levels: list[SubjectLevel],
                              groups: list[SubjectGroup]) -> Subject:
        updated = self._stamp(subject.model_copy(update={"levels": levels, "groups": groups}))
        self._save(replace(SUBJECTS, updated))
        return updated

    @mutation
    def add_subject_level(self, subject_id: str, level: SubjectLevel) -> Subject:
        self._require(subject_id=subject_id, level_id=level.id)
        subject = self.store.get_subject(subject_id)
        if subject.get_level(level.id) is not None:
            raise DuplicateIdError("Stufe", level.id)
        if level.current_students:
            raise InvalidValueError("current_students",
                                    f"Neue Stufe {level.id}: Zähler muss 0 sein")
        return self._update_subject_parts(subject, [*subject.levels, level], subject.groups)

    @mutation
    def update_subject_level(self, subject_id: str, level_id: str,
                             patch: SubjectLevelPatch) -> Subject:
        self._require(subject_id=subject_id, level_id=level_id)
        subject = self.store.get_subject(subject_id)
        level = subject.get_level(level_id)
        if level is None:
            raise NotFoundError("Stufe", level_id)
        changes = _not_none(patch.changes())
        new_max = changes.get("max_students")
        if new_max is not None and new_max < level.current_students:
            raise CapacityExceededError(level_id, level.current_students, new_max)
        levels = [lv.model_copy(update=changes) if lv.id == level_id else lv
                  for lv in subject.levels]
        return self._update_subject_parts(subject, levels, subject.groups)

    @mutation
    def delete_subject_level(self, subject_id: str, level_id: str) -> Subject:
        self._require(subject_id=subject_id, level_id=level_id)
        subject = self.store.get_subject(subject_id)
        if subject.get_level(level_id) is None:
            raise NotFoundError("Stufe", level_id)
        active = [e for e in self.store.enrollments
                  if e.subject_id == subject_id and e.level_id == level_id and e.is_active]
        if active:
            raise InUseError("Stufe", level_id, f"{len(active)} aktive Einschreibung(en)")
        groups = [g for g in subject.groups if g.level_id == level_id]
        if groups:
            raise InUseError("Stufe", level_id, f"{len(groups)} Fachgruppe(n) auf dieser Stufe")
        levels = [lv for lv in subject.levels if lv.id != level_id]
        return self._update_subject_parts(subject, levels, subject.groups)

    # ─── Fach-Gruppen ────────────────────────────────────────────────────────

    @mutation
    def add_subject_group(self, subject_id: str, group: SubjectGroup) -> Subject:
        self._require(subject_id=subject_id, group_id=group.id, level_id=group.level_id)
        subject = self.store.get_subject(subject_id)
        if subject.get_level(group.level_id) is None:
            raise NotFoundError("Stufe", group.level_id)
        if self.store.subject_of_group(group.id) is not None:
            raise DuplicateIdError("Fachgruppe", group.id)
        if group.current_students:
            raise InvalidValueError("current_students",
                                    f"Neue Fachgruppe {group.id}: Zähler muss 0 sein")
        return self._update_subject_parts(subject, subject.levels, [*subject.groups, group])

    @mutation
    def update_subject_group(self, subject_id: str, group_id: str,
                             patch: SubjectGroupPatch) -> Subject:
        self._require(subject_id=subject_id, group_id=group_id)
        subject = self.store.get_subject(subject_id)
        group = self.store.get_subject_group(subject_id, group_id)
        changes = _not_none(patch.changes())
        new_max = changes.get("max_students")
        if new_max is not None and new_max < group.current_students:
            raise CapacityExceededError(group_id, group.current_students, new_max)
        groups = [g.model_copy(update=changes) if g.id == group_id else g
                  for g in subject.groups]
        return self._update_subject_parts(subject, subject.levels, groups)

    @mutation
    def delete_subject_group(self, subject_id: str, group_id: str) -> Subject:
        self._require(subject_id=subject_id, group_id=group_id)
        subject = self.store.get_subject(subject_id)
        group = self.store.get_subject_group(subject_id, group_id)
        if group.current_students > 0:
            raise NonEmptyGroupError(group_id, group.current_students)
        # Zähler kann in geladenen Daten abweichen: Einschreibungen sind maßgeblich
        active = [e for e in self.store.enrollments
                  if e.group_id == group_id and e.is_active]
        if active:
            raise InUseError("Fachgruppe", group_id, f"{len(active)} aktive Einschreibung(en)")
        groups = [g for g in subject.groups if g.id != group_id]
        return self._update_subject_parts(subject, subject.levels, groups)

    # ─── Einschreibungsdaten ─────────────────────────────────────────────────

    @mutation
    def update_enrollment_record(self, enrollment_id: str,
                                 patch: EnrollmentPatch) -> Enrollment:
        """Ändert Anwesenheit, Note oder Notizen – nie Status oder Gruppe."""
        self._require(enrollment_id=enrollment_id)
        enrollment = self.store.get_enrollment(enrollment_id)
        updated = enrollment.model_copy(update=patch.changes())
        self._save(replace(ENROLLMENTS, updated))
        return updated


def _not_none(changes: dict) -> dict:
    """Entfernt explizit auf None gesetzte Felder (None heißt "nicht ändern")."""
    return {k: v for k, v in changes.items() if v is not None}


__all__: list[str] = ["CatalogService"]
