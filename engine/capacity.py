"""CapacityEngine – einziger Schreiber aller belegungsrelevanten Felder.

Jede Operation prüft ihre Vorbedingungen in fester Reihenfolge (die erste
verletzte Bedingung gewinnt), ändert erst danach den Store, schreibt genau
einen Protokolleintrag und stößt die Persistenz an. Eine abgelehnte
Operation hinterlässt weder Store-Änderungen noch Protokolleinträge.

Ausnahme: der Fachwechsel über ``transfer_student`` in ein anderes Fach
besteht aus Abmeldung + Neueinschreibung (zwei Einträge). Alle fachlichen
Bedingungen beider Schritte werden vorab geprüft; nur ein Persistenzfehler
im zweiten Schritt kann den Schüler abgemeldet zurücklassen
(``TransferIncompleteError``).
"""

import logging
from collections import defaultdict
from typing import Optional

from config.schema import SyncStrategy
from engine.base import Mutator, insert, mutation, new_id, remove, replace
from engine.errors import (
    AlreadyEnrolledError,
    CapacityExceededError,
    DuplicateAssignmentError,
    GroupLevelMismatchError,
    InactiveGroupError,
    InactiveSubjectError,
    InvalidStudentError,
    InvalidValueError,
    NonEmptyGroupError,
    NotArchivedError,
    NotAssignedError,
    NotFoundError,
    PersistenceError,
    TransferIncompleteError,
)
from engine.store import ENROLLMENTS, GROUP_ASSIGNMENTS, GROUPS, STUDENTS, SUBJECTS
from models.enrollment import Enrollment, EnrollmentStatus, GroupAssignment
from models.group import AcademicGroup
from models.history import HistoryType
from models.student import Student
from models.subject import Subject, SubjectGroup

logger = logging.getLogger(__name__)


class CapacityEngine(Mutator):
    """Zuordnung, Einschreibung, Wechsel und Archivierung mit Kapazitätsprüfung."""

    # ─── Akademische Gruppen ─────────────────────────────────────────────────

    @mutation
    def assign_student_to_group(self, student_id: str, group_id: str,
                                notes: Optional[str] = None) -> GroupAssignment:
        """Ordnet einen Schüler einer akademischen Gruppe zu.

        Prüfreihenfolge: Gruppe existiert → aktiv → Platz frei →
        Schüler noch nicht Mitglied → Schüler existiert und ist aktiv.
        """
        self._require(student_id=student_id, group_id=group_id)
        group = self.store.get_group(group_id)
        if not group.is_active:
            raise InactiveGroupError(group_id)
        if group.current_capacity >= group.max_capacity:
            raise CapacityExceededError(group_id, group.current_capacity, group.max_capacity)
        if student_id in group.student_ids:
            raise DuplicateAssignmentError(student_id, group_id)
        student = self._check_student(student_id)
        if self.config.rules.exclusive_group_membership:
            self._check_exclusive_membership(student_id, group)

        now = self._now()
        assignment = GroupAssignment(
            id=new_id("assignment"),
            student_id=student_id,
            group_id=group_id,
            is_active=True,
            assigned_at=now,
            assigned_by=self.actor,
            notes=notes,
        )
        updated = group.model_copy(update={
            "student_ids": [*group.student_ids, student_id],
            "updated_at": now,
        })
        entry = self.history.new_entry(
            type=HistoryType.GROUP,
            student_id=student_id,
            to_id=group_id,
            reason="Zuordnung zu Gruppe",
            changed_by=self.actor,
            notes=notes,
        )
        self._commit(
            [insert(GROUP_ASSIGNMENTS, assignment), replace(GROUPS, updated)],
            [entry],
        )
        logger.info("Schüler %s → Gruppe %s (%d/%d)", student.id, group_id,
                    updated.current_capacity, updated.max_capacity)
        return assignment

    @mutation
    def remove_student_from_group(self, student_id: str, group_id: str,
                                  reason: str) -> None:
        """Entfernt einen Schüler aus einer Gruppe und deaktiviert die Zuordnung."""
        self._require(student_id=student_id, group_id=group_id)
        group = self.store.get_group(group_id)
        if student_id not in group.student_ids:
            raise NotAssignedError(student_id, group_id)

        now = self._now()
        updated = group.model_copy(update={
            "student_ids": [s for s in group.student_ids if s != student_id],
            "updated_at": now,
        })
        changes = [replace(GROUPS, updated)]
        for assignment in self.store.group_assignments:
            if (assignment.student_id == student_id and assignment.group_id == group_id
                    and assignment.is_active):
                changes.append(replace(
                    GROUP_ASSIGNMENTS, assignment.model_copy(update={"is_active": False})
                ))

        student = self.store.find(STUDENTS, student_id)
        student_name = student.name if student else "Unbekannter Schüler"
        entry = self.history.new_entry(
            type=HistoryType.GROUP,
            student_id=student_id,
            from_id=group_id,
            reason=reason or "Aus Gruppe entfernt",
            changed_by=self.actor,
            notes=f"Schüler {student_name} aus Gruppe {group.name} entfernt",
        )
        self._commit(changes, [entry])
        logger.info("Schüler %s aus Gruppe %s entfernt (%d/%d)", student_id, group_id,
                    updated.current_capacity, updated.max_capacity)

    @mutation
    def archive_group(self, group_id: str, reason: Optional[str] = None) -> None:
        """Archiviert eine leere Gruppe (archiviert ⇒ inaktiv)."""
        self._require(group_id=group_id)
        group = self.store.get_group(group_id)
        if group.current_capacity > 0:
            raise NonEmptyGroupError(group_id, group.current_capacity)

        updated = group.model_copy(update={
            "is_archived": True, "is_active": False, "updated_at": self._now(),
        })
        entry = self.history.new_entry(
            type=HistoryType.GROUP,
            from_id=group_id,
            reason=reason or "Gruppe archiviert",
            changed_by=self.actor,
            notes=f"Gruppe {group.name} archiviert",
        )
        self._commit([replace(GROUPS, updated)], [entry])
        logger.info("Gruppe %s archiviert", group_id)

    @mutation
    def unarchive_group(self, group_id: str, reason: Optional[str] = None) -> None:
        """Holt eine archivierte Gruppe zurück und aktiviert sie."""
        self._require(group_id=group_id)
        group = self.store.get_group(group_id)
        if not group.is_archived:
            raise NotArchivedError(group_id)

        updated = group.model_copy(update={
            "is_archived": False, "is_active": True, "updated_at": self._now(),
        })
        entry = self.history.new_entry(
            type=HistoryType.GROUP,
            to_id=group_id,
            reason=reason or "Gruppe reaktiviert",
            changed_by=self.actor,
            notes=f"Gruppe {group.name} aus dem Archiv geholt",
        )
        self._commit([replace(GROUPS, updated)], [entry])
        logger.info("Gruppe %s reaktiviert", group_id)

    @mutation
    def delete_group(self, group_id: str) -> None:
        """Löscht eine leere Gruppe endgültig. Inaktive Zuordnungen bleiben erhalten."""
        self._require(group_id=group_id)
        group = self.store.get_group(group_id)
        if group.current_capacity > 0:
            raise NonEmptyGroupError(group_id, group.current_capacity)

        entry = self.history.new_entry(
            type=HistoryType.GROUP,
            from_id=group_id,
            reason="Gruppe gelöscht",
            changed_by=self.actor,
            notes=f"Gruppe {group.name} vollständig gelöscht",
        )
        self._commit([remove(GROUPS, group_id)], [entry])
        logger.info("Gruppe %s gelöscht", group_id)

    # ─── Fach-Einschreibungen ────────────────────────────────────────────────

    @mutation
    def enroll_student(self, student_id: str, subject_id: str, level_id: str,
                       group_id: str, notes: Optional[str] = None) -> Enrollment:
        """Schreibt einen Schüler in eine Fachgruppe ein.

        Lehnt ab, wenn bereits eine aktive Einschreibung im selben Fach
        existiert – unabhängig von Zielstufe und -gruppe.
        """
        self._require(student_id=student_id, subject_id=subject_id,
                      level_id=level_id, group_id=group_id)
        subject, _ = self._validate_enrollment_target(student_id, subject_id,
                                                      level_id, group_id)
        now = self._now()
        enrollment = Enrollment(
            id=new_id("enrollment"),
            student_id=student_id,
            subject_id=subject_id,
            level_id=level_id,
            group_id=group_id,
            status=EnrollmentStatus.ACTIVE,
            attendance=100.0,
            enrolled_at=now,
            enrolled_by=self.actor,
            notes=notes,
        )
        updated = subject.with_counters({group_id: 1}, {level_id: 1})
        updated = updated.model_copy(update={"updated_at": now})
        entry = self.history.new_entry(
            type=HistoryType.SUBJECT,
            student_id=student_id,
            to_id=group_id,
            reason="Einschreibung in Fach",
            changed_by=self.actor,
            notes=notes,
        )
        self._commit([insert(ENROLLMENTS, enrollment), replace(SUBJECTS, updated)], [entry])
        logger.info("Schüler %s in %s/%s eingeschrieben", student_id, subject.code, group_id)
        return enrollment

    @mutation
    def remove_student(self, student_id: str, subject_id: str,
                       reason: Optional[str] = None) -> Enrollment:
        """Meldet einen Schüler vom Fach ab (Status ``dropped``, nie löschen)."""
        self._require(student_id=student_id, subject_id=subject_id)
        return self._close_enrollment(student_id, subject_id, EnrollmentStatus.DROPPED,
                                      reason, default_reason="Abmeldung aus Fach")

    @mutation
    def complete_enrollment(self, student_id: str, subject_id: str,
                            grade: Optional[float] = None,
                            reason: Optional[str] = None) -> Enrollment:
        """Schließt eine aktive Einschreibung ab (Status ``completed``, optional mit Note)."""
        self._require(student_id=student_id, subject_id=subject_id)
        return self._close_enrollment(student_id, subject_id, EnrollmentStatus.COMPLETED,
                                      reason, default_reason="Fach abgeschlossen",
                                      grade=grade)

    @mutation
    def change_level_student(self, student_id: str, subject_id: str, new_level_id: str,
                             new_group_id: str, reason: Optional[str] = None) -> Enrollment:
        """Wechselt Stufe und Fachgruppe innerhalb desselben Fachs."""
        self._require(student_id=student_id, subject_id=subject_id,
                      level_id=new_level_id, group_id=new_group_id)
        enrollment = self.store.find_active_enrollment(student_id, subject_id)
        if enrollment is None:
            raise NotAssignedError(student_id, subject_id)
        return self._move_within_subject(enrollment, new_level_id, new_group_id,
                                         reason, default_reason="Stufenwechsel")

    @mutation
    def transfer_student(self, student_id: str, from_group_id: str, to_subject_id: str,
                         to_level_id: str, to_group_id: str,
                         reason: Optional[str] = None) -> Enrollment:
        """Verschiebt einen Schüler aus einer Fachgruppe in eine andere.

        Gleiches Fach: atomarer Wechsel, eine Einschreibung wird angepasst.
        Anderes Fach: Abmeldung + Neueinschreibung (zwei Protokolleinträge).
        """
        self._require(student_id=student_id, from_group_id=from_group_id,
                      subject_id=to_subject_id, level_id=to_level_id,
                      group_id=to_group_id)
        current = self.store.find_enrollment_in_group(student_id, from_group_id)
        if current is None:
            raise NotAssignedError(student_id, from_group_id)

        if current.subject_id == to_subject_id:
            return self._move_within_subject(current, to_level_id, to_group_id, reason,
                                             default_reason="Wechsel der Fachgruppe")

        # Alle fachlichen Bedingungen der Neueinschreibung vorab prüfen
        self._validate_enrollment_target(student_id, to_subject_id, to_level_id, to_group_id)
        strict = self.config.persistence.sync_strategy == SyncStrategy.STRICT

        pending_error: Optional[PersistenceError] = None
        try:
            self.remove_student(student_id, current.subject_id,
                                reason or "Fachwechsel")
        except PersistenceError as err:
            if strict:
                raise
            pending_error = err

        try:
            enrollment = self.enroll_student(student_id, to_subject_id, to_level_id,
                                             to_group_id, notes=reason)
        except PersistenceError as err:
            if strict:
                logger.error("Fachwechsel unvollständig: %s abgemeldet, nicht neu eingeschrieben",
                             student_id)
                raise TransferIncompleteError(err, current.id) from err
            raise

        # Der zweite Schritt spielt die Warteschlange mit ab
        if pending_error is not None and len(self.sync_queue):
            raise pending_error
        return enrollment

    # ─── Interne Helfer ──────────────────────────────────────────────────────

    def _check_student(self, student_id: str) -> Student:
        student = self.store.find(STUDENTS, student_id)
        if student is None:
            raise InvalidStudentError(student_id, "nicht gefunden")
        if not student.is_active:
            raise InvalidStudentError(student_id, "inaktiv – keine Zuordnung möglich")
        return student

    def _check_exclusive_membership(self, student_id: str, group: AcademicGroup) -> None:
        for other in self.store.groups:
            if (other.id != group.id and not other.is_archived
                    and other.academic_year == group.academic_year
                    and student_id in other.student_ids):
                raise DuplicateAssignmentError(
                    student_id, other.id,
                    detail=(
                        f"Schüler '{student_id}' ist im Schuljahr {group.academic_year} "
                        f"bereits der Gruppe '{other.name}' zugeordnet"
                    ),
                )

    def _resolve_target(self, subject: Subject, level_id: str,
                        group_id: str) -> SubjectGroup:
        if subject.get_level(level_id) is None:
            raise NotFoundError("Stufe", level_id)
        target = subject.get_group(group_id)
        if target is None:
            raise NotFoundError("Fachgruppe", group_id)
        if self.config.rules.enforce_group_level_match and target.level_id != level_id:
            raise GroupLevelMismatchError(group_id, level_id)
        return target

    def _validate_enrollment_target(self, student_id: str, subject_id: str,
                                    level_id: str,
                                    group_id: str) -> tuple[Subject, SubjectGroup]:
        if self.store.find_active_enrollment(student_id, subject_id) is not None:
            raise AlreadyEnrolledError(student_id, subject_id)
        subject = self.store.get_subject(subject_id)
        if not subject.is_active:
            raise InactiveSubjectError(subject_id)
        target = self._resolve_target(subject, level_id, group_id)
        if not target.has_capacity:
            raise CapacityExceededError(group_id, target.current_students, target.max_students)
        self._check_student(student_id)
        return subject, target

    def _move_within_subject(self, enrollment: Enrollment, level_id: str, group_id: str,
                             reason: Optional[str], default_reason: str) -> Enrollment:
        subject = self.store.get_subject(enrollment.subject_id)
        target = self._resolve_target(subject, level_id, group_id)
        if group_id == enrollment.group_id and level_id == enrollment.level_id:
            raise DuplicateAssignmentError(enrollment.student_id, group_id)
        if group_id != enrollment.group_id and not target.has_capacity:
            raise CapacityExceededError(group_id, target.current_students, target.max_students)

        group_deltas: dict[str, int] = defaultdict(int)
        level_deltas: dict[str, int] = defaultdict(int)
        group_deltas[enrollment.group_id] -= 1
        group_deltas[group_id] += 1
        level_deltas[enrollment.level_id] -= 1
        level_deltas[level_id] += 1

        now = self._now()
        moved = enrollment.model_copy(update={
            "level_id": level_id,
            "group_id": group_id,
            "notes": reason if reason is not None else enrollment.notes,
        })
        updated = subject.with_counters(group_deltas, level_deltas)
        updated = updated.model_copy(update={"updated_at": now})
        entry = self.history.new_entry(
            type=HistoryType.SUBJECT,
            student_id=enrollment.student_id,
            from_id=enrollment.group_id,
            to_id=group_id,
            reason=reason or default_reason,
            changed_by=self.actor,
            notes=f"Stufe {enrollment.level_id} → {level_id}",
        )
        self._commit([replace(ENROLLMENTS, moved), replace(SUBJECTS, updated)], [entry])
        logger.info("Schüler %s: %s → %s (%s)", enrollment.student_id,
                    enrollment.group_id, group_id, subject.code)
        return moved

    def _close_enrollment(self, student_id: str, subject_id: str,
                          status: EnrollmentStatus, reason: Optional[str],
                          default_reason: str,
                          grade: Optional[float] = None) -> Enrollment:
        if grade is not None and not 0 <= grade <= 100:
            raise InvalidValueError("grade", f"Note {grade} liegt nicht zwischen 0 und 100")
        enrollment = self.store.find_active_enrollment(student_id, subject_id)
        if enrollment is None:
            raise NotAssignedError(student_id, subject_id)
        subject = self.store.get_subject(subject_id)

        update: dict = {"status": status}
        if reason is not None:
            update["notes"] = reason
        if grade is not None:
            update["grade"] = grade
        closed = enrollment.model_copy(update=update)
        updated = subject.with_counters({enrollment.group_id: -1}, {enrollment.level_id: -1})
        updated = updated.model_copy(update={"updated_at": self._now()})
        entry = self.history.new_entry(
            type=HistoryType.SUBJECT,
            student_id=student_id,
            from_id=enrollment.group_id,
            reason=reason or default_reason,
            changed_by=self.actor,
            notes=f"Status: {status.value}",
        )
        self._commit([replace(ENROLLMENTS, closed), replace(SUBJECTS, updated)], [entry])
        logger.info("Schüler %s: %s in %s", student_id, status.value, subject.code)
        return closed
