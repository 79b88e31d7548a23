"""Fehlertypen der Belegungs-Engine.

Alle fachlichen Regelverletzungen erben von ``EngineError``; ``str(err)``
liefert eine für Endnutzer lesbare Meldung. Persistenzfehler werden als
``PersistenceError`` mit der ursprünglichen Ausnahme als ``cause`` gemeldet.
"""

from typing import Optional


class EngineError(Exception):
    """Basisklasse aller Engine-Fehler."""


# ─── Fachliche Regelverletzungen ───

class NotFoundError(EngineError):
    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} '{entity_id}' nicht gefunden")


class DuplicateIdError(EngineError):
    def __init__(self, kind: str, entity_id: str, detail: str = "") -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(detail or f"{kind} mit ID '{entity_id}' existiert bereits")


class InvalidIdentifierError(EngineError, ValueError):
    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Bezeichner '{field}' darf nicht leer sein")


class InvalidValueError(EngineError, ValueError):
    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        super().__init__(detail)


class InactiveGroupError(EngineError):
    def __init__(self, group_id: str, detail: str = "") -> None:
        self.group_id = group_id
        super().__init__(
            detail or f"Gruppe '{group_id}' ist inaktiv – keine Zuordnung möglich"
        )


class InactiveSubjectError(EngineError):
    def __init__(self, subject_id: str) -> None:
        self.subject_id = subject_id
        super().__init__(f"Fach '{subject_id}' ist inaktiv – keine Einschreibung möglich")


class CapacityExceededError(EngineError):
    def __init__(self, target_id: str, current: int, maximum: int) -> None:
        self.target_id = target_id
        self.current = current
        self.maximum = maximum
        super().__init__(
            f"'{target_id}' hat die Maximalkapazität erreicht ({current}/{maximum})"
        )


class DuplicateAssignmentError(EngineError):
    def __init__(self, student_id: str, target_id: str, detail: str = "") -> None:
        self.student_id = student_id
        self.target_id = target_id
        super().__init__(
            detail or f"Schüler '{student_id}' ist '{target_id}' bereits zugeordnet"
        )


class AlreadyEnrolledError(EngineError):
    def __init__(self, student_id: str, subject_id: str) -> None:
        self.student_id = student_id
        self.subject_id = subject_id
        super().__init__(
            f"Schüler '{student_id}' ist im Fach '{subject_id}' bereits aktiv eingeschrieben"
        )


class InvalidStudentError(EngineError):
    def __init__(self, student_id: str, reason: str) -> None:
        self.student_id = student_id
        self.reason = reason
        super().__init__(f"Schüler '{student_id}': {reason}")


class NotAssignedError(EngineError):
    def __init__(self, student_id: str, target_id: str) -> None:
        self.student_id = student_id
        self.target_id = target_id
        super().__init__(f"Schüler '{student_id}' ist '{target_id}' nicht zugeordnet")


class NonEmptyGroupError(EngineError):
    def __init__(self, group_id: str, occupancy: int) -> None:
        self.group_id = group_id
        self.occupancy = occupancy
        super().__init__(
            f"Gruppe '{group_id}' hat noch {occupancy} Schüler – "
            f"zuerst alle Schüler entfernen"
        )


class NotArchivedError(EngineError):
    def __init__(self, group_id: str) -> None:
        self.group_id = group_id
        super().__init__(f"Gruppe '{group_id}' ist nicht archiviert")


class GroupLevelMismatchError(EngineError):
    def __init__(self, group_id: str, level_id: str) -> None:
        self.group_id = group_id
        self.level_id = level_id
        super().__init__(f"Fachgruppe '{group_id}' gehört nicht zur Stufe '{level_id}'")


class InUseError(EngineError):
    def __init__(self, kind: str, entity_id: str, usage: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} '{entity_id}' kann nicht gelöscht werden: {usage}")


# ─── Persistenz ───

class PersistenceError(EngineError):
    """Fehler des Persistenz-Adapters (Netzwerk, Datei, Backend)."""

    def __init__(self, action: str, kind: str, record_id: str,
                 cause: Optional[BaseException] = None) -> None:
        self.action = action
        self.kind = kind
        self.record_id = record_id
        self.cause = cause
        self.pending: list = []   # noch nicht gespeicherte PersistOps
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Speichern fehlgeschlagen ({action} {kind}/{record_id}){detail}"
        )


class TransferIncompleteError(PersistenceError):
    """Fachwechsel: Abmeldung erfolgt, Neueinschreibung nicht gespeichert."""

    def __init__(self, original: PersistenceError, dropped_enrollment_id: str) -> None:
        super().__init__(original.action, original.kind, original.record_id, original.cause)
        self.dropped_enrollment_id = dropped_enrollment_id
        self.pending = original.pending
        self.args = (
            f"{original} – Schüler wurde aus dem bisherigen Fach abgemeldet "
            f"(Einschreibung '{dropped_enrollment_id}'), Neueinschreibung fehlt",
        )
