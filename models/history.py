"""Unveränderliche Protokolleinträge für belegungsrelevante Änderungen."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class HistoryType(str, Enum):
    GROUP = "group"
    SUBJECT = "subject"


class AssignmentHistory(BaseModel):
    """Ein Eintrag im Zuordnungsprotokoll. Wird nie verändert oder gelöscht.

    ``student_id`` ist leer bei Ereignissen auf Gruppenebene (Archivieren,
    Löschen). Leere ``from_id``/``to_id`` bedeuten "kein Vorher"/"kein Nachher".
    """

    model_config = ConfigDict(frozen=True)

    id: str
    student_id: str = ""
    type: HistoryType
    from_id: str = ""
    to_id: str = ""
    reason: str
    changed_by: str
    changed_at: datetime
    notes: Optional[str] = None


class HistoryFilter(BaseModel):
    """Filter für HistoryLog.query. Nicht gesetzte Felder filtern nicht."""

    student_id: Optional[str] = None
    type: Optional[HistoryType] = None
    entity_id: Optional[str] = None       # trifft from_id oder to_id
    since: Optional[datetime] = None      # inklusiv
    until: Optional[datetime] = None      # inklusiv

    def matches(self, entry: AssignmentHistory) -> bool:
        if self.student_id is not None and entry.student_id != self.student_id:
            return False
        if self.type is not None and entry.type != self.type:
            return False
        if self.entity_id is not None and self.entity_id not in (entry.from_id, entry.to_id):
            return False
        if self.since is not None and entry.changed_at < self.since:
            return False
        if self.until is not None and entry.changed_at > self.until:
            return False
        return True
