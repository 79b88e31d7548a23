"""Datenmodelle für Fach-Einschreibungen und Gruppen-Zuordnungen (Pydantic v2)."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"
    DROPPED = "dropped"


class Enrollment(BaseModel):
    """Mitgliedschaft eines Schülers in einer Fachgruppe.

    Pro (student_id, subject_id) darf höchstens eine aktive Einschreibung existieren.
    Abgemeldete Einschreibungen bleiben mit Status ``dropped`` erhalten.
    """

    id: str
    student_id: str
    subject_id: str
    level_id: str
    group_id: str                         # SubjectGroup-ID
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    attendance: float = Field(100.0, ge=0, le=100)  # Anwesenheit in Prozent
    grade: Optional[float] = Field(None, ge=0, le=100)
    enrolled_at: Optional[datetime] = None
    enrolled_by: str = "system"
    notes: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE


class GroupAssignment(BaseModel):
    """Zuordnung eines Schülers zu einer akademischen Gruppe."""

    id: str
    student_id: str
    group_id: str
    is_active: bool = True
    assigned_at: Optional[datetime] = None
    assigned_by: str = "system"
    notes: Optional[str] = None
