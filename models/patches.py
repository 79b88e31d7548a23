"""Typisierte Änderungs-Patches für den Katalog-Service.

Jeder Patch enthält nur die Felder, die außerhalb der Kapazitäts-Engine
geändert werden dürfen. Belegungsfelder (student_ids, current_students,
status, is_archived) sind nicht enthalten; unbekannte Felder werden von
Pydantic abgelehnt.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models.group import LevelSubject
from models.subject import ClassSchedule


class _Patch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def changes(self) -> dict:
        """Nur die explizit gesetzten Felder (verschachtelte Modelle bleiben Modelle)."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def is_empty(self) -> bool:
        return not self.model_fields_set


class GroupPatch(_Patch):
    name: Optional[str] = None
    description: Optional[str] = None
    level_id: Optional[str] = None
    academic_year: Optional[str] = None
    max_capacity: Optional[int] = Field(None, ge=0)
    tutor_id: Optional[str] = None
    tutor_name: Optional[str] = None
    is_active: Optional[bool] = None


class LevelPatch(_Patch):
    name: Optional[str] = None
    description: Optional[str] = None
    order: Optional[int] = None
    subjects: Optional[list[LevelSubject]] = None
    is_active: Optional[bool] = None


class StudentPatch(_Patch):
    name: Optional[str] = None
    email: Optional[str] = None
    is_active: Optional[bool] = None
    grade: Optional[str] = None
    parent_ids: Optional[list[str]] = None


class SubjectPatch(_Patch):
    name: Optional[str] = None
    description: Optional[str] = None
    code: Optional[str] = None
    department: Optional[str] = None
    credits: Optional[int] = Field(None, ge=0)
    color: Optional[str] = None
    is_active: Optional[bool] = None


class SubjectLevelPatch(_Patch):
    name: Optional[str] = None
    description: Optional[str] = None
    order: Optional[int] = None
    requirements: Optional[list[str]] = None
    max_students: Optional[int] = Field(None, ge=0)


class SubjectGroupPatch(_Patch):
    name: Optional[str] = None
    teacher_id: Optional[str] = None
    teacher_name: Optional[str] = None
    schedule: Optional[list[ClassSchedule]] = None
    max_students: Optional[int] = Field(None, ge=0)


class EnrollmentPatch(_Patch):
    attendance: Optional[float] = Field(None, ge=0, le=100)
    grade: Optional[float] = Field(None, ge=0, le=100)
    notes: Optional[str] = None
