"""Datenmodell für Fächer mit Stufen und Unterrichtsgruppen (Pydantic v2)."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ClassSchedule(BaseModel):
    """Ein wöchentlicher Unterrichtstermin einer Fachgruppe."""

    id: str
    day_of_week: int = Field(ge=0, le=6)  # 0=Sonntag … 6=Samstag
    start_time: str                       # "HH:MM"
    end_time: str                         # "HH:MM"
    classroom: str = ""


class SubjectLevel(BaseModel):
    """Stufe innerhalb eines Fachs (Básico, Intermedio, …)."""

    id: str
    name: str
    description: str = ""
    order: int = 0
    requirements: list[str] = []
    max_students: int = Field(ge=0)
    current_students: int = Field(0, ge=0)


class SubjectGroup(BaseModel):
    """Von einer Lehrkraft geleitete Sektion eines Fachs auf einer Stufe."""

    id: str
    name: str                             # "Grupo A"
    level_id: str
    teacher_id: str
    teacher_name: Optional[str] = None
    schedule: list[ClassSchedule] = []
    max_students: int = Field(ge=0)
    current_students: int = Field(0, ge=0)

    @property
    def has_capacity(self) -> bool:
        return self.current_students < self.max_students


class Subject(BaseModel):
    """Ein Fachangebot mit eigenen Stufen und Gruppen."""

    id: str
    name: str
    description: str = ""
    code: str                             # "MAT101", eindeutig, Großbuchstaben
    department: str = ""
    credits: int = Field(0, ge=0)
    color: str = "#3B82F6"
    is_active: bool = True
    levels: list[SubjectLevel] = []
    groups: list[SubjectGroup] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("Fachcode darf nicht leer sein")
        return value

    def get_level(self, level_id: str) -> Optional[SubjectLevel]:
        return next((lv for lv in self.levels if lv.id == level_id), None)

    def get_group(self, group_id: str) -> Optional[SubjectGroup]:
        return next((g for g in self.groups if g.id == group_id), None)

    def with_counters(self, group_deltas: dict[str, int],
                      level_deltas: dict[str, int]) -> "Subject":
        """Gibt eine Kopie mit angepassten Belegungszählern zurück.

        Zähler werden bei 0 gekappt.
        """
        groups = [
            g.model_copy(update={
                "current_students": max(0, g.current_students + group_deltas.get(g.id, 0))
            })
            for g in self.groups
        ]
        levels = [
            lv.model_copy(update={
                "current_students": max(0, lv.current_students + level_deltas.get(lv.id, 0))
            })
            for lv in self.levels
        ]
        return self.model_copy(update={"groups": groups, "levels": levels})
