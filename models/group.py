"""Datenmodelle für akademische Gruppen und Bildungsstufen (Pydantic v2)."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, computed_field, model_validator


class EvaluationCriteria(BaseModel):
    """Ein gewichtetes Bewertungskriterium innerhalb eines Stufenfachs."""

    id: str
    name: str
    description: str = ""
    weight: float = Field(ge=0, le=100)   # Gewicht in Prozent, Summe wird nicht erzwungen
    min_score: float = 0                  # Mindestpunktzahl zum Bestehen
    max_score: float = 100


class LevelSubject(BaseModel):
    """Fach-Eintrag einer Bildungsstufe mit Bewertungskriterien."""

    id: str
    subject_id: str
    subject_name: str
    level_type: Literal["basic", "intermediate", "advanced"] = "basic"
    description: str = ""
    prerequisites: list[str] = []        # IDs anderer LevelSubject-Einträge
    evaluation_criteria: list[EvaluationCriteria] = []

    @property
    def total_weight(self) -> float:
        """Summe aller Kriteriengewichte (muss nicht 100 ergeben)."""
        return sum(c.weight for c in self.evaluation_criteria)


class EducationalLevel(BaseModel):
    """Bildungsstufe, z.B. 'Educación Primaria'. Gruppen referenzieren sie per ID."""

    id: str
    name: str
    description: str = ""
    order: int = 0                        # Sortierung für die Anzeige
    subjects: list[LevelSubject] = []
    is_active: bool = True


class AcademicGroup(BaseModel):
    """Eine Klasse/Kohorte unter einem Tutor für ein Schuljahr.

    Die Belegung ergibt sich ausschließlich aus ``student_ids``;
    ``current_capacity`` ist daraus abgeleitet und kann nicht abweichen.
    """

    id: str
    name: str
    description: str = ""
    level_id: str
    academic_year: str                    # "2024-2025"
    max_capacity: int = Field(ge=0)
    tutor_id: str
    tutor_name: Optional[str] = None
    is_active: bool = True
    is_archived: bool = False
    student_ids: list[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def current_capacity(self) -> int:
        """Anzahl der aktuell zugeordneten Schüler."""
        return len(self.student_ids)

    @property
    def free_places(self) -> int:
        """Freie Plätze (nie negativ)."""
        return max(0, self.max_capacity - self.current_capacity)

    @property
    def is_full(self) -> bool:
        return self.current_capacity >= self.max_capacity

    @model_validator(mode="after")
    def validate_occupancy(self):
        """Prüft Eindeutigkeit, Kapazitätsgrenze und Archiv-Status."""
        if len(set(self.student_ids)) != len(self.student_ids):
            raise ValueError(f"Gruppe {self.id}: doppelte Schüler-IDs in student_ids")
        if self.current_capacity > self.max_capacity:
            raise ValueError(
                f"Gruppe {self.id}: Belegung {self.current_capacity} "
                f"> Maximalkapazität {self.max_capacity}"
            )
        if self.is_archived and self.is_active:
            raise ValueError(f"Gruppe {self.id}: archivierte Gruppe kann nicht aktiv sein")
        if self.is_archived and self.student_ids:
            raise ValueError(f"Gruppe {self.id}: archivierte Gruppe hat noch Schüler")
        return self
