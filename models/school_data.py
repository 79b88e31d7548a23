"""SchoolData: Vollständiger Datensatz (Snapshot) der Schulverwaltung (Pydantic v2)."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from models.enrollment import Enrollment, EnrollmentStatus, GroupAssignment
from models.group import AcademicGroup, EducationalLevel
from models.history import AssignmentHistory
from models.student import Student
from models.subject import Subject


class SchoolData(BaseModel):
    """Alle Entitäten eines Datenbestands.

    Die Feldnamen entsprechen den Tabellen-Namen ("kinds") der
    Persistenz-Adapter, damit ein JSON-Snapshot direkt als Tabellen-Dump dient.
    """

    levels: list[EducationalLevel] = []
    groups: list[AcademicGroup] = []
    students: list[Student] = []
    subjects: list[Subject] = []
    enrollments: list[Enrollment] = []
    group_assignments: list[GroupAssignment] = []
    history: list[AssignmentHistory] = []
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    data_version: str = "1.0"

    # ─── Übersicht ───

    def summary(self) -> str:
        """Kurze Übersicht über den Datensatz."""
        active_groups = [g for g in self.groups if not g.is_archived]
        assigned = sum(g.current_capacity for g in self.groups)
        capacity = sum(g.max_capacity for g in active_groups)
        active_enr = sum(1 for e in self.enrollments if e.status == EnrollmentStatus.ACTIVE)
        lines = [
            f"Stufen: {len(self.levels)}",
            f"Gruppen: {len(self.groups)} "
            f"({len(active_groups)} aktiv, {len(self.groups) - len(active_groups)} archiviert)",
            f"Belegung: {assigned}/{capacity} Plätze" if capacity else "",
            f"Schüler: {len(self.students)} "
            f"({sum(1 for s in self.students if s.is_active)} aktiv)",
            f"Fächer: {len(self.subjects)}",
            f"Einschreibungen: {len(self.enrollments)} ({active_enr} aktiv)",
            f"Protokolleinträge: {len(self.history)}",
        ]
        return "\n".join(l for l in lines if l)

    # ─── Persistenz ────────────────────────────────────────────────────────

    def save_json(self, path: Path) -> None:
        """Speichert den kompletten Datensatz als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        now = datetime.now(timezone.utc)
        updated = self.model_copy(update={
            "modified_at": now,
            "created_at": self.created_at or now,
        })
        with open(path, "w", encoding="utf-8") as f:
            f.write(updated.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "SchoolData":
        """Lädt einen Datensatz aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"JSON-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())
