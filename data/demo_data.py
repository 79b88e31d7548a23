"""Demo-Datengenerator für die Schulverwaltung.

Erzeugt einen konsistenten Datenbestand für den Demo-Modus (kein Backend):

  - Bildungsstufen und Fächerkatalog aus ``config.defaults``
  - Vier akademische Gruppen, davon eine archivierte aus dem Vorjahr
  - Schüler mit spanischen Namen; der letzte ist inaktiv
  - Demo-Einschreibungen: die ersten drei Schüler in Matemáticas Básico
    (abwechselnd Grupo A/B), die ersten zwei zusätzlich in Física Básico

Belegungszähler der Fächer entsprechen genau den erzeugten Einschreibungen.
"""

import random
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

from config.defaults import default_levels, default_subjects
from config.schema import AppConfig
from models.enrollment import Enrollment, EnrollmentStatus, GroupAssignment
from models.group import AcademicGroup
from models.school_data import SchoolData
from models.student import Student

# ─── Namens-Listen ────────────────────────────────────────────────────────────

_FIRST_NAMES = [
    "Ana", "Luis", "María", "Carlos", "Lucía", "Javier", "Sofía", "Diego",
    "Valentina", "Mateo", "Camila", "Andrés", "Isabel", "Pablo", "Elena",
    "Miguel", "Daniela", "Sergio", "Paula", "Hugo",
]

_LAST_NAMES = [
    "García", "Pérez", "López", "Martínez", "Sánchez", "Gómez", "Fernández",
    "Díaz", "Romero", "Torres", "Ruiz", "Vargas", "Castro", "Ortega",
    "Morales", "Jiménez", "Navarro", "Rojas",
]

_GROUP_DATE = datetime(2024, 1, 15, tzinfo=timezone.utc)


class DemoDataGenerator:
    """Generiert den Demo-Datenbestand auf Basis der AppConfig."""

    def __init__(self, config: Optional[AppConfig] = None,
                 seed: Optional[int] = None, num_students: int = 12) -> None:
        if num_students < 3:
            raise ValueError("Mindestens 3 Demo-Schüler erforderlich")
        self.config = config or AppConfig()
        self.rng = random.Random(seed)
        self.num_students = num_students

    # ─── Schüler ──────────────────────────────────────────────────────────────

    def _generate_students(self) -> list[Student]:
        students = []
        used: set[str] = set()
        for i in range(1, self.num_students + 1):
            while True:
                name = f"{self.rng.choice(_FIRST_NAMES)} {self.rng.choice(_LAST_NAMES)}"
                if name not in used:
                    used.add(name)
                    break
            local = name.lower().replace(" ", ".")
            students.append(Student(
                id=f"demo-student-{i:03d}",
                name=name,
                email=f"{local}@colegio-demo.edu",
                is_active=i < self.num_students,
                created_at=_GROUP_DATE,
            ))
        return students

    # ─── Gruppen ──────────────────────────────────────────────────────────────

    def _generate_groups(self) -> list[AcademicGroup]:
        year = self.config.academic_year
        start, _, _ = year.partition("-")
        previous = f"{int(start) - 1}-{start}" if start.isdigit() else year
        common = dict(created_at=_GROUP_DATE, updated_at=_GROUP_DATE)
        return [
            AcademicGroup(
                id="group-0", name="Infantil 5 años A",
                description="Grupo de educación infantil para niños de 5 años",
                level_id="level-0", academic_year=year, max_capacity=20,
                tutor_id="demo-teacher-001", tutor_name="Profesor Demo",
                student_ids=["demo-student-001"], **common,
            ),
            AcademicGroup(
                id="group-1", name="10° Grado A",
                description="Grupo principal de décimo grado",
                level_id="level-1", academic_year=year, max_capacity=30,
                tutor_id="demo-teacher-001", tutor_name="Profesor Demo",
                student_ids=["demo-student-001", "demo-student-002"], **common,
            ),
            AcademicGroup(
                id="group-2", name="11° Grado B",
                description="Grupo avanzado de undécimo grado",
                level_id="level-1", academic_year=year, max_capacity=28,
                tutor_id="demo-teacher-002", tutor_name="Carlos Martínez",
                **common,
            ),
            AcademicGroup(
                id="group-archived-1", name=f"9° Grado C ({previous})",
                description="Grupo archivado del año académico anterior",
                level_id="level-1", academic_year=previous, max_capacity=25,
                tutor_id="demo-teacher-002", tutor_name="Carlos Martínez",
                is_active=False, is_archived=True, **common,
            ),
        ]

    def _generate_assignments(self, groups: list[AcademicGroup]) -> list[GroupAssignment]:
        return [
            GroupAssignment(
                id=f"assignment-{group.id}-{sid}",
                student_id=sid,
                group_id=group.id,
                assigned_at=_GROUP_DATE,
                assigned_by=self.config.actor_id,
            )
            for group in groups
            for sid in group.student_ids
        ]

    # ─── Einschreibungen ─────────────────────────────────────────────────────

    def _generate_enrollments(self, students: list[Student]) -> list[Enrollment]:
        enrollments = []
        for index, student in enumerate(students[:3]):
            enrollments.append(Enrollment(
                id=f"enrollment-{student.id}-math-basic",
                student_id=student.id,
                subject_id="subj-math-001",
                level_id="level-math-basic",
                group_id="group-math-basic-a" if index % 2 == 0 else "group-math-basic-b",
                status=EnrollmentStatus.ACTIVE,
                attendance=round(85 + self.rng.random() * 15, 1),
                enrolled_at=_GROUP_DATE,
                enrolled_by=self.config.actor_id,
                notes="Inscripción automática demo",
            ))
            if index < 2:
                enrollments.append(Enrollment(
                    id=f"enrollment-{student.id}-physics-basic",
                    student_id=student.id,
                    subject_id="subj-physics-001",
                    level_id="level-physics-basic",
                    group_id="group-physics-basic-a",
                    status=EnrollmentStatus.ACTIVE,
                    attendance=round(80 + self.rng.random() * 20, 1),
                    enrolled_at=_GROUP_DATE,
                    enrolled_by=self.config.actor_id,
                    notes="Inscripción automática demo",
                ))
        return enrollments

    # ─── Vollständiger Datensatz ──────────────────────────────────────────────

    def generate(self) -> SchoolData:
        """Erzeugt den vollständigen Datensatz als SchoolData-Objekt."""
        students = self._generate_students()
        groups = self._generate_groups()
        enrollments = self._generate_enrollments(students)

        group_counts: dict[str, int] = defaultdict(int)
        level_counts: dict[str, int] = defaultdict(int)
        for e in enrollments:
            group_counts[e.group_id] += 1
            level_counts[e.level_id] += 1
        subjects = [s.with_counters(group_counts, level_counts) for s in default_subjects()]

        return SchoolData(
            levels=default_levels(),
            groups=groups,
            students=students,
            subjects=subjects,
            enrollments=enrollments,
            group_assignments=self._generate_assignments(groups),
            created_at=datetime.now(timezone.utc),
        )

    # ─── Ausgabe ──────────────────────────────────────────────────────────────

    def print_summary(self, data: SchoolData) -> None:
        """Gibt eine Rich-Tabelle mit Übersicht der erzeugten Daten aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title="Erzeugte Demo-Daten", box=box.ROUNDED)
        table.add_column("Kategorie", style="bold cyan")
        table.add_column("Anzahl", justify="right")
        table.add_column("Details")

        archived = sum(1 for g in data.groups if g.is_archived)
        inactive = sum(1 for s in data.students if not s.is_active)
        table.add_row("Bildungsstufen", str(len(data.levels)), "")
        table.add_row("Gruppen", str(len(data.groups)), f"{archived} archiviert")
        table.add_row("Schüler", str(len(data.students)), f"{inactive} inaktiv")
        table.add_row("Fächer", str(len(data.subjects)),
                      ", ".join(s.code for s in data.subjects))
        table.add_row("Einschreibungen", str(len(data.enrollments)), "")

        console.print(table)
