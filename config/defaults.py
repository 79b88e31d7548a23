from datetime import datetime, timezone

from config.schema import AppConfig, LoggingConfig, PersistenceConfig, RulesConfig
from models.group import EducationalLevel, EvaluationCriteria, LevelSubject
from models.subject import ClassSchedule, Subject, SubjectGroup, SubjectLevel


CATALOG_CREATED = datetime(2024, 1, 15, tzinfo=timezone.utc)


def default_app_config() -> AppConfig:
    """Standard-Konfiguration für eine neue Schule.

    Demo-Persistenz (kein Backend), optimistische Synchronisation,
    mehrere Gruppen pro Schüler erlaubt.
    """
    return AppConfig(
        school_name="Colegio Demo",
        academic_year="2024-2025",
        actor_id="system",
        persistence=PersistenceConfig(),
        rules=RulesConfig(),
        logging=LoggingConfig(),
    )


def _criteria(prefix: str, *items: tuple[str, str, float, float]) -> list[EvaluationCriteria]:
    return [
        EvaluationCriteria(id=f"{prefix}-{i}", name=name, description=desc,
                           weight=weight, min_score=min_score, max_score=100)
        for i, (name, desc, weight, min_score) in enumerate(items, start=1)
    ]


def default_levels() -> list[EducationalLevel]:
    """Bildungsstufen des Demo-Katalogs (Infantil, Primaria, Secundaria)."""
    return [
        EducationalLevel(
            id="level-0",
            name="Educación Infantil",
            description="Niveles iniciales de educación infantil (3-6 años)",
            order=0,
            subjects=[LevelSubject(
                id="subj-basic-0",
                subject_id="basic-skills",
                subject_name="Habilidades Básicas",
                level_type="basic",
                description="Desarrollo de habilidades motoras, sociales y cognitivas básicas",
                evaluation_criteria=_criteria(
                    "crit-0",
                    ("Desarrollo motor", "Coordinación y habilidades motoras", 30, 50),
                    ("Habilidades sociales", "Interacción con compañeros", 40, 60),
                    ("Desarrollo cognitivo", "Formas, colores, números y letras", 30, 50),
                ),
            )],
        ),
        EducationalLevel(
            id="level-1",
            name="Educación Primaria",
            description="Niveles básicos de educación primaria",
            order=1,
            subjects=[LevelSubject(
                id="subj-math-1",
                subject_id="math",
                subject_name="Matemáticas",
                level_type="basic",
                description="Matemáticas básicas: suma, resta, multiplicación",
                evaluation_criteria=_criteria(
                    "crit-1",
                    ("Operaciones básicas", "Suma, resta, multiplicación y división", 40, 60),
                    ("Resolución de problemas", "Problemas matemáticos simples", 60, 70),
                ),
            )],
        ),
        EducationalLevel(
            id="level-2",
            name="Educación Secundaria",
            description="Niveles intermedios de educación secundaria",
            order=2,
            subjects=[LevelSubject(
                id="subj-math-2",
                subject_id="math",
                subject_name="Matemáticas",
                level_type="intermediate",
                description="Álgebra básica, geometría, estadística",
                prerequisites=["subj-math-1"],
                evaluation_criteria=_criteria(
                    "crit-2",
                    ("Álgebra", "Ecuaciones lineales y cuadráticas", 50, 65),
                    ("Geometría", "Áreas, perímetros y volúmenes", 50, 65),
                ),
            )],
        ),
    ]


def _schedule(sid: str, day: int, start: str, end: str, room: str) -> ClassSchedule:
    return ClassSchedule(id=sid, day_of_week=day, start_time=start, end_time=end,
                         classroom=room)


def default_subjects() -> list[Subject]:
    """Fächerangebot des Demo-Katalogs, alle Belegungszähler auf 0."""
    return [
        Subject(
            id="subj-math-001",
            name="Matemáticas",
            description="Matemáticas fundamentales y avanzadas",
            code="MAT101",
            department="Ciencias Exactas",
            credits=4,
            color="#3B82F6",
            created_at=CATALOG_CREATED,
            updated_at=CATALOG_CREATED,
            levels=[
                SubjectLevel(id="level-math-basic", name="Básico", order=1,
                             description="Aritmética, álgebra elemental", max_students=30),
                SubjectLevel(id="level-math-intermediate", name="Intermedio", order=2,
                             description="Álgebra, geometría, trigonometría",
                             requirements=["Matemáticas Básico"], max_students=25),
                SubjectLevel(id="level-math-advanced", name="Avanzado", order=3,
                             description="Cálculo, estadística avanzada",
                             requirements=["Matemáticas Intermedio"], max_students=20),
            ],
            groups=[
                SubjectGroup(
                    id="group-math-basic-a", name="Grupo A", level_id="level-math-basic",
                    teacher_id="demo-teacher-001", teacher_name="Profesor Demo",
                    max_students=15,
                    schedule=[_schedule("schedule-1", 1, "08:00", "09:30", "Aula 101"),
                              _schedule("schedule-2", 3, "08:00", "09:30", "Aula 101")],
                ),
                SubjectGroup(
                    id="group-math-basic-b", name="Grupo B", level_id="level-math-basic",
                    teacher_id="demo-teacher-002", teacher_name="Carlos Martínez",
                    max_students=15,
                    schedule=[_schedule("schedule-3", 2, "10:00", "11:30", "Aula 102"),
                              _schedule("schedule-4", 4, "10:00", "11:30", "Aula 102")],
                ),
            ],
        ),
        Subject(
            id="subj-physics-001",
            name="Física",
            description="Física general y aplicada",
            code="FIS101",
            department="Ciencias Exactas",
            credits=4,
            color="#10B981",
            created_at=CATALOG_CREATED,
            updated_at=CATALOG_CREATED,
            levels=[
                SubjectLevel(id="level-physics-basic", name="Básico", order=1,
                             description="Mecánica clásica, termodinámica básica",
                             requirements=["Matemáticas Básico"], max_students=25),
                SubjectLevel(id="level-physics-advanced", name="Avanzado", order=2,
                             description="Electromagnetismo, física moderna",
                             requirements=["Física Básico", "Matemáticas Intermedio"],
                             max_students=20),
            ],
            groups=[
                SubjectGroup(
                    id="group-physics-basic-a", name="Grupo A",
                    level_id="level-physics-basic",
                    teacher_id="demo-teacher-002", teacher_name="Carlos Martínez",
                    max_students=15,
                    schedule=[_schedule("schedule-5", 1, "14:00", "15:30", "Lab. Física"),
                              _schedule("schedule-6", 5, "14:00", "15:30", "Lab. Física")],
                ),
            ],
        ),
        Subject(
            id="subj-chemistry-001",
            name="Química",
            description="Química general y orgánica",
            code="QUI101",
            department="Ciencias Exactas",
            credits=3,
            color="#8B5CF6",
            created_at=CATALOG_CREATED,
            updated_at=CATALOG_CREATED,
            levels=[
                SubjectLevel(id="level-chemistry-basic", name="Básico", order=1,
                             description="Química general, tabla periódica, enlaces",
                             max_students=20),
            ],
            groups=[
                SubjectGroup(
                    id="group-chemistry-basic-a", name="Grupo A",
                    level_id="level-chemistry-basic",
                    teacher_id="demo-teacher-002", teacher_name="Carlos Martínez",
                    max_students=20,
                    schedule=[_schedule("schedule-7", 2, "15:30", "17:00", "Lab. Química")],
                ),
            ],
        ),
        Subject(
            id="subj-history-001",
            name="Historia",
            description="Historia universal y nacional",
            code="HIS101",
            department="Humanidades",
            credits=3,
            color="#F59E0B",
            created_at=CATALOG_CREATED,
            updated_at=CATALOG_CREATED,
            levels=[
                SubjectLevel(id="level-history-basic", name="Básico", order=1,
                             description="Historia antigua y medieval", max_students=30),
                SubjectLevel(id="level-history-modern", name="Moderno", order=2,
                             description="Historia moderna y contemporánea",
                             requirements=["Historia Básico"], max_students=25),
            ],
            groups=[
                SubjectGroup(
                    id="group-history-basic-a", name="Grupo A",
                    level_id="level-history-basic",
                    teacher_id="demo-teacher-002", teacher_name="Carlos Martínez",
                    max_students=30,
                    schedule=[_schedule("schedule-8", 3, "11:30", "13:00", "Aula 201")],
                ),
            ],
        ),
    ]
