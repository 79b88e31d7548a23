"""Gemeinsamer Renderer für Terminal-Tabellen.

Liefert reine Tabellenzeilen (Listen von Strings); ``build_table`` baut
daraus eine Rich-Tabelle für die CLI.
"""

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from rich.table import Table

    from engine.store import EntityStore
    from models.history import AssignmentHistory
    from models.subject import Subject


def occupancy_label(current: int, maximum: int) -> str:
    """'12/30 (40%)'; volle Gruppen rot, ab 80% gelb."""
    pct = round(current / maximum * 100) if maximum else 0
    color = "red" if current >= maximum else "yellow" if pct >= 80 else "green"
    return f"[{color}]{current}/{maximum}[/{color}] ({pct}%)"


def render_group_rows(store: "EntityStore", include_archived: bool = False) -> list[list[str]]:
    """Zeilen: [ID, Name, Stufe, Schuljahr, Tutor, Belegung, Status]."""
    rows: list[list[str]] = []
    for g in store.groups:
        if g.is_archived and not include_archived:
            continue
        level = store.find("levels", g.level_id)
        if g.is_archived:
            status = "[dim]archiviert[/dim]"
        elif g.is_active:
            status = "[green]aktiv[/green]"
        else:
            status = "[yellow]inaktiv[/yellow]"
        rows.append([
            g.id,
            g.name,
            level.name if level else g.level_id,
            g.academic_year,
            g.tutor_name or g.tutor_id,
            occupancy_label(g.current_capacity, g.max_capacity),
            status,
        ])
    return rows


def render_subject_rows(subject: "Subject") -> list[list[str]]:
    """Zeilen je Fachgruppe: [Gruppe, Stufe, Lehrkraft, Belegung, Termine]."""
    day_names = ["So", "Mo", "Di", "Mi", "Do", "Fr", "Sa"]
    rows: list[list[str]] = []
    for sg in subject.groups:
        level = subject.get_level(sg.level_id)
        times = ", ".join(
            f"{day_names[s.day_of_week]} {s.start_time}–{s.end_time}" for s in sg.schedule
        )
        rows.append([
            f"{sg.name} ({sg.id})",
            level.name if level else sg.level_id,
            sg.teacher_name or sg.teacher_id,
            occupancy_label(sg.current_students, sg.max_students),
            times or "—",
        ])
    return rows


def render_history_rows(entries: Iterable["AssignmentHistory"]) -> list[list[str]]:
    """Zeilen: [Zeit, Typ, Schüler, Von, Nach, Grund]."""
    return [
        [
            e.changed_at.strftime("%Y-%m-%d %H:%M:%S"),
            e.type.value,
            e.student_id or "—",
            e.from_id or "—",
            e.to_id or "—",
            e.reason,
        ]
        for e in entries
    ]


def build_table(title: str, columns: list[str], rows: list[list[str]]) -> "Table":
    from rich.table import Table
    from rich import box

    table = Table(title=title, box=box.ROUNDED, show_lines=False)
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*row)
    return table
