"""Schulverwaltung — Haupt-CLI für Gruppen, Einschreibungen und Protokoll.

Verwendung:
  python main.py init                               Konfiguration anlegen
  python main.py config show                        Konfiguration anzeigen
  python main.py demo                               Demo-Datenbestand erzeugen
  python main.py groups list [--archived]           Gruppen anzeigen
  python main.py groups assign <schüler> <gruppe>   Schüler zuordnen
  python main.py groups remove <schüler> <gruppe>   Schüler entfernen
  python main.py groups archive|unarchive|delete <gruppe>
  python main.py groups report <gruppe>             Gruppenbericht
  python main.py subjects                           Fächer und Fachgruppen
  python main.py enroll <schüler> <fach> <stufe> <fachgruppe>
  python main.py transfer <schüler> <von> <fach> <stufe> <fachgruppe>
  python main.py drop <schüler> <fach>              Vom Fach abmelden
  python main.py change-level <schüler> <fach> <stufe> <fachgruppe>
  python main.py complete <schüler> <fach>          Fach abschließen
  python main.py history                            Zuordnungsprotokoll
  python main.py stats                              Kennzahlen
  python main.py validate                           Konsistenzprüfung
"""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box

from engine.errors import EngineError

console = Console()


# ─── Hilfsfunktionen ─────────────────────────────────────────────────────────

@contextmanager
def _engine_errors():
    """Fachliche Fehler rot ausgeben und mit Exit-Code 1 beenden."""
    try:
        yield
    except EngineError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)


def _data_path(ctx: click.Context) -> Path:
    config = ctx.obj["config"]
    return Path(ctx.obj["data_path"] or config.persistence.json_path)


def _open_session(ctx: click.Context):
    """Lädt den JSON-Datenbestand und öffnet eine Session mit Datei-Persistenz."""
    from config.schema import PersistenceMode
    from engine.persistence import build_adapter
    from engine.session import SchoolSession
    from models.school_data import SchoolData

    config = ctx.obj["config"]
    path = _data_path(ctx)
    if not path.exists():
        console.print(
            f"[red]Keine Datendatei gefunden: {path}[/red]\n"
            "Erzeugen Sie zunächst Daten mit [bold]python main.py demo[/bold]."
        )
        sys.exit(1)
    data = SchoolData.load_json(path)
    persistence = config.persistence.model_copy(
        update={"mode": PersistenceMode.JSON, "json_path": str(path)}
    )
    return SchoolSession(data, config, adapter=build_adapter(persistence))


# ─── INIT & CONFIG ───────────────────────────────────────────────────────────

@click.command("init")
@click.option("--force", is_flag=True, default=False,
              help="Bestehende Konfiguration überschreiben.")
@click.pass_context
def cmd_init(ctx: click.Context, force: bool):
    """Legt die Standard-Konfiguration an."""
    from config.defaults import default_app_config

    mgr = ctx.obj["manager"]
    if not mgr.first_run_check() and not force:
        console.print(
            "[yellow]Eine Konfiguration existiert bereits.[/yellow]\n"
            "Verwenden Sie [bold]--force[/bold] zum Überschreiben."
        )
        return
    mgr.save(default_app_config())
    console.print("Führen Sie jetzt [bold]python main.py demo[/bold] aus.")


@click.group("config")
def cmd_config():
    """Konfiguration anzeigen."""


@cmd_config.command("show")
@click.pass_context
def config_show(ctx: click.Context):
    """Zeigt die aktuelle Konfiguration an."""
    config = ctx.obj["config"]

    console.print(Panel(
        f"[bold]{config.school_name}[/bold]  |  Schuljahr {config.academic_year}  |  "
        f"Benutzer: {config.actor_id}",
        title="Konfiguration",
        border_style="cyan",
    ))

    table = Table(box=box.ROUNDED)
    table.add_column("Bereich", style="bold")
    table.add_column("Parameter")
    table.add_column("Wert")
    for section in ("persistence", "rules", "logging"):
        for key, value in getattr(config, section).model_dump(mode="json").items():
            table.add_row(section, key, str(value))
    console.print(table)


# ─── DEMO ─────────────────────────────────────────────────────────────────────

@click.command("demo")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--students", "num_students", default=12, show_default=True,
              help="Anzahl der Demo-Schüler.")
@click.pass_context
def cmd_demo(ctx: click.Context, seed: int, num_students: int):
    """Erzeugt den Demo-Datenbestand und speichert ihn als JSON."""
    from data.demo_data import DemoDataGenerator

    console.print("[bold]Demo-Daten werden generiert...[/bold]")
    gen = DemoDataGenerator(ctx.obj["config"], seed=seed, num_students=num_students)
    data = gen.generate()
    gen.print_summary(data)

    out_path = _data_path(ctx)
    data.save_json(out_path)
    console.print(f"\n[dim]{data.summary()}[/dim]")
    console.print(f"[green]✓[/green] JSON gespeichert: {out_path}")


# ─── GRUPPEN ──────────────────────────────────────────────────────────────────

@click.group("groups")
def cmd_groups():
    """Akademische Gruppen anzeigen und verwalten."""


@cmd_groups.command("list")
@click.option("--archived", is_flag=True, default=False,
              help="Archivierte Gruppen mit anzeigen.")
@click.pass_context
def groups_list(ctx: click.Context, archived: bool):
    """Listet alle Gruppen mit Belegung."""
    from export.tui_renderer import build_table, render_group_rows

    session = _open_session(ctx)
    rows = render_group_rows(session.store, include_archived=archived)
    console.print(build_table(
        "Gruppen",
        ["ID", "Name", "Stufe", "Schuljahr", "Tutor", "Belegung", "Status"],
        rows,
    ))


@cmd_groups.command("assign")
@click.argument("student_id")
@click.argument("group_id")
@click.option("--notes", default=None, help="Notiz zur Zuordnung.")
@click.pass_context
def groups_assign(ctx: click.Context, student_id: str, group_id: str, notes: Optional[str]):
    """Ordnet einen Schüler einer Gruppe zu."""
    session = _open_session(ctx)
    with _engine_errors():
        session.capacity.assign_student_to_group(student_id, group_id, notes=notes)
    group = session.store.get_group(group_id)
    console.print(f"[green]✓[/green] {student_id} → {group.name} "
                  f"({group.current_capacity}/{group.max_capacity})")


@cmd_groups.command("remove")
@click.argument("student_id")
@click.argument("group_id")
@click.option("--reason", default="Aus Gruppe entfernt", help="Grund für das Protokoll.")
@click.pass_context
def groups_remove(ctx: click.Context, student_id: str, group_id: str, reason: str):
    """Entfernt einen Schüler aus einer Gruppe."""
    session = _open_session(ctx)
    with _engine_errors():
        session.capacity.remove_student_from_group(student_id, group_id, reason)
    console.print(f"[green]✓[/green] {student_id} aus {group_id} entfernt")


@cmd_groups.command("archive")
@click.argument("group_id")
@click.option("--reason", default=None, help="Grund für das Protokoll.")
@click.pass_context
def groups_archive(ctx: click.Context, group_id: str, reason: Optional[str]):
    """Archiviert eine leere Gruppe."""
    session = _open_session(ctx)
    with _engine_errors():
        session.capacity.archive_group(group_id, reason)
    console.print(f"[green]✓[/green] Gruppe {group_id} archiviert")


@cmd_groups.command("unarchive")
@click.argument("group_id")
@click.option("--reason", default=None, help="Grund für das Protokoll.")
@click.pass_context
def groups_unarchive(ctx: click.Context, group_id: str, reason: Optional[str]):
    """Holt eine Gruppe aus dem Archiv zurück."""
    session = _open_session(ctx)
    with _engine_errors():
        session.capacity.unarchive_group(group_id, reason)
    console.print(f"[green]✓[/green] Gruppe {group_id} reaktiviert")


@cmd_groups.command("delete")
@click.argument("group_id")
@click.option("--yes", is_flag=True, default=False, help="Ohne Rückfrage löschen.")
@click.pass_context
def groups_delete(ctx: click.Context, group_id: str, yes: bool):
    """Löscht eine leere Gruppe endgültig."""
    session = _open_session(ctx)
    if not yes and not click.confirm(f"Gruppe {group_id} endgültig löschen?", default=False):
        console.print("[yellow]Abgebrochen.[/yellow]")
        return
    with _engine_errors():
        session.capacity.delete_group(group_id)
    console.print(f"[green]✓[/green] Gruppe {group_id} gelöscht")


@cmd_groups.command("report")
@click.argument("group_id")
@click.pass_context
def groups_report(ctx: click.Context, group_id: str):
    """Zeigt Mitglieder und Fachbelegung einer Gruppe."""
    session = _open_session(ctx)
    with _engine_errors():
        report = session.queries.group_report(group_id)

    attendance = (f"{report.average_attendance:.1f}%"
                  if report.average_attendance is not None else "—")
    console.print(Panel(
        f"[bold]{report.name}[/bold]  |  {report.level_name}  |  {report.academic_year}\n"
        f"Belegung: {report.occupancy}/{report.max_capacity} "
        f"({report.utilisation:.0%})  |  Ø Anwesenheit: {attendance}",
        title=f"Gruppe {report.group_id}",
        border_style="cyan",
    ))
    table = Table(box=box.SIMPLE)
    table.add_column("Fachstufe")
    table.add_column("Schüler", justify="right")
    for label, count in report.enrollments_by_level.items():
        table.add_row(label, str(count))
    console.print(table)
    if report.members:
        console.print("[bold]Mitglieder:[/bold] " + ", ".join(report.members))


# ─── FÄCHER & EINSCHREIBUNGEN ────────────────────────────────────────────────

@click.command("subjects")
@click.option("--search", "query", default="", help="Suchbegriff (Name, Code, Abteilung).")
@click.pass_context
def cmd_subjects(ctx: click.Context, query: str):
    """Listet Fächer mit ihren Fachgruppen."""
    from export.tui_renderer import build_table, render_subject_rows

    session = _open_session(ctx)
    subjects = session.queries.search_subjects(query)
    if not subjects:
        console.print("[dim]Keine Fächer gefunden.[/dim]")
        return
    for subject in subjects:
        console.print(build_table(
            f"{subject.code} – {subject.name} ({subject.department})",
            ["Gruppe", "Stufe", "Lehrkraft", "Belegung", "Termine"],
            render_subject_rows(subject),
        ))


@click.command("enroll")
@click.argument("student_id")
@click.argument("subject_id")
@click.argument("level_id")
@click.argument("group_id")
@click.option("--notes", default=None, help="Notiz zur Einschreibung.")
@click.pass_context
def cmd_enroll(ctx: click.Context, student_id: str, subject_id: str, level_id: str,
               group_id: str, notes: Optional[str]):
    """Schreibt einen Schüler in eine Fachgruppe ein."""
    session = _open_session(ctx)
    with _engine_errors():
        enrollment = session.capacity.enroll_student(
            student_id, subject_id, level_id, group_id, notes=notes
        )
    console.print(f"[green]✓[/green] Eingeschrieben: {enrollment.id}")


@click.command("transfer")
@click.argument("student_id")
@click.argument("from_group_id")
@click.argument("to_subject_id")
@click.argument("to_level_id")
@click.argument("to_group_id")
@click.option("--reason", default=None, help="Grund für das Protokoll.")
@click.pass_context
def cmd_transfer(ctx: click.Context, student_id: str, from_group_id: str,
                 to_subject_id: str, to_level_id: str, to_group_id: str,
                 reason: Optional[str]):
    """Verschiebt einen Schüler in eine andere Fachgruppe (auch fachübergreifend)."""
    session = _open_session(ctx)
    with _engine_errors():
        session.capacity.transfer_student(
            student_id, from_group_id, to_subject_id, to_level_id, to_group_id, reason
        )
    console.print(f"[green]✓[/green] {student_id}: {from_group_id} → {to_group_id}")


@click.command("drop")
@click.argument("student_id")
@click.argument("subject_id")
@click.option("--reason", default=None, help="Grund für das Protokoll.")
@click.pass_context
def cmd_drop(ctx: click.Context, student_id: str, subject_id: str, reason: Optional[str]):
    """Meldet einen Schüler von einem Fach ab."""
    session = _open_session(ctx)
    with _engine_errors():
        session.capacity.remove_student(student_id, subject_id, reason)
    console.print(f"[green]✓[/green] {student_id} von {subject_id} abgemeldet")


@click.command("change-level")
@click.argument("student_id")
@click.argument("subject_id")
@click.argument("level_id")
@click.argument("group_id")
@click.option("--reason", default=None, help="Grund für das Protokoll.")
@click.pass_context
def cmd_change_level(ctx: click.Context, student_id: str, subject_id: str,
                     level_id: str, group_id: str, reason: Optional[str]):
    """Wechselt Stufe und Fachgruppe innerhalb eines Fachs."""
    session = _open_session(ctx)
    with _engine_errors():
        session.capacity.change_level_student(student_id, subject_id, level_id,
                                              group_id, reason)
    console.print(f"[green]✓[/green] {student_id}: Stufe {level_id}, Gruppe {group_id}")


@click.command("complete")
@click.argument("student_id")
@click.argument("subject_id")
@click.option("--grade", type=click.FloatRange(0, 100), default=None,
              help="Abschlussnote (0–100).")
@click.option("--reason", default=None, help="Grund für das Protokoll.")
@click.pass_context
def cmd_complete(ctx: click.Context, student_id: str, subject_id: str,
                 grade: Optional[float], reason: Optional[str]):
    """Schließt eine aktive Einschreibung ab."""
    session = _open_session(ctx)
    with _engine_errors():
        session.capacity.complete_enrollment(student_id, subject_id, grade, reason)
    console.print(f"[green]✓[/green] {student_id}: {subject_id} abgeschlossen")


# ─── PROTOKOLL & AUSWERTUNG ──────────────────────────────────────────────────

@click.command("history")
@click.option("--student", "student_id", default=None, help="Nur dieser Schüler.")
@click.option("--type", "entry_type", type=click.Choice(["group", "subject"]),
              default=None, help="Nur Gruppen- oder Fachereignisse.")
@click.option("--entity", "entity_id", default=None,
              help="Nur Einträge mit dieser Gruppe/Fachgruppe als Von oder Nach.")
@click.option("--limit", default=50, show_default=True, help="Maximal angezeigte Einträge.")
@click.pass_context
def cmd_history(ctx: click.Context, student_id: Optional[str], entry_type: Optional[str],
                entity_id: Optional[str], limit: int):
    """Zeigt das Zuordnungsprotokoll (neueste zuletzt)."""
    from export.tui_renderer import build_table, render_history_rows
    from models.history import HistoryFilter

    session = _open_session(ctx)
    flt = HistoryFilter(student_id=student_id, type=entry_type, entity_id=entity_id)
    entries = session.history.query(flt)[-limit:]
    if not entries:
        console.print("[dim]Keine Protokolleinträge.[/dim]")
        return
    console.print(build_table(
        f"Protokoll ({len(entries)} Einträge)",
        ["Zeit", "Typ", "Schüler", "Von", "Nach", "Grund"],
        render_history_rows(entries),
    ))


@click.command("stats")
@click.pass_context
def cmd_stats(ctx: click.Context):
    """Zeigt Kennzahlen zu Gruppen, Schülern und Fächern."""
    session = _open_session(ctx)
    counts = session.queries.dashboard_counts()
    stats = session.queries.subject_stats()

    console.print(Panel(
        f"Gruppen: [bold]{counts.total_groups}[/bold] "
        f"({counts.active_groups} aktiv, {counts.inactive_groups} inaktiv, "
        f"{counts.archived_groups} archiviert)\n"
        f"Zugeordnete Schüler: [bold]{counts.assigned_students}[/bold] | "
        f"Ø Auslastung: [bold]{counts.average_utilisation}%[/bold]\n"
        f"Schüler: {counts.total_students} ({counts.active_students} aktiv)\n"
        f"Fächer: {stats.total_subjects} ({stats.active_subjects} aktiv) | "
        f"Aktive Einschreibungen: {stats.total_enrollments} | "
        f"Ø pro Fach: {stats.average_enrollment_per_subject:.1f}",
        title="Kennzahlen",
        border_style="cyan",
    ))

    table = Table(title="Einschreibungen nach Stufe", box=box.SIMPLE)
    table.add_column("Stufe")
    table.add_column("Aktiv", justify="right")
    for name, count in sorted(stats.enrollments_by_level.items()):
        table.add_row(name, str(count))
    console.print(table)


@click.command("validate")
@click.pass_context
def cmd_validate(ctx: click.Context):
    """Prüft den Datenbestand auf verletzte Belegungsregeln."""
    session = _open_session(ctx)
    report = session.validate()
    report.print_rich()
    sys.exit(0 if report.is_valid else 1)


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="Pfad zur YAML-Konfiguration (Standard: config/app_config.yaml).")
@click.option("--data", "data_path", type=click.Path(path_type=Path), default=None,
              help="Pfad zur JSON-Datendatei (überschreibt persistence.json_path).")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], data_path: Optional[Path]):
    """Schulverwaltung: Gruppen, Fach-Einschreibungen und Protokoll.

    Starten Sie mit: python main.py init
    """
    from config.logging_setup import configure_logging
    from config.manager import ConfigManager

    mgr = ConfigManager(config_path)
    try:
        config = mgr.load_or_default()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    configure_logging(config.logging)
    ctx.obj = {"manager": mgr, "config": config, "data_path": data_path}


def main():
    """Einstiegspunkt. Legt beim ersten Aufruf ohne Argumente die Konfiguration an."""
    from config.manager import ConfigManager
    mgr = ConfigManager()

    if len(sys.argv) == 1 and mgr.first_run_check():
        console.print(Panel(
            "[bold]Willkommen bei der Schulverwaltung![/bold]\n\n"
            "Keine Konfiguration gefunden.\n"
            "Die Standard-Konfiguration wird jetzt angelegt...",
            border_style="cyan",
        ))
        sys.argv.append("init")

    cli()


# Befehle registrieren
cli.add_command(cmd_init)
cli.add_command(cmd_config)
cli.add_command(cmd_demo)
cli.add_command(cmd_groups)
cli.add_command(cmd_subjects)
cli.add_command(cmd_enroll)
cli.add_command(cmd_transfer)
cli.add_command(cmd_drop)
cli.add_command(cmd_change_level)
cli.add_command(cmd_complete)
cli.add_command(cmd_history)
cli.add_command(cmd_stats)
cli.add_command(cmd_validate)


if __name__ == "__main__":
    main()
