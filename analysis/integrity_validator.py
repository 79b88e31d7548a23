"""Konsistenzprüfung eines Datenbestands.

Unabhängig von der Engine: prüft einen EntityStore (z.B. nach dem Laden
eines Snapshots) auf verletzte Belegungsregeln und tote Verweise.
"""

from collections import defaultdict
from typing import Literal

from pydantic import BaseModel

from engine.store import LEVELS, STUDENTS, SUBJECTS, EntityStore


class IntegrityViolation(BaseModel):
    """Eine einzelne Regelverletzung."""

    severity: Literal["error", "warning"]
    rule: str            # z.B. "group_capacity"
    entity: str          # group_id / enrollment_id / subject_id
    description: str


class IntegrityReport(BaseModel):
    """Ergebnis der Konsistenzprüfung."""

    violations: list[IntegrityViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    @property
    def errors(self) -> list[IntegrityViolation]:
        return [v for v in self.violations if v.severity == "error"]

    @property
    def warnings(self) -> list[IntegrityViolation]:
        return [v for v in self.violations if v.severity == "warning"]

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        status = (
            "[bold green]✓ KONSISTENT[/bold green]"
            if self.is_valid
            else "[bold red]✗ VERLETZUNGEN GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(self.errors)} | Warnungen: {len(self.warnings)}"]
        console.print(Panel("\n".join(lines), title="Datenprüfung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Verletzungen gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Regel", width=26)
        table.add_column("Entität", width=18)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.rule,
                v.entity,
                v.description,
            )
        console.print(table)


class IntegrityValidator:
    """Prüft alle Belegungsregeln über den gesamten Bestand."""

    def validate(self, store: EntityStore) -> IntegrityReport:
        violations: list[IntegrityViolation] = []

        violations.extend(self._check_groups(store))
        violations.extend(self._check_unique_active_enrollments(store))
        violations.extend(self._check_group_assignments(store))
        violations.extend(self._check_references(store))
        violations.extend(self._check_subject_counters(store))
        violations.extend(self._check_evaluation_weights(store))

        has_errors = any(v.severity == "error" for v in violations)
        return IntegrityReport(violations=violations, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_groups(self, store: EntityStore) -> list[IntegrityViolation]:
        """Belegung ≤ Kapazität, keine Doppelten, archiviert ⇒ inaktiv und leer.

        Das Modell lehnt solche Gruppen schon beim Laden ab; die Prüfung
        greift bei Objekten, die per model_construct entstanden sind.
        """
        violations: list[IntegrityViolation] = []
        for g in store.groups:
            if len(set(g.student_ids)) != len(g.student_ids):
                violations.append(IntegrityViolation(
                    severity="error", rule="group_duplicate_member", entity=g.id,
                    description="Schüler-ID mehrfach in student_ids.",
                ))
            if len(g.student_ids) > g.max_capacity:
                violations.append(IntegrityViolation(
                    severity="error", rule="group_capacity", entity=g.id,
                    description=f"Belegung {len(g.student_ids)} > Kapazität {g.max_capacity}.",
                ))
            if g.is_archived and g.is_active:
                violations.append(IntegrityViolation(
                    severity="error", rule="archived_group_active", entity=g.id,
                    description="Archivierte Gruppe ist als aktiv markiert.",
                ))
            if g.is_archived and g.student_ids:
                violations.append(IntegrityViolation(
                    severity="error", rule="archived_group_not_empty", entity=g.id,
                    description=f"Archivierte Gruppe hat noch {len(g.student_ids)} Schüler.",
                ))
        return violations

    def _check_unique_active_enrollments(
        self, store: EntityStore
    ) -> list[IntegrityViolation]:
        """Höchstens eine aktive Einschreibung pro (Schüler, Fach)."""
        seen: dict[tuple[str, str], list[str]] = defaultdict(list)
        for e in store.enrollments:
            if e.is_active:
                seen[(e.student_id, e.subject_id)].append(e.id)
        return [
            IntegrityViolation(
                severity="error", rule="duplicate_active_enrollment", entity=student_id,
                description=f"Fach {subject_id}: {len(ids)} aktive Einschreibungen "
                            f"({', '.join(ids)}).",
            )
            for (student_id, subject_id), ids in seen.items() if len(ids) > 1
        ]

    def _check_group_assignments(self, store: EntityStore) -> list[IntegrityViolation]:
        """Höchstens eine aktive Zuordnung pro (Schüler, Gruppe)."""
        counts: dict[tuple[str, str], int] = defaultdict(int)
        for a in store.group_assignments:
            if a.is_active:
                counts[(a.student_id, a.group_id)] += 1
        return [
            IntegrityViolation(
                severity="error", rule="duplicate_group_assignment", entity=student_id,
                description=f"Gruppe {group_id}: {n} aktive Zuordnungen.",
            )
            for (student_id, group_id), n in counts.items() if n > 1
        ]

    def _check_references(self, store: EntityStore) -> list[IntegrityViolation]:
        """Alle Verweise auf Stufen, Fächer, Fachgruppen und Schüler lösen auf."""
        violations: list[IntegrityViolation] = []
        for g in store.groups:
            if not store.contains(LEVELS, g.level_id):
                violations.append(IntegrityViolation(
                    severity="error", rule="unknown_level", entity=g.id,
                    description=f"Stufe {g.level_id} existiert nicht.",
                ))
            for sid in g.student_ids:
                if not store.contains(STUDENTS, sid):
                    violations.append(IntegrityViolation(
                        severity="warning", rule="unknown_student", entity=g.id,
                        description=f"Schüler {sid} existiert nicht.",
                    ))

        for e in store.enrollments:
            subject = store.find(SUBJECTS, e.subject_id)
            if subject is None:
                violations.append(IntegrityViolation(
                    severity="error", rule="unknown_subject", entity=e.id,
                    description=f"Fach {e.subject_id} existiert nicht.",
                ))
                continue
            if subject.get_level(e.level_id) is None:
                violations.append(IntegrityViolation(
                    severity="error", rule="unknown_subject_level", entity=e.id,
                    description=f"Stufe {e.level_id} gehört nicht zu {subject.code}.",
                ))
            if subject.get_group(e.group_id) is None:
                violations.append(IntegrityViolation(
                    severity="error", rule="unknown_subject_group", entity=e.id,
                    description=f"Fachgruppe {e.group_id} gehört nicht zu {subject.code}.",
                ))

        for subject in store.subjects:
            for sg in subject.groups:
                if subject.get_level(sg.level_id) is None:
                    violations.append(IntegrityViolation(
                        severity="error", rule="unknown_subject_level", entity=sg.id,
                        description=f"Fachgruppe verweist auf unbekannte Stufe {sg.level_id}.",
                    ))
        return violations

    def _check_subject_counters(self, store: EntityStore) -> list[IntegrityViolation]:
        """Zähler der Fachgruppen und -stufen gegen aktive Einschreibungen.

        Nur Warnung: Demo-Daten bringen historische Zählerstände mit.
        """
        violations: list[IntegrityViolation] = []
        by_group: dict[str, int] = defaultdict(int)
        by_level: dict[tuple[str, str], int] = defaultdict(int)
        for e in store.enrollments:
            if e.is_active:
                by_group[e.group_id] += 1
                by_level[(e.subject_id, e.level_id)] += 1

        for subject in store.subjects:
            for sg in subject.groups:
                if sg.current_students > sg.max_students:
                    violations.append(IntegrityViolation(
                        severity="error", rule="subject_group_capacity", entity=sg.id,
                        description=f"Zähler {sg.current_students} > Kapazität {sg.max_students}.",
                    ))
                if sg.current_students != by_group[sg.id]:
                    violations.append(IntegrityViolation(
                        severity="warning", rule="subject_group_counter", entity=sg.id,
                        description=f"Zähler {sg.current_students}, aktive Einschreibungen "
                                    f"{by_group[sg.id]}.",
                    ))
            for lv in subject.levels:
                actual = by_level[(subject.id, lv.id)]
                if lv.current_students != actual:
                    violations.append(IntegrityViolation(
                        severity="warning", rule="subject_level_counter",
                        entity=f"{subject.code}/{lv.id}",
                        description=f"Zähler {lv.current_students}, aktive Einschreibungen "
                                    f"{actual}.",
                    ))
        return violations

    def _check_evaluation_weights(self, store: EntityStore) -> list[IntegrityViolation]:
        """Gewichte der Bewertungskriterien sollten 100 ergeben (nicht erzwungen)."""
        violations: list[IntegrityViolation] = []
        for level in store.levels:
            for ls in level.subjects:
                if ls.evaluation_criteria and abs(ls.total_weight - 100) > 1e-6:
                    violations.append(IntegrityViolation(
                        severity="warning", rule="evaluation_weights", entity=ls.id,
                        description=f"{level.name}/{ls.subject_name}: Gewichte ergeben "
                                    f"{ls.total_weight:g} statt 100.",
                    ))
        return violations
