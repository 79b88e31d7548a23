"""Konfigurationsmanager: Laden, Speichern und Validieren der App-Konfiguration.

Nutzt ruamel.yaml für YAML-Serialisierung mit Kommentaren.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from rich.console import Console
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.schema import AppConfig

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── YAML-KOMMENTAR-AUFBAU ───

def _yaml_header() -> str:
    return f"""\
# ============================================
# Schulverwaltung — Konfiguration
# Erstellt: {date.today().isoformat()}
# ============================================
"""


_SECTION_COMMENTS = {
    "persistence": (
        "Persistenz",
        "mode: demo (ohne Backend) oder json (Datei).\n"
        "sync_strategy: optimistic = erst Speicher, strict = erst Persistenz.",
    ),
    "rules": (
        "Geschäftsregeln",
        None,
    ),
    "logging": (
        "Logging",
        None,
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "app_config.yaml"

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else self.DEFAULT_CONFIG

    def first_run_check(self) -> bool:
        """Gibt True zurück wenn noch keine Config existiert (Erstaufruf)."""
        return not self.path.exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> AppConfig:
        """Lade Config aus YAML. Validiert automatisch via Pydantic."""
        target = Path(path) if path is not None else self.path
        if not target.exists():
            raise FileNotFoundError(
                f"Konfigurationsdatei nicht gefunden: {target}\n"
                f"Führen Sie 'python main.py init' aus, um die Schule einzurichten."
            )
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        try:
            return AppConfig.model_validate(dict(raw or {}))
        except ValidationError as e:
            raise ValueError(
                f"Konfigurationsdatei ungültig: {target}\n"
                f"Pydantic-Fehler: {e}"
            ) from e

    def load_or_default(self) -> AppConfig:
        """Lädt die Config, ohne Datei gilt die Standard-Konfiguration."""
        if self.first_run_check():
            return AppConfig()
        return self.load()

    # ─── Speichern ───

    def save(self, config: AppConfig, path: Optional[Path] = None,
             quiet: bool = False) -> Path:
        """Speichere Config als YAML mit deutschen Kommentaren."""
        target = Path(path) if path is not None else self.path
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_yaml_header() + "\n")
            yaml.dump(data, f)

        if not quiet:
            console.print(f"[green]✓[/green] Konfiguration gespeichert: {target}")
        return target

    def _build_commented_yaml(self, config: AppConfig) -> CommentedMap:
        """Baut die YAML-Struktur mit Kommentaren auf."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        rules = CommentedMap(cm["rules"])
        rules.yaml_add_eol_comment("Nur eine Gruppe pro Schuljahr",
                                   "exclusive_group_membership")
        cm["rules"] = rules
        return cm
