from pydantic import BaseModel, Field, field_validator
from enum import Enum


class PersistenceMode(str, Enum):
    DEMO = "demo"
    JSON = "json"


class SyncStrategy(str, Enum):
    # Erst im Speicher ändern, dann speichern (Fehler → ausstehend, kein Rollback)
    OPTIMISTIC = "optimistic"
    # Erst speichern, nur bei Erfolg im Speicher übernehmen
    STRICT = "strict"


# ─── PERSISTENZ ───

class PersistenceConfig(BaseModel):
    """Auswahl und Verhalten des Persistenz-Adapters."""
    # "demo" = lokaler Speicher ohne Backend, "json" = JSON-Datei
    mode: PersistenceMode = Field(PersistenceMode.DEMO,
        description="Persistenz-Backend")
    # Pfad der JSON-Datei (nur bei mode=json)
    json_path: str = Field("output/school_data.json",
        description="Pfad der JSON-Datendatei")
    # Maximale Versuche pro Persistenz-Aufruf (1 = keine Wiederholung)
    retry_attempts: int = Field(3, ge=1, le=10,
        description="Versuche pro Persistenz-Aufruf")
    # Basis-Wartezeit für exponentielles Backoff
    retry_wait_seconds: float = Field(0.2, ge=0, le=10,
        description="Basis-Wartezeit zwischen Versuchen (Sekunden)")
    # Reihenfolge von Speicher-Änderung und Persistenz
    sync_strategy: SyncStrategy = Field(SyncStrategy.OPTIMISTIC,
        description="optimistic = erst Speicher, strict = erst Persistenz")


# ─── GESCHÄFTSREGELN ───

class RulesConfig(BaseModel):
    """Optionale Geschäftsregeln der Belegungs-Engine."""
    # Schüler darf pro Schuljahr nur einer aktiven Gruppe angehören
    exclusive_group_membership: bool = Field(False,
        description="Nur eine aktive Gruppe pro Schüler und Schuljahr")
    # Fachgruppe muss zur angegebenen Stufe gehören
    enforce_group_level_match: bool = Field(True,
        description="Fachgruppe und Stufe müssen zusammenpassen")


# ─── LOGGING ───

class LoggingConfig(BaseModel):
    """Log-Ausgabe über Rich."""
    # Log-Level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    level: str = Field("INFO", description="Log-Level")
    # Rich-Tracebacks bei unerwarteten Fehlern
    rich_tracebacks: bool = Field(True, description="Rich-Tracebacks anzeigen")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unbekanntes Log-Level: {value}")
        return value


# ─── GESAMT-CONFIG ───

class AppConfig(BaseModel):
    """Gesamtkonfiguration der Schulverwaltung."""
    # Name der Schule
    school_name: str = Field("Colegio Demo",
        description="Name der Schule")
    # Aktuelles Schuljahr (für neue Gruppen und Exklusivitätsregel)
    academic_year: str = Field("2024-2025",
        description="Aktuelles Schuljahr")
    # Wird als changed_by / assigned_by / enrolled_by protokolliert
    actor_id: str = Field("system",
        description="Handelnder Benutzer für das Protokoll")
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("actor_id")
    @classmethod
    def validate_actor(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("actor_id darf nicht leer sein")
        return value
