"""Tests für Konfiguration, Standard-Katalog und Demo-Daten."""

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError
from rich.logging import RichHandler

from config.defaults import default_app_config, default_levels, default_subjects
from config.logging_setup import configure_logging
from config.manager import ConfigManager
from config.schema import (
    AppConfig,
    LoggingConfig,
    PersistenceConfig,
    PersistenceMode,
    RulesConfig,
    SyncStrategy,
)
from data.demo_data import DemoDataGenerator
from engine.session import SchoolSession


# ─── DEFAULT-KONFIGURATION ────────────────────────────────────────────────────

class TestDefaultConfig:
    def test_default_app_config(self):
        """Standard: Demo-Persistenz, optimistisch, Mehrfach-Gruppen erlaubt."""
        config = default_app_config()
        assert config.persistence.mode == PersistenceMode.DEMO
        assert config.persistence.sync_strategy == SyncStrategy.OPTIMISTIC
        assert config.rules.exclusive_group_membership is False
        assert config.rules.enforce_group_level_match is True

    def test_default_levels_weights_sum_to_100(self):
        """Alle Bewertungskriterien des Standard-Katalogs ergeben 100 %."""
        levels = default_levels()
        assert [lv.id for lv in levels] == ["level-0", "level-1", "level-2"]
        for level in levels:
            for ls in level.subjects:
                assert ls.total_weight == pytest.approx(100)

    def test_default_subjects_empty_counters(self):
        subjects = default_subjects()
        assert [s.code for s in subjects] == ["MAT101", "FIS101", "QUI101", "HIS101"]
        for subject in subjects:
            assert all(g.current_students == 0 for g in subject.groups)
            assert all(lv.current_students == 0 for lv in subject.levels)
            for group in subject.groups:
                assert subject.get_level(group.level_id) is not None


# ─── PYDANTIC-VALIDIERUNG ─────────────────────────────────────────────────────

class TestPydanticValidation:
    def test_retry_attempts_bounds(self):
        with pytest.raises(ValidationError):
            PersistenceConfig(retry_attempts=0)
        with pytest.raises(ValidationError):
            PersistenceConfig(retry_attempts=11)

    def test_log_level_normalised(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="LOUD")

    def test_empty_actor_rejected(self):
        with pytest.raises(ValidationError):
            AppConfig(actor_id="  ")

    def test_strategy_from_string(self):
        config = AppConfig.model_validate({"persistence": {"sync_strategy": "strict"}})
        assert config.persistence.sync_strategy == SyncStrategy.STRICT


# ─── YAML SPEICHERN / LADEN ───────────────────────────────────────────────────

class TestConfigManager:
    def test_save_and_load_roundtrip(self, tmp_path: Path):
        """Config speichern, laden und validieren – vollständiger Roundtrip."""
        config = AppConfig(
            school_name="Colegio San José",
            actor_id="admin-7",
            rules=RulesConfig(exclusive_group_membership=True),
        )
        mgr = ConfigManager(tmp_path / "app.yaml")
        mgr.save(config, quiet=True)
        assert mgr.path.exists()

        loaded = mgr.load()
        assert loaded == config

    def test_saved_yaml_has_comments(self, tmp_path: Path):
        mgr = ConfigManager(tmp_path / "app.yaml")
        mgr.save(default_app_config(), quiet=True)
        text = mgr.path.read_text(encoding="utf-8")
        assert "# Schulverwaltung" in text
        assert "Geschäftsregeln" in text
        assert "Nur eine Gruppe pro Schuljahr" in text

    def test_first_run_and_default(self, tmp_path: Path):
        mgr = ConfigManager(tmp_path / "missing.yaml")
        assert mgr.first_run_check() is True
        assert mgr.load_or_default() == AppConfig()
        with pytest.raises(FileNotFoundError):
            mgr.load()

    def test_invalid_yaml_values(self, tmp_path: Path):
        """Ungültige Werte → ValueError mit Dateiname."""
        path = tmp_path / "bad.yaml"
        path.write_text("persistence:\n  retry_attempts: 0\n", encoding="utf-8")
        with pytest.raises(ValueError, match="bad.yaml"):
            ConfigManager(path).load()


class TestLogging:
    def test_single_rich_handler(self):
        """Mehrfacher Aufruf ersetzt den RichHandler statt ihn zu verdoppeln."""
        configure_logging(LoggingConfig(level="WARNING"))
        configure_logging(LoggingConfig(level="DEBUG"))
        root = logging.getLogger()
        assert sum(isinstance(h, RichHandler) for h in root.handlers) == 1
        assert root.level == logging.DEBUG


# ─── DEMO-DATEN ───────────────────────────────────────────────────────────────

class TestDemoData:
    def test_generated_data_consistent(self):
        """Demo-Daten bestehen die Konsistenzprüfung ohne Warnungen."""
        data = DemoDataGenerator(seed=42).generate()
        report = SchoolSession(data).validate()
        assert report.is_valid
        assert report.warnings == []

    def test_counters_match_enrollments(self):
        data = DemoDataGenerator(seed=1).generate()
        math = next(s for s in data.subjects if s.code == "MAT101")
        assert math.get_group("group-math-basic-a").current_students == 2
        assert math.get_group("group-math-basic-b").current_students == 1
        assert math.get_level("level-math-basic").current_students == 3

    def test_groups_and_students(self):
        data = DemoDataGenerator(seed=7, num_students=5).generate()
        assert len(data.students) == 5
        assert data.students[-1].is_active is False
        group_1 = next(g for g in data.groups if g.id == "group-1")
        assert group_1.student_ids == ["demo-student-001", "demo-student-002"]
        assert len(data.group_assignments) == 3
        archived = next(g for g in data.groups if g.is_archived)
        assert archived.academic_year == "2023-2024"

    def test_seed_is_reproducible(self):
        first = DemoDataGenerator(seed=3).generate()
        second = DemoDataGenerator(seed=3).generate()
        assert [s.name for s in first.students] == [s.name for s in second.students]

    def test_too_few_students(self):
        with pytest.raises(ValueError):
            DemoDataGenerator(num_students=2)
