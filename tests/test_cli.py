"""Tests für die Kommandozeile (click CliRunner) mit JSON-Datendatei."""

import json

import pytest
from click.testing import CliRunner

from main import cli


@pytest.fixture
def env(tmp_path):
    """Konfiguration + Demo-Daten in tmp_path; liefert eine invoke-Funktion."""
    runner = CliRunner()
    base = ["--config", str(tmp_path / "app.yaml"), "--data", str(tmp_path / "data.json")]

    def invoke(*args, input=None):
        return runner.invoke(cli, [*base, *args], input=input)

    assert invoke("init").exit_code == 0
    assert invoke("demo", "--seed", "1").exit_code == 0
    invoke.data_path = tmp_path / "data.json"
    return invoke


def _data(env) -> dict:
    return json.loads(env.data_path.read_text(encoding="utf-8"))


class TestSetup:
    def test_init_writes_config(self, tmp_path):
        runner = CliRunner()
        path = tmp_path / "app.yaml"
        result = runner.invoke(cli, ["--config", str(path), "init"])
        assert result.exit_code == 0
        assert path.exists()

        again = runner.invoke(cli, ["--config", str(path), "init"])
        assert "existiert bereits" in again.output

    def test_missing_data_file(self, tmp_path):
        result = CliRunner().invoke(cli, ["--config", str(tmp_path / "a.yaml"),
                                          "--data", str(tmp_path / "none.json"),
                                          "groups", "list"])
        assert result.exit_code == 1
        assert "Keine Datendatei" in result.output

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("logging:\n  level: LOUD\n", encoding="utf-8")
        result = CliRunner().invoke(cli, ["--config", str(path), "config", "show"])
        assert result.exit_code == 1


class TestCommands:
    def test_groups_list(self, env):
        result = env("groups", "list")
        assert result.exit_code == 0
        assert "Gruppen" in result.output
        assert "archiviert" not in result.output
        assert env("groups", "list", "--archived").exit_code == 0

    def test_assign_persists_to_json(self, env):
        result = env("groups", "assign", "demo-student-003", "group-2")
        assert result.exit_code == 0, result.output
        data = _data(env)
        group = next(g for g in data["groups"] if g["id"] == "group-2")
        assert group["student_ids"] == ["demo-student-003"]
        assert len(data["history"]) == 1

    def test_rejected_operation_exits_1(self, env):
        """Fachlicher Fehler → rote Meldung, Exit-Code 1, Datei unverändert."""
        before = env.data_path.read_text(encoding="utf-8")
        result = env("groups", "archive", "group-1")
        assert result.exit_code == 1
        assert "✗" in result.output
        assert env.data_path.read_text(encoding="utf-8") == before

    def test_enroll_then_history_and_validate(self, env):
        result = env("enroll", "demo-student-004", "subj-math-001",
                     "level-math-basic", "group-math-basic-b")
        assert result.exit_code == 0, result.output

        history = env("history", "--student", "demo-student-004")
        assert history.exit_code == 0
        assert "Protokoll (1 Einträge)" in history.output

        assert env("validate").exit_code == 0

    def test_transfer_and_complete(self, env):
        result = env("transfer", "demo-student-001", "group-math-basic-a",
                     "subj-math-001", "level-math-basic", "group-math-basic-b")
        assert result.exit_code == 0, result.output
        result = env("complete", "demo-student-001", "subj-math-001", "--grade", "91")
        assert result.exit_code == 0, result.output

        enrollment = next(e for e in _data(env)["enrollments"]
                          if e["id"] == "enrollment-demo-student-001-math-basic")
        assert enrollment["status"] == "completed"
        assert enrollment["grade"] == 91.0

    def test_stats_and_report(self, env):
        assert env("stats").exit_code == 0
        report = env("groups", "report", "group-1")
        assert report.exit_code == 0
        assert "Belegung: 2/30" in report.output

    def test_delete_requires_confirmation(self, env):
        result = env("groups", "delete", "group-2", input="n\n")
        assert "Abgebrochen" in result.output
        assert env("groups", "delete", "group-2", "--yes").exit_code == 0
        assert all(g["id"] != "group-2" for g in _data(env)["groups"])
