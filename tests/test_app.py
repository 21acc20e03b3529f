"""Tests covering the command line entry point."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from outliner import app
from outliner.services.settings import Settings, SettingsStore

from tests.helpers import AGENDA_ORG, DEEP_MARKDOWN


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app, "configure_logging", lambda debug=False, *, force=False: None)
    for name in ("OUTLINER_DEBUG", "OUTLINER_SETTINGS_PATH", "OUTLINER_DEFAULT_DEPTH", "OUTLINER_HEADING_SYNTAX"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    return tmp_path / "settings.json"


@pytest.fixture
def notes(tmp_path: Path) -> Path:
    target = tmp_path / "deep.md"
    target.write_text(DEEP_MARKDOWN, encoding="utf-8")
    return target


def _run(settings_path: Path, *argv: str) -> tuple[int, str]:
    buffer = io.StringIO()
    code = app.main(["--settings-path", str(settings_path), *argv], stdout=buffer)
    return code, buffer.getvalue()


def test_coerce_cli_overrides_casts_types() -> None:
    overrides = app._coerce_cli_overrides(
        [
            "default_jump_depth=entries",
            "debug_logging=true",
            "upcoming_days=12",
            "refresh_interval=42.25",
            "todo_keywords=TODO, LATER",
            'done_keywords=["DONE"]',
        ]
    )

    assert overrides["default_jump_depth"] == "entries"
    assert overrides["debug_logging"] is True
    assert overrides["upcoming_days"] == 12
    assert overrides["refresh_interval"] == pytest.approx(42.25)
    assert overrides["todo_keywords"] == ["TODO", "LATER"]
    assert overrides["done_keywords"] == ["DONE"]


@pytest.mark.parametrize("entry", ["not_a_setting=value", "missing-equals", "=value", "debug_logging=maybe"])
def test_coerce_cli_overrides_rejects_bad_entries(entry: str) -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides([entry])


def test_dump_settings_reports_overrides(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json")
    buffer = io.StringIO()

    app._dump_settings(Settings(upcoming_days=3), store, overrides={"upcoming_days": 3}, stream=buffer)

    payload = json.loads(buffer.getvalue())
    assert payload["settings"]["upcoming_days"] == 3
    assert payload["meta"]["path"] == str(store.path)
    assert payload["meta"]["cli_overrides"] == ["upcoming_days"]


def test_main_dump_settings_applies_cli_overrides(settings_path: Path) -> None:
    code, output = _run(settings_path, "--set", "default_jump_depth=branches", "--dump-settings")

    payload = json.loads(output)
    assert code == 0
    assert payload["settings"]["default_jump_depth"] == "branches"
    assert payload["meta"]["cli_overrides"] == ["default_jump_depth"]


def test_main_rejects_invalid_override(settings_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(settings_path, "--set", "nonsense", "tree", "ignored.md")

    assert excinfo.value.code == 2
    assert "Invalid --set override" in capsys.readouterr().err


def test_main_requires_a_command(settings_path: Path) -> None:
    code, output = _run(settings_path)

    assert code == 2
    assert output == ""


class TestCommands:
    def test_tree_prints_every_heading(self, settings_path: Path, notes: Path) -> None:
        code, output = _run(settings_path, "tree", str(notes))

        assert code == 0
        assert output == "Preamble line.\n# A\n## A1\n### A1a\n## A2\n# B\n"

    def test_jump_uses_default_depth(self, settings_path: Path, notes: Path) -> None:
        code, output = _run(settings_path, "jump", str(notes), "--heading", "A1")

        assert code == 0
        assert output == "## A1\n### A1a\n"

    def test_jump_with_explicit_depth(self, settings_path: Path, notes: Path) -> None:
        code, output = _run(settings_path, "jump", str(notes), "--heading", "A1", "--depth", "entries")

        assert code == 0
        assert output == "## A1\na1 body\n### A1a\ndeep body\n"

    def test_jump_depth_comes_from_settings(self, settings_path: Path, notes: Path) -> None:
        SettingsStore(settings_path).save(Settings(default_jump_depth="none"))

        code, output = _run(settings_path, "jump", str(notes), "--heading", "A1")

        assert code == 0
        assert output == "## A1\na1 body\n"

    def test_jump_to_missing_heading(
        self,
        settings_path: Path,
        notes: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code, output = _run(settings_path, "jump", str(notes), "--heading", "Nowhere")

        assert code == 1
        assert output == ""
        assert "Nowhere" in capsys.readouterr().err

    def test_cycle_global(self, settings_path: Path, notes: Path) -> None:
        code, output = _run(settings_path, "cycle-global", str(notes), "--times", "1")

        assert code == 0
        assert output == "Preamble line.\n# A\n## A1\n## A2\n# B\n"

    def test_sidebar(self, settings_path: Path, tmp_path: Path) -> None:
        agenda = tmp_path / "agenda.org"
        agenda.write_text(AGENDA_ORG, encoding="utf-8")

        code, output = _run(settings_path, "sidebar", str(agenda))

        assert code == 0
        assert output.startswith("Upcoming items\n")
        assert "To-do items\n  TODO\n    TODO Write report" in output
        assert "Send invoice" not in output

    def test_missing_file(self, settings_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code, _ = _run(settings_path, "tree", str(tmp_path / "absent.md"))

        assert code == 1
        assert "Unable to read" in capsys.readouterr().err
