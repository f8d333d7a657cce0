"""CLI parser and command behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from projconf.cli import _build_parser, _selection_plan, main
from projconf.materialize import SelectionMode
from tests._fixtures.project_builder import write_files


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "classify"])
    assert args.verbose is True
    assert args.command == "classify"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["status", "--verbose"])
    assert args.verbose is True
    assert args.command == "status"


def test_setup_defaults_to_current_directory() -> None:
    args = _build_parser().parse_args(["setup"])
    assert args.path == "."
    assert args.force is False
    assert _selection_plan(args) is None


def test_assets_without_mode_imply_manual() -> None:
    args = _build_parser().parse_args(["setup", "--assets", "core,ci", "--assets", "python"])

    plan = _selection_plan(args)

    assert plan is not None
    assert plan.mode is SelectionMode.MANUAL
    assert plan.assets == ("core", "ci", "python")


def test_cli_rejects_unknown_mode() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args(["setup", "--mode", "sometimes"])


def test_classify_json_output(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_files(tmp_path, {"main.tf": "", "variables.tf": "", "outputs.tf": ""})

    main(["classify", str(tmp_path), "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["primary"] == "terraform"
    assert payload["scores"] == {"terraform": 90}
    assert payload["groups"] == ["core", "cloud:terraform"]
    assert "security-cloud/references/terraform.md" in payload["assets"]


def test_classify_missing_path_exits(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["classify", str(tmp_path / "missing")])

    assert excinfo.value.code == 1
    assert "projconf classify failed: Project root not found" in capsys.readouterr().err


def test_classify_bad_catalog_exits(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    catalog = tmp_path / "catalog.yml"
    catalog.write_text("- nope\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["classify", str(tmp_path), "--catalog", str(catalog)])

    assert excinfo.value.code == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_setup_and_status(
    tmp_path: Path, global_root: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    project = tmp_path / "demo"
    write_files(project, {"pyproject.toml": '[project]\nname = "demo"\n', "app.py": ""})

    main(["setup", str(project), "--global-root", str(global_root)])
    summary = capsys.readouterr().out
    assert "Config setup complete for demo" in summary
    assert "agents/ commands/ hooks/" in summary

    main(["status", str(project)])
    status = capsys.readouterr().out
    assert "Config Status: demo" in status
    assert "Type: python" in status

    with pytest.raises(SystemExit) as excinfo:
        main(["setup", str(project), "--global-root", str(global_root)])
    assert excinfo.value.code == 1
    assert "--force" in capsys.readouterr().err


def test_update_all_lists_without_yes(
    tmp_path: Path, global_root: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    write_files(tmp_path, {"work/api/.claude/settings.json": "{}", "work/api/main.tf": ""})

    main(["update-all", str(tmp_path / "work"), "--global-root", str(global_root)])

    out = capsys.readouterr().out
    assert "Found 1 projects with configs" in out
    assert "--yes" in out
    assert not list((tmp_path / "work" / "api").glob(".claude.backup.*"))


def test_clean_backups(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_files(tmp_path, {"api/.claude.backup.1/settings.json": "{}"})

    main(["clean-backups", str(tmp_path), "--yes"])

    assert "Cleaned up 1 backup directories!" in capsys.readouterr().out
    assert not (tmp_path / "api" / ".claude.backup.1").exists()
