"""End-to-end setup runs against a throwaway global config tree."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from projconf.catalog import CatalogError
from projconf.collector import CollectionError
from projconf.materialize import SelectionMode, SelectionPlan
from projconf.provision import (
    SETUP_INFO_FILENAME,
    ProvisionError,
    Provisioner,
    ensure_gitignore_entry,
)
from tests._fixtures.project_builder import ProjectBuilder


def _fixed_clock() -> datetime:
    return datetime(2024, 1, 2, 3, 4, 5)


def _python_project(project: ProjectBuilder) -> Path:
    project.write(
        {
            "pyproject.toml": '[project]\nname = "demo"\nrequires-python = ">=3.11"\n',
            "app.py": "print('hello')\n",
            "Dockerfile": "FROM python:3.11-slim\n",
        }
    )
    return project.path()


def test_classify_returns_groups_and_assets(project: ProjectBuilder) -> None:
    root = _python_project(project)

    run = Provisioner().classify(root)

    assert run.root == root.resolve()
    assert run.result.label == "python (+ docker)"
    assert run.result.python_version == "3.11"
    assert run.groups == ("core", "language:python")
    assert "security-lang/references/python.md" in run.assets


def test_classify_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(CollectionError):
        Provisioner().classify(tmp_path / "missing")


def test_classify_with_broken_catalog_raises(project: ProjectBuilder, tmp_path: Path) -> None:
    catalog = tmp_path / "catalog.yml"
    catalog.write_text("signals: {}\n", encoding="utf-8")

    with pytest.raises(CatalogError):
        Provisioner().classify(project.path(), catalog_path=catalog)


def test_run_setup_provisions_config_dir(project: ProjectBuilder, global_root: Path) -> None:
    root = _python_project(project)

    outcome = Provisioner(clock=_fixed_clock).run_setup(root, global_root=global_root)

    config_path = root / ".claude"
    assert outcome.config_path == config_path.resolve()
    assert outcome.linked == ["agents", "commands", "hooks"]
    assert (config_path / "agents").is_symlink()
    assert not (config_path / "plugins").exists()
    assert outcome.copied_files == ["settings.json", "ruff.toml"]
    assert (config_path / "todos").is_dir()
    assert (config_path / "shell-snapshots").is_dir()

    assert outcome.ruff_target == "py311"
    ruff = (config_path / "ruff.toml").read_text(encoding="utf-8")
    assert 'target-version = "py311"' in ruff
    shared_ruff = (global_root / "hooks" / "ruff.toml").read_text(encoding="utf-8")
    assert 'target-version = "py39"' in shared_ruff

    skills = config_path / "skills"
    assert (skills / "security-foundations" / "references" / "owasp.md").is_file()
    assert (skills / "security-lang" / "references" / "python.md").is_file()
    assert not (skills / "security-cloud").exists()
    assert outcome.skill_files == 6
    assert outcome.estimated_tokens == 6000

    assert outcome.gitignore_action == "created"
    assert (root / ".gitignore").read_text(encoding="utf-8") == ".claude\n"

    info = (config_path / SETUP_INFO_FILENAME).read_text(encoding="utf-8")
    assert "# Date: 2024-01-02 03:04:05" in info
    assert "# Type: python (+ docker)" in info
    assert "# Python: 3.11" in info
    assert "# Mode: auto" in info


def test_run_setup_refuses_existing_config(project: ProjectBuilder, global_root: Path) -> None:
    root = _python_project(project)
    provisioner = Provisioner(clock=_fixed_clock)
    provisioner.run_setup(root, global_root=global_root)

    with pytest.raises(FileExistsError, match="--force"):
        provisioner.run_setup(root, global_root=global_root)


def test_run_setup_replace_backs_up_previous_config(
    project: ProjectBuilder, global_root: Path
) -> None:
    root = _python_project(project)
    provisioner = Provisioner(clock=_fixed_clock)
    provisioner.run_setup(root, global_root=global_root)
    (root / ".claude" / "notes.md").write_text("keep me\n", encoding="utf-8")

    outcome = provisioner.run_setup(root, global_root=global_root, replace=True)

    assert outcome.backup_path is not None
    assert outcome.backup_path.name.startswith(".claude.backup.")
    assert (outcome.backup_path / "notes.md").read_text(encoding="utf-8") == "keep me\n"
    assert not (root / ".claude" / "notes.md").exists()
    assert outcome.gitignore_action == "unchanged"


def test_backup_contents_do_not_change_classification(
    project: ProjectBuilder, global_root: Path
) -> None:
    root = _python_project(project)
    provisioner = Provisioner(clock=_fixed_clock)
    first = provisioner.run_setup(root, global_root=global_root)

    second = provisioner.run_setup(root, global_root=global_root, replace=True)

    assert second.classification == first.classification


def test_run_setup_full_and_manual_modes(project: ProjectBuilder, global_root: Path) -> None:
    root = _python_project(project)
    provisioner = Provisioner(clock=_fixed_clock)

    full = provisioner.run_setup(
        root, global_root=global_root, plan=SelectionPlan(SelectionMode.FULL)
    )
    assert (root / ".claude" / "skills" / "security-cloud" / "references" / "cicd.md").is_file()
    assert "security-cloud/references/gcp-iam.md" in full.report.missing

    manual = provisioner.run_setup(
        root,
        global_root=global_root,
        plan=SelectionPlan(SelectionMode.MANUAL, ("ci",)),
        replace=True,
    )
    assert manual.skill_files == 2
    assert manual.report.missing == []
    info = (root / ".claude" / SETUP_INFO_FILENAME).read_text(encoding="utf-8")
    assert "# Mode: manual" in info


def test_run_setup_reads_selection_from_project_config(
    project: ProjectBuilder, global_root: Path
) -> None:
    root = _python_project(project)
    project.write(
        {
            ".projconf.yml": f"global_root: {global_root}\nselection:\n  mode: manual\n  assets: [ci]\n",
        }
    )

    outcome = Provisioner(clock=_fixed_clock).run_setup(root)

    assert outcome.plan.mode is SelectionMode.MANUAL
    assert outcome.global_root == global_root.resolve()
    assert outcome.skill_files == 2


def test_run_setup_requires_global_root(project: ProjectBuilder, tmp_path: Path) -> None:
    with pytest.raises(ProvisionError, match="No global config root"):
        Provisioner().run_setup(project.path())

    with pytest.raises(ProvisionError, match="not found"):
        Provisioner().run_setup(project.path(), global_root=tmp_path / "nowhere")


def test_ensure_gitignore_entry(tmp_path: Path) -> None:
    gitignore = tmp_path / ".gitignore"
    gitignore.write_text("*.pyc", encoding="utf-8")

    assert ensure_gitignore_entry(tmp_path, ".claude") == "updated"
    assert gitignore.read_text(encoding="utf-8") == "*.pyc\n.claude\n"
    assert ensure_gitignore_entry(tmp_path, ".claude") == "unchanged"


def test_broken_catalog_leaves_existing_config_untouched(
    project: ProjectBuilder, global_root: Path, tmp_path: Path
) -> None:
    root = _python_project(project)
    project.write({".claude/settings.json": '{"mine": true}\n'})
    catalog = tmp_path / "broken-catalog.yml"
    catalog.write_text("signals: {}\n", encoding="utf-8")

    with pytest.raises(CatalogError):
        Provisioner(clock=_fixed_clock).run_setup(
            root, global_root=global_root, replace=True, catalog_path=catalog
        )

    assert sorted(path.name for path in root.iterdir() if path.name.startswith(".claude")) == [
        ".claude"
    ]
    assert [path.name for path in (root / ".claude").iterdir()] == ["settings.json"]
    assert (root / ".claude" / "settings.json").read_text(encoding="utf-8") == '{"mine": true}\n'
    assert not (root / ".gitignore").exists()


def test_broken_catalog_fails_before_creating_config(
    project: ProjectBuilder, global_root: Path, tmp_path: Path
) -> None:
    root = _python_project(project)
    catalog = tmp_path / "broken-catalog.yml"
    catalog.write_text("- not a mapping\n", encoding="utf-8")

    with pytest.raises(CatalogError):
        Provisioner().run_setup(root, global_root=global_root, catalog_path=catalog)

    assert not (root / ".claude").exists()
