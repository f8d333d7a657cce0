"""Pipeline orchestration for classify and setup flows."""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .catalog import Catalog, load_catalog
from .classifier import Classifier
from .collector import SignalCollector, detect_python_version, resolve_project_root
from .collector.tree import DEFAULT_MAX_FILE_SIZE
from .config import ProjectConfig, load_config
from .logging import get_logger
from .materialize import MaterializeReport, Materializer, SelectionMode, SelectionPlan
from .models import ClassificationResult, SignalSet
from .report import ReportRenderer
from .selector import AssetSelector

SETUP_INFO_FILENAME = ".setup-info"
SKILLS_DIRNAME = "skills"
PROJECT_DIRS = ("todos", "shell-snapshots")
TOKENS_PER_SKILL_FILE = 1000

_RUFF_TARGET = re.compile(r'target-version\s*=\s*"py[0-9]+"')


class ProvisionError(RuntimeError):
    """Raised when a project config directory cannot be provisioned."""


@dataclass(frozen=True)
class ClassificationRun:
    """Signals, classification and automatic selection for one project."""

    root: Path
    signals: SignalSet
    result: ClassificationResult
    groups: Tuple[str, ...]
    assets: frozenset[str]
    catalog: Catalog


@dataclass
class SetupOutcome:
    """Everything a setup run produced, for summaries and metadata."""

    project_root: Path
    config_path: Path
    global_root: Path
    classification: ClassificationResult
    plan: SelectionPlan
    selected: frozenset[str]
    report: MaterializeReport
    backup_path: Optional[Path] = None
    linked: List[str] = field(default_factory=list)
    copied_files: List[str] = field(default_factory=list)
    ruff_target: Optional[str] = None
    gitignore_action: str = "unchanged"
    skill_files: int = 0
    skill_bytes: int = 0

    @property
    def estimated_tokens(self) -> int:
        return self.skill_files * TOKENS_PER_SKILL_FILE


class Provisioner:
    """Coordinates signal collection, classification, selection and materialization."""

    def __init__(
        self,
        *,
        renderer: ReportRenderer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.renderer = renderer or ReportRenderer()
        self._clock = clock or datetime.now
        self.logger = get_logger("provision")

    def classify(
        self,
        path: str | Path,
        *,
        catalog_path: Path | None = None,
        config: ProjectConfig | None = None,
        catalog: Catalog | None = None,
    ) -> ClassificationRun:
        """Collect signals for ``path`` and classify it against the catalog.

        An already loaded ``catalog`` takes precedence over ``catalog_path``.
        """
        root = resolve_project_root(path)
        config = config or load_config(root)
        if catalog is None:
            catalog = load_catalog(catalog_path or config.catalog_path)

        collector = SignalCollector(
            catalog,
            config_dir=config.config_dir,
            exclude_paths=config.exclude_paths,
            max_file_size=config.scan.max_file_size or DEFAULT_MAX_FILE_SIZE,
        )
        signals = collector.collect(root)
        result = Classifier(catalog).classify(
            signals, python_version=detect_python_version(root)
        )
        selector = AssetSelector(catalog)
        return ClassificationRun(
            root=root,
            signals=signals,
            result=result,
            groups=selector.select_groups(result),
            assets=selector.select(result),
            catalog=catalog,
        )

    def run_setup(
        self,
        path: str | Path,
        *,
        global_root: Path | None = None,
        plan: SelectionPlan | None = None,
        replace: bool = False,
        catalog_path: Path | None = None,
    ) -> SetupOutcome:
        """Create (or replace) the project's config directory."""
        root = resolve_project_root(path)
        config = load_config(root)
        global_path = self._resolve_global_root(global_root or config.global_root)
        # A malformed catalog must fail before the existing config is touched.
        catalog = load_catalog(catalog_path or config.catalog_path)
        plan = plan or SelectionPlan(
            mode=SelectionMode.parse(config.selection.mode),
            assets=tuple(config.selection.assets),
        )
        self.logger.info("Setting up %s from %s", root, global_path)

        config_path = root / config.config_dir
        backup_path = None
        if config_path.exists() or config_path.is_symlink():
            if not replace:
                raise FileExistsError(
                    f"{config.config_dir} already exists in {root}. Re-run with --force to replace it."
                )
            backup_path = self._backup(config_path)
            self.logger.info("Backed up existing %s to %s", config.config_dir, backup_path.name)

        config_path.mkdir(parents=True)
        linked = self._link_shared_dirs(global_path, config_path, config.link_dirs)
        copied_files = self._copy_config_files(global_path, config_path, config)
        for name in PROJECT_DIRS:
            (config_path / name).mkdir(exist_ok=True)

        run = self.classify(root, config=config, catalog=catalog)
        self.logger.info("Project type: %s", run.result.label)

        selected = plan.resolve(run.catalog, run.result)
        skills_path = config_path / SKILLS_DIRNAME
        skills_path.mkdir(exist_ok=True)
        report = Materializer(global_path / SKILLS_DIRNAME, skills_path).materialize(selected)
        self.logger.info(
            "Materialized %d asset files (%d missing identifiers)",
            report.file_count,
            len(report.missing),
        )

        outcome = SetupOutcome(
            project_root=root,
            config_path=config_path,
            global_root=global_path,
            classification=run.result,
            plan=plan,
            selected=selected,
            report=report,
            backup_path=backup_path,
            linked=linked,
            copied_files=copied_files,
        )
        outcome.ruff_target = self._customize_ruff(config_path, run.result.python_version)
        outcome.gitignore_action = ensure_gitignore_entry(root, config.config_dir)
        outcome.skill_files, outcome.skill_bytes = _skill_stats(skills_path)

        info = self.renderer.setup_info(outcome, date=self._clock().strftime("%Y-%m-%d %H:%M:%S"))
        (config_path / SETUP_INFO_FILENAME).write_text(info, encoding="utf-8")
        return outcome

    def _resolve_global_root(self, global_root: Path | None) -> Path:
        if global_root is None:
            raise ProvisionError(
                "No global config root given. Pass --global-root or set global_root in .projconf.yml."
            )
        resolved = global_root.expanduser().resolve()
        if not resolved.is_dir():
            raise ProvisionError(f"Global config not found at {resolved}")
        return resolved

    def _backup(self, config_path: Path) -> Path:
        stamp = int(self._clock().timestamp())
        candidate = config_path.with_name(f"{config_path.name}.backup.{stamp}")
        while candidate.exists():
            stamp += 1
            candidate = config_path.with_name(f"{config_path.name}.backup.{stamp}")
        config_path.rename(candidate)
        return candidate

    def _link_shared_dirs(
        self, global_root: Path, config_path: Path, names: List[str]
    ) -> List[str]:
        linked: List[str] = []
        for name in names:
            source = global_root / name
            if not source.is_dir():
                self.logger.debug("Shared directory %s not present; not linking", name)
                continue
            (config_path / name).symlink_to(source, target_is_directory=True)
            linked.append(name)
        return linked

    def _copy_config_files(
        self, global_root: Path, config_path: Path, config: ProjectConfig
    ) -> List[str]:
        copied: List[str] = []
        for source_name, target_name in config.copy_files.items():
            source = global_root / source_name
            if not source.is_file():
                continue
            target = config_path / target_name
            if target.is_symlink() or target.exists():
                # A linked shared directory already provides this path.
                self.logger.debug("Not copying %s over existing %s", source_name, target_name)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            copied.append(target_name)
        return copied

    def _customize_ruff(self, config_path: Path, python_version: str | None) -> str | None:
        ruff_path = config_path / "ruff.toml"
        if not python_version or not ruff_path.is_file() or ruff_path.is_symlink():
            return None
        target = "py" + python_version.replace(".", "")
        text = ruff_path.read_text(encoding="utf-8")
        updated, count = _RUFF_TARGET.subn(f'target-version = "{target}"', text)
        if count == 0:
            return None
        ruff_path.write_text(updated, encoding="utf-8")
        self.logger.info("Set Ruff target to Python %s", python_version)
        return target


def ensure_gitignore_entry(root: Path, entry: str) -> str:
    """Make sure ``entry`` is listed in the project's .gitignore."""
    gitignore = root / ".gitignore"
    if not gitignore.exists():
        gitignore.write_text(f"{entry}\n", encoding="utf-8")
        return "created"

    text = gitignore.read_text(encoding="utf-8")
    if entry in (line.strip() for line in text.splitlines()):
        return "unchanged"
    prefix = "" if not text or text.endswith("\n") else "\n"
    with gitignore.open("a", encoding="utf-8") as handle:
        handle.write(f"{prefix}{entry}\n")
    return "updated"


def _skill_stats(skills_path: Path) -> Tuple[int, int]:
    count = 0
    total = 0
    for path in skills_path.rglob("*"):
        if not path.is_file():
            continue
        total += path.stat().st_size
        if path.suffix == ".md":
            count += 1
    return count, total


__all__ = [
    "ClassificationRun",
    "ProvisionError",
    "Provisioner",
    "SETUP_INFO_FILENAME",
    "SetupOutcome",
    "ensure_gitignore_entry",
]
