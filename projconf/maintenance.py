"""Discovery of configured projects, backup cleanup and status inspection."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from .catalog import CatalogError
from .collector import CollectionError
from .config import DEFAULT_COPY_FILES, DEFAULT_LINK_DIRS, ConfigError
from .logging import get_logger
from .materialize import SelectionPlan
from .provision import (
    SETUP_INFO_FILENAME,
    SKILLS_DIRNAME,
    ProvisionError,
    Provisioner,
    SetupOutcome,
)

logger = get_logger("maintenance")

DEFAULT_MAX_DEPTH = 5


@dataclass
class BackupEntry:
    """A ``<config_dir>.backup.<stamp>`` directory found during a search."""

    path: Path
    size: int

    @property
    def project(self) -> str:
        return self.path.parent.name


@dataclass
class ConfigStatus:
    """Current state of a project's config directory."""

    project: str
    config_path: Path
    links: Dict[str, Optional[str]] = field(default_factory=dict)
    files: Dict[str, bool] = field(default_factory=dict)
    setup_info: Dict[str, str] = field(default_factory=dict)
    skill_files: int = 0


def find_configured_projects(
    search_dir: Path,
    *,
    config_dir: str = ".claude",
    global_root: Path | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[Path]:
    """Return project roots under ``search_dir`` that contain a config directory.

    The directory holding the global config itself is never reported.
    """
    if not search_dir.is_dir():
        raise NotADirectoryError(f"Directory not found: {search_dir}")

    excluded = global_root.expanduser().resolve().parent if global_root else None
    projects: List[Path] = []
    for directory in _walk_dirs(search_dir, max_depth, config_dir):
        if directory.name != config_dir:
            continue
        project = directory.parent
        if excluded is not None and project.resolve() == excluded:
            continue
        projects.append(project)
    return sorted(projects)


def find_backups(search_dir: Path, *, config_dir: str = ".claude") -> List[BackupEntry]:
    """Return every config backup directory under ``search_dir``, sorted by path."""
    if not search_dir.is_dir():
        raise NotADirectoryError(f"Directory not found: {search_dir}")

    prefix = f"{config_dir}.backup."
    backups: List[BackupEntry] = []
    for dirpath, dirnames, _ in os.walk(search_dir):
        matched = [name for name in dirnames if name.startswith(prefix)]
        for name in matched:
            path = Path(dirpath) / name
            backups.append(BackupEntry(path=path, size=_tree_size(path)))
        # Backups and live config dirs are leaves for this search.
        dirnames[:] = [name for name in dirnames if name not in matched and name != config_dir]
    return sorted(backups, key=lambda entry: str(entry.path))


def remove_backups(backups: Sequence[BackupEntry]) -> int:
    """Delete the given backup directories and return how many were removed."""
    removed = 0
    for entry in backups:
        logger.info("Removing %s/%s", entry.project, entry.path.name)
        shutil.rmtree(entry.path)
        removed += 1
    return removed


@dataclass
class UpdateResult:
    """Outcome of re-running setup for one configured project."""

    project: Path
    outcome: Optional[SetupOutcome] = None
    error: Optional[str] = None


def update_projects(
    projects: Sequence[Path],
    provisioner: Provisioner,
    *,
    global_root: Path | None = None,
    plan: SelectionPlan | None = None,
) -> List[UpdateResult]:
    """Replace the config directory of every project, continuing past failures."""
    results: List[UpdateResult] = []
    for project in projects:
        logger.info("Updating %s", project.name)
        try:
            outcome = provisioner.run_setup(
                project, global_root=global_root, plan=plan, replace=True
            )
        except (CollectionError, ConfigError, CatalogError, ProvisionError, OSError) as exc:
            logger.error("Update failed for %s: %s", project.name, exc)
            results.append(UpdateResult(project=project, error=str(exc)))
            continue
        results.append(UpdateResult(project=project, outcome=outcome))
    return results


def read_status(
    project_root: Path,
    *,
    config_dir: str = ".claude",
    link_dirs: Sequence[str] = DEFAULT_LINK_DIRS,
    copied_files: Sequence[str] | None = None,
) -> ConfigStatus:
    """Inspect ``project_root/config_dir``; raises FileNotFoundError when absent."""
    config_path = project_root / config_dir
    if not config_path.is_dir():
        raise FileNotFoundError(
            f"No {config_dir} directory found in {project_root.name}. Run 'projconf setup' to initialize."
        )

    if copied_files is None:
        copied_files = sorted(set(DEFAULT_COPY_FILES.values()))

    status = ConfigStatus(project=project_root.name, config_path=config_path)
    for name in link_dirs:
        item = config_path / name
        if item.is_symlink():
            target = Path(os.readlink(item))
            status.links[name] = f"{target.parent.name}/{target.name}"
        else:
            status.links[name] = None
    for name in copied_files:
        status.files[name] = (config_path / name).is_file()
    skills_path = config_path / SKILLS_DIRNAME
    if skills_path.is_dir():
        status.skill_files = sum(1 for path in skills_path.rglob("*.md") if path.is_file())
    status.setup_info = parse_setup_info(config_path / SETUP_INFO_FILENAME)
    return status


def parse_setup_info(path: Path) -> Dict[str, str]:
    """Parse the ``# Key: value`` lines of a setup record."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}

    info: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.startswith("# ") or ":" not in line:
            continue
        key, value = line[2:].split(":", 1)
        info[key.strip()] = value.strip()
    return info


def _walk_dirs(root: Path, max_depth: int, config_dir: str) -> Iterator[Path]:
    root_depth = len(root.parts)
    for dirpath, dirnames, _ in os.walk(root):
        current = Path(dirpath)
        depth = len(current.parts) - root_depth
        if depth >= max_depth:
            dirnames[:] = []
        for name in sorted(dirnames):
            yield current / name
        # Never descend into config dirs or their backups.
        dirnames[:] = [name for name in dirnames if not name.startswith(config_dir)]


def _tree_size(path: Path) -> int:
    total = 0
    for dirpath, _, filenames in os.walk(path):
        for filename in filenames:
            try:
                total += (Path(dirpath) / filename).lstat().st_size
            except OSError:
                continue
    return total


__all__ = [
    "BackupEntry",
    "ConfigStatus",
    "find_backups",
    "find_configured_projects",
    "parse_setup_info",
    "read_status",
    "remove_backups",
    "update_projects",
    "UpdateResult",
]
