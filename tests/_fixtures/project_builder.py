"""Helper utilities for constructing throwaway projects and global config trees."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Iterable, Mapping

from projconf.catalog import Catalog, load_catalog
from projconf.classifier import Classifier
from projconf.collector import SignalCollector
from projconf.models import ClassificationResult, SignalSet

GLOBAL_SKILL_FILES = (
    "security-foundations/SKILL.md",
    "security-foundations/references/owasp.md",
    "security-services/SKILL.md",
    "security-audit/SKILL.md",
    "security-lang/SKILL.md",
    "security-lang/references/python.md",
    "security-lang/references/nodejs.md",
    "security-cloud/SKILL.md",
    "security-cloud/references/terraform.md",
    "security-cloud/references/kubernetes.md",
    "security-cloud/references/cicd.md",
    "security-cloud/references/aws-iam.md",
)


def write_files(root: Path, files: Mapping[str, str]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")


class ProjectBuilder:
    """Writes files into a project directory and runs collection over it."""

    def __init__(self, tmp_path: Path, name: str = "project") -> None:
        self.root = tmp_path / name
        self.root.mkdir()
        self.catalog: Catalog = load_catalog()

    def write(self, files: Mapping[str, str]) -> "ProjectBuilder":
        write_files(self.root, files)
        return self

    def mkdir(self, *directories: str) -> "ProjectBuilder":
        for directory in directories:
            (self.root / directory).mkdir(parents=True, exist_ok=True)
        return self

    def collect(self, **kwargs: object) -> SignalSet:
        return SignalCollector(self.catalog, **kwargs).collect(self.root)  # type: ignore[arg-type]

    def classify(self) -> ClassificationResult:
        return Classifier(self.catalog).classify(self.collect())

    def path(self) -> Path:
        return self.root


def build_global_root(tmp_path: Path, skill_files: Iterable[str] = GLOBAL_SKILL_FILES) -> Path:
    """Create a shared config tree with skills, linkable dirs and copyable files."""
    root = tmp_path / "global"
    files = {f"skills/{name}": f"# {name}\n" for name in skill_files}
    files.update(
        {
            "agents/reviewer.md": "# reviewer\n",
            "commands/audit.md": "# audit\n",
            "hooks/ruff.toml": 'target-version = "py39"\nline-length = 100\n',
            "settings.json": '{"permissions": {}}\n',
        }
    )
    write_files(root, files)
    return root


__all__ = ["GLOBAL_SKILL_FILES", "ProjectBuilder", "build_global_root", "write_files"]
