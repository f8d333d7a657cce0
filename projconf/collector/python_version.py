"""Python version detection from pyproject.toml and .python-version."""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any, Optional

_VERSION_PATTERN = re.compile(r"3\.[0-9]+")


def detect_python_version(root: Path) -> Optional[str]:
    """Return the minimum ``3.N`` version a project declares, if any."""
    version = _from_pyproject(root / "pyproject.toml")
    if version is None:
        version = _from_version_file(root / ".python-version")
    return version


def _from_pyproject(path: Path) -> Optional[str]:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
        return None

    candidates: list[Any] = []
    project = data.get("project")
    if isinstance(project, dict):
        candidates.append(project.get("requires-python"))

    tool = data.get("tool")
    poetry = tool.get("poetry", {}) if isinstance(tool, dict) else {}
    if isinstance(poetry, dict):
        dependencies = poetry.get("dependencies", {})
        if isinstance(dependencies, dict):
            candidates.append(dependencies.get("python"))

    for candidate in candidates:
        if isinstance(candidate, str):
            match = _VERSION_PATTERN.search(candidate)
            if match:
                return match.group(0)
    return None


def _from_version_file(path: Path) -> Optional[str]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None
    match = _VERSION_PATTERN.search(text)
    return match.group(0) if match else None


__all__ = ["detect_python_version"]
