"""Lazy, memoised walk over the files of a project."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence

from ..logging import get_logger

_EXCLUDED_DIRS = {
    "node_modules",
    "__pycache__",
    "venv",
    "site-packages",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
    ".projconf.yml",
}

DEFAULT_MAX_FILE_SIZE = 1024 * 1024

logger = get_logger("collector.tree")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .projconf.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def parse_gitignore(path: Path) -> List[IgnoreRule]:
    try:
        text = path.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return []

    rules: List[IgnoreRule] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


class ProjectTree:
    """Files under a project root, walked on first use and replayed afterwards.

    Hidden directories are never entered, so the assistant's own config
    directory and its backups are not mistaken for project evidence.
    """

    def __init__(
        self,
        root: Path,
        *,
        config_dir: str = ".claude",
        exclude_paths: Sequence[str] = (),
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ) -> None:
        self.root = root
        self.config_dir = config_dir
        self.max_file_size = max_file_size
        self._rules = parse_gitignore(root / ".gitignore")
        for pattern in exclude_paths:
            rule = build_ignore_rule(pattern)
            if rule is not None:
                self._rules.append(rule)
        self._seen: List[Path] = []
        self._walker: Iterator[Path] | None = None
        self._complete = False

    def files(self) -> Iterator[Path]:
        """Yield every visible file; safe to abandon early and to call again."""
        index = 0
        while True:
            if index < len(self._seen):
                yield self._seen[index]
                index += 1
                continue
            if self._complete:
                return
            if self._walker is None:
                self._walker = self._walk()
            try:
                path = next(self._walker)
            except StopIteration:
                self._complete = True
                return
            self._seen.append(path)

    def relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def _skip_dir(self, name: str) -> bool:
        if name.startswith(".") or name in _EXCLUDED_DIRS:
            return True
        return name == self.config_dir or name.startswith(f"{self.config_dir}.backup.")

    def _walk(self) -> Iterator[Path]:
        def _on_error(exc: OSError) -> None:
            logger.debug("Skipping unreadable directory %s: %s", exc.filename, exc.strerror)

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_on_error):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(self.root).as_posix() if current_dir != self.root else ""

            kept = []
            for name in sorted(dirnames):
                if self._skip_dir(name):
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _should_ignore(rel_path, True, self._rules):
                    continue
                kept.append(name)
            dirnames[:] = kept

            for filename in sorted(filenames):
                if filename in _EXCLUDED_FILES:
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, self._rules):
                    continue
                yield current_dir / filename


__all__ = [
    "DEFAULT_MAX_FILE_SIZE",
    "IgnoreRule",
    "ProjectTree",
    "build_ignore_rule",
    "parse_gitignore",
]
