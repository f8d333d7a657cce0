"""Built-in probe implementations, one per catalog signal kind."""

from __future__ import annotations

import os
import stat
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Sequence

from ..catalog import SignalDefinition
from ..logging import get_logger
from ..models import SignalValue
from .base import CollectionError, Probe
from .tree import ProjectTree

logger = get_logger("collector.probes")


def _stat_mode(path: Path) -> int | None:
    try:
        return os.stat(path).st_mode
    except (FileNotFoundError, NotADirectoryError):
        return None
    except OSError as exc:
        raise CollectionError(path, f"Unable to inspect path ({exc.strerror or exc})") from exc


def _is_file(path: Path) -> bool:
    mode = _stat_mode(path)
    return mode is not None and stat.S_ISREG(mode)


def _is_dir(path: Path) -> bool:
    mode = _stat_mode(path)
    return mode is not None and stat.S_ISDIR(mode)


def _name_matches(name: str, patterns: Sequence[str]) -> bool:
    return any(fnmatchcase(name, pattern) for pattern in patterns)


class FileProbe(Probe):
    """A named regular file exists at a fixed path under the root."""

    kind = "file"

    def probe(self, definition: SignalDefinition, tree: ProjectTree) -> SignalValue:
        return _is_file(tree.root / definition.paths[0])


class DirProbe(Probe):
    """A named directory exists at a fixed path under the root."""

    kind = "dir"

    def probe(self, definition: SignalDefinition, tree: ProjectTree) -> SignalValue:
        return _is_dir(tree.root / definition.paths[0])


class DirPairProbe(Probe):
    """Both named directories exist, e.g. kustomize ``base`` + ``overlays``."""

    kind = "dir_pair"

    def probe(self, definition: SignalDefinition, tree: ProjectTree) -> SignalValue:
        return all(_is_dir(tree.root / name) for name in definition.paths)


class GlobCountProbe(Probe):
    """Number of files anywhere in the tree whose name matches a pattern."""

    kind = "glob"

    def probe(self, definition: SignalDefinition, tree: ProjectTree) -> SignalValue:
        return sum(1 for path in tree.files() if _name_matches(path.name, definition.patterns))

    def absent(self) -> SignalValue:
        return 0


class ContentProbe(Probe):
    """Some matching file contains a line matching the signal's regex.

    Stops at the first hit. Files that are not regular (FIFOs, sockets) or
    exceed the size cap are never opened; unreadable ones are skipped.
    """

    kind = "content"

    def probe(self, definition: SignalDefinition, tree: ProjectTree) -> SignalValue:
        regex = definition.regex
        if regex is None:
            return False
        for path in tree.files():
            if not _name_matches(path.name, definition.patterns):
                continue
            try:
                info = path.stat()
                if not stat.S_ISREG(info.st_mode) or info.st_size > tree.max_file_size:
                    continue
                with path.open("r", encoding="utf-8", errors="ignore") as handle:
                    for line in handle:
                        if regex.search(line):
                            logger.debug(
                                "%s matched in %s", definition.name, tree.relative(path)
                            )
                            return True
            except OSError as exc:
                logger.debug("Skipping unreadable file %s: %s", path, exc)
        return False


BUILTIN_PROBES: dict[str, type[Probe]] = {
    probe.kind: probe
    for probe in (FileProbe, DirProbe, DirPairProbe, GlobCountProbe, ContentProbe)
}


__all__ = [
    "BUILTIN_PROBES",
    "ContentProbe",
    "DirPairProbe",
    "DirProbe",
    "FileProbe",
    "GlobCountProbe",
]
