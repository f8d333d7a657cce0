"""Signal collection: evaluates catalog probes against a project directory."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Type

from ..catalog import Catalog
from ..logging import get_logger
from ..models import SignalSet, SignalValue
from .base import CollectionError, Probe
from .probes import BUILTIN_PROBES
from .python_version import detect_python_version
from .tree import DEFAULT_MAX_FILE_SIZE, ProjectTree


class SignalCollector:
    """Builds a :class:`SignalSet` for a project root from catalog signal definitions."""

    def __init__(
        self,
        catalog: Catalog,
        *,
        config_dir: str = ".claude",
        exclude_paths: Sequence[str] = (),
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        probes: Mapping[str, Type[Probe]] | None = None,
    ) -> None:
        self.catalog = catalog
        self.config_dir = config_dir
        self.exclude_paths = list(exclude_paths)
        self.max_file_size = max_file_size
        factories = dict(BUILTIN_PROBES)
        if probes:
            factories.update(probes)
        self._probes: Dict[str, Probe] = {kind: factory() for kind, factory in factories.items()}
        self.logger = get_logger("collector")

    def collect(self, root: str | Path) -> SignalSet:
        """Probe every catalog signal; only an unusable root raises."""
        root_path = resolve_project_root(root)
        tree = ProjectTree(
            root_path,
            config_dir=self.config_dir,
            exclude_paths=self.exclude_paths,
            max_file_size=self.max_file_size,
        )

        values: Dict[str, SignalValue] = {}
        failures: List[str] = []
        for name, definition in self.catalog.signals.items():
            probe = self._probes.get(definition.kind)
            if probe is None:
                raise CollectionError(root_path, f"No probe registered for signal kind '{definition.kind}'")
            try:
                values[name] = probe.probe(definition, tree)
            except CollectionError as exc:
                self.logger.warning("Signal %s treated as absent: %s", name, exc)
                values[name] = probe.absent()
                failures.append(str(exc.path))

        detected = sorted(name for name, value in values.items() if value)
        self.logger.debug("Collected %d signals for %s (%d set)", len(values), root_path, len(detected))
        return SignalSet(root=str(root_path), values=values, failures=tuple(failures))


def resolve_project_root(root: str | Path) -> Path:
    """Return the resolved project root or raise :class:`CollectionError`."""
    candidate = Path(root).expanduser()
    try:
        resolved = candidate.resolve(strict=True)
    except FileNotFoundError as exc:
        raise CollectionError(candidate, "Project root not found") from exc
    except OSError as exc:
        raise CollectionError(candidate, f"Project root is not accessible ({exc.strerror or exc})") from exc

    if not resolved.is_dir():
        raise CollectionError(resolved, "Project root is not a directory")
    try:
        with os.scandir(resolved):
            pass
    except OSError as exc:
        raise CollectionError(resolved, f"Project root is not accessible ({exc.strerror or exc})") from exc
    return resolved


__all__ = [
    "CollectionError",
    "Probe",
    "ProjectTree",
    "SignalCollector",
    "detect_python_version",
    "resolve_project_root",
]
