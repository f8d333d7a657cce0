"""Selection modes and copying of selected assets into a project config tree."""

from __future__ import annotations

import filecmp
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from .catalog import Catalog
from .logging import get_logger
from .models import ClassificationResult
from .selector import AssetSelector

logger = get_logger("materialize")


class SelectionMode(str, Enum):
    """How the asset set handed to the materializer is chosen."""

    AUTO = "auto"
    MANUAL = "manual"
    FULL = "full"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SelectionMode":
        if value is None or not value.strip():
            return cls.AUTO
        lowered = value.strip().lower()
        for mode in cls:
            if lowered in (mode.value, mode.value[0]):
                return mode
        raise ValueError(f"Unknown selection mode '{value}' (expected auto, manual or full)")


@dataclass(frozen=True)
class SelectionPlan:
    """A selection mode plus the explicit identifiers manual mode uses."""

    mode: SelectionMode = SelectionMode.AUTO
    assets: Tuple[str, ...] = ()

    def resolve(self, catalog: Catalog, result: ClassificationResult) -> frozenset[str]:
        if self.mode is SelectionMode.FULL:
            return catalog.assets.all_assets()
        if self.mode is SelectionMode.MANUAL:
            return catalog.assets.expand(self.assets)
        return AssetSelector(catalog).select(result)


@dataclass
class MaterializeReport:
    """Files written, files already up to date, and identifiers with no source."""

    copied: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.copied) + len(self.unchanged)


class Materializer:
    """Copies asset identifiers from a source tree into a destination tree.

    An identifier is a path relative to ``source_root``; a directory copies
    every file beneath it. Existing files with identical content are left as is.
    """

    def __init__(self, source_root: Path, dest_root: Path) -> None:
        self.source_root = source_root
        self.dest_root = dest_root

    def materialize(self, assets: Iterable[str]) -> MaterializeReport:
        report = MaterializeReport()
        for asset in sorted(set(assets)):
            source = self._source_path(asset)
            if source is None or not source.exists():
                logger.info("Asset %s not found under %s; skipping", asset, self.source_root)
                report.missing.append(asset)
                continue
            if source.is_dir():
                for path in sorted(source.rglob("*")):
                    if path.is_file():
                        self._copy_file(path, report)
            else:
                self._copy_file(source, report)
        return report

    def _source_path(self, asset: str) -> Optional[Path]:
        candidate = (self.source_root / asset).resolve()
        root = self.source_root.resolve()
        if candidate != root and root not in candidate.parents:
            logger.warning("Asset %s escapes the asset root; ignoring", asset)
            return None
        return self.source_root / asset

    def _copy_file(self, source: Path, report: MaterializeReport) -> None:
        relative = source.relative_to(self.source_root).as_posix()
        target = self.dest_root / relative
        if target.is_file() and filecmp.cmp(source, target, shallow=False):
            report.unchanged.append(relative)
            return
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        report.copied.append(relative)
        logger.debug("Copied %s", relative)


def parse_asset_list(values: Sequence[str] | None) -> Tuple[str, ...]:
    """Split comma separated CLI/config values into identifiers."""
    items: List[str] = []
    for value in values or ():
        items.extend(part.strip() for part in value.split(",") if part.strip())
    return tuple(items)


__all__ = [
    "MaterializeReport",
    "Materializer",
    "SelectionMode",
    "SelectionPlan",
    "parse_asset_list",
]
