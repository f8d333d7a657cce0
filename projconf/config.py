"""Configuration loading for projconf (.projconf.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".projconf.yml"

DEFAULT_CONFIG_DIR = ".claude"
DEFAULT_LINK_DIRS = ("agents", "commands", "hooks", "plugins", "plans")
DEFAULT_COPY_FILES = {
    "settings.json": "settings.json",
    "hooks/ruff.toml": "ruff.toml",
}


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class SelectionConfig:
    """Skill selection mode and the explicit list used by manual mode."""

    mode: Optional[str] = None
    assets: List[str] = field(default_factory=list)


@dataclass
class ScanConfig:
    """Limits applied while collecting signals."""

    max_file_size: Optional[int] = None


@dataclass
class ProjectConfig:
    """Represents the settings defined in .projconf.yml."""

    root: Path
    global_root: Optional[Path] = None
    config_dir: str = DEFAULT_CONFIG_DIR
    catalog_path: Optional[Path] = None
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    exclude_paths: List[str] = field(default_factory=list)
    link_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_LINK_DIRS))
    copy_files: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_COPY_FILES))


def load_config(config_path: Path) -> ProjectConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ProjectConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = ProjectConfig(root=root)

    global_root = _as_str(data.get("global_root"))
    if global_root:
        config.global_root = _as_path(root, global_root)

    config_dir = _as_str(data.get("config_dir"))
    if config_dir:
        if "/" in config_dir or config_dir in {".", ".."}:
            raise ConfigError("config_dir must be a single directory name")
        config.config_dir = config_dir

    catalog = _as_str(data.get("catalog"))
    if catalog:
        config.catalog_path = _as_path(root, catalog)

    selection_data = _as_dict(data.get("selection"))
    if selection_data:
        config.selection = SelectionConfig(
            mode=_as_str(selection_data.get("mode")),
            assets=_as_str_list(selection_data.get("assets")),
        )

    scan_data = _as_dict(data.get("scan"))
    if scan_data:
        config.scan = ScanConfig(max_file_size=_as_int(scan_data.get("max_file_size")))

    config.exclude_paths = _as_str_list(data.get("exclude_paths"))

    if "link_dirs" in data:
        config.link_dirs = _as_str_list(data.get("link_dirs"))

    copy_data = data.get("copy_files")
    if copy_data is not None:
        config.copy_files = _as_copy_map(copy_data)

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_path(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else (root / path)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


def _as_copy_map(value: Any) -> Dict[str, str]:
    if isinstance(value, dict):
        return {str(source): str(target) for source, target in value.items()}
    return {item: Path(item).name for item in _as_str_list(value)}


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_CONFIG_DIR",
    "ProjectConfig",
    "ScanConfig",
    "SelectionConfig",
    "load_config",
]
