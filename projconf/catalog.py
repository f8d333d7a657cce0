"""Detection and asset catalog loading (default_catalog.yml)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Sequence, Tuple

import yaml

DEFAULT_CATALOG_PATH = Path(__file__).with_name("default_catalog.yml")

SIGNAL_KINDS = ("file", "dir", "dir_pair", "glob", "content")

_ALL_ASSETS = "all"
_ALL_LANGUAGES = "all-languages"
_ALL_CLOUDS = "all-clouds"


class CatalogError(RuntimeError):
    """Raised when a detection or asset catalog is malformed."""


@dataclass(frozen=True)
class SignalDefinition:
    """One filesystem probe declared by the catalog."""

    name: str
    kind: str
    paths: Tuple[str, ...] = ()
    patterns: Tuple[str, ...] = ()
    regex: Optional[Pattern[str]] = None


@dataclass(frozen=True)
class CategoryDefinition:
    """A project type and the points each of its signals contributes."""

    name: str
    weights: Tuple[Tuple[str, int], ...]

    @property
    def signal_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.weights)


@dataclass(frozen=True)
class AssetCatalog:
    """Named asset groups plus the lookup tables the selector resolves through."""

    groups: Mapping[str, Tuple[str, ...]]
    core_group: str
    ci_group: str
    language_groups: Mapping[str, str]
    provider_groups: Mapping[str, str]
    aliases: Mapping[str, str] = field(default_factory=dict)

    def group(self, name: str) -> Optional[Tuple[str, ...]]:
        return self.groups.get(name)

    def canonical(self, name: str) -> str:
        key = name.strip().lower()
        return self.aliases.get(key, key)

    def provider_group(self, provider: str) -> Optional[str]:
        return self.provider_groups.get(self.canonical(provider))

    def language_group(self, language: str) -> Optional[str]:
        return self.language_groups.get(self.canonical(language))

    def all_assets(self) -> frozenset[str]:
        assets: set[str] = set()
        for members in self.groups.values():
            assets.update(members)
        return frozenset(assets)

    def expand(self, names: Iterable[str]) -> frozenset[str]:
        """Resolve group names, language/provider names and raw identifiers.

        Unknown names are kept verbatim as asset identifiers.
        """
        assets: set[str] = set()
        for raw in names:
            name = raw.strip()
            if not name:
                continue
            key = self.canonical(name)
            if key == _ALL_ASSETS:
                assets.update(self.all_assets())
            elif key == _ALL_LANGUAGES:
                for group_name in self.language_groups.values():
                    assets.update(self.groups.get(group_name, ()))
            elif key == _ALL_CLOUDS:
                for group_name in self.provider_groups.values():
                    assets.update(self.groups.get(group_name, ()))
                assets.update(self.groups.get(self.ci_group, ()))
            elif key in self.groups:
                assets.update(self.groups[key])
            elif key in self.provider_groups:
                assets.update(self.groups.get(self.provider_groups[key], ()))
            elif key in self.language_groups:
                assets.update(self.groups.get(self.language_groups[key], ()))
            else:
                assets.add(name)
        return frozenset(assets)


@dataclass(frozen=True)
class Catalog:
    """Validated detection catalog; categories are stored in priority order."""

    signals: Mapping[str, SignalDefinition]
    categories: Tuple[CategoryDefinition, ...]
    secondary_threshold: int
    languages: Mapping[str, Tuple[str, ...]]
    providers: Mapping[str, Tuple[str, ...]]
    ci_signals: Tuple[str, ...]
    assets: AssetCatalog
    source: Optional[Path] = None

    @property
    def category_names(self) -> Tuple[str, ...]:
        return tuple(category.name for category in self.categories)

    def category(self, name: str) -> CategoryDefinition:
        for category in self.categories:
            if category.name == name:
                return category
        raise KeyError(name)


def load_catalog(path: Path | None = None) -> Catalog:
    """Load and validate a catalog file, defaulting to the packaged catalog."""
    catalog_path = (path or DEFAULT_CATALOG_PATH).expanduser()
    try:
        text = catalog_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"Unable to read catalog {catalog_path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CatalogError(f"Failed to parse {catalog_path.name}: {exc}") from exc
    return parse_catalog(data, source=catalog_path)


def parse_catalog(data: Any, *, source: Path | None = None) -> Catalog:
    """Build a :class:`Catalog` from already-parsed YAML data."""
    if not isinstance(data, dict):
        raise CatalogError("Catalog must contain a mapping at the root")

    signals = _parse_signals(data.get("signals"))
    categories = _parse_categories(data.get("categories"), signals)

    threshold = data.get("secondary_threshold", 15)
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 0:
        raise CatalogError("secondary_threshold must be a non-negative integer")

    languages = _parse_membership(data.get("languages"), signals, "languages")
    providers = _parse_membership(data.get("providers"), signals, "providers")

    ci_signals = tuple(_as_str_list(data.get("ci"), "ci"))
    _require_known(ci_signals, signals, "ci")

    assets = _parse_assets(data.get("assets"), languages, providers)

    return Catalog(
        signals=MappingProxyType(signals),
        categories=categories,
        secondary_threshold=threshold,
        languages=MappingProxyType(languages),
        providers=MappingProxyType(providers),
        ci_signals=ci_signals,
        assets=assets,
        source=source,
    )


def _parse_signals(raw: Any) -> Dict[str, SignalDefinition]:
    if not isinstance(raw, dict) or not raw:
        raise CatalogError("Catalog must declare at least one signal under 'signals'")

    signals: Dict[str, SignalDefinition] = {}
    for name, spec in raw.items():
        if not isinstance(name, str) or not isinstance(spec, dict):
            raise CatalogError(f"Signal '{name}' must be a mapping")
        kind = spec.get("kind")
        if kind not in SIGNAL_KINDS:
            raise CatalogError(f"Signal '{name}' has unknown kind {kind!r}")

        paths: Tuple[str, ...] = ()
        patterns: Tuple[str, ...] = ()
        regex: Optional[Pattern[str]] = None

        if kind in ("file", "dir"):
            path = spec.get("path")
            if not isinstance(path, str) or not path:
                raise CatalogError(f"Signal '{name}' requires a 'path'")
            paths = (path,)
        elif kind == "dir_pair":
            paths = tuple(_as_str_list(spec.get("paths"), name))
            if len(paths) != 2:
                raise CatalogError(f"Signal '{name}' requires exactly two 'paths'")
        else:
            patterns = tuple(_as_str_list(spec.get("patterns", spec.get("pattern")), name))
            if not patterns:
                raise CatalogError(f"Signal '{name}' requires at least one glob pattern")
            if kind == "content":
                expression = spec.get("regex")
                if not isinstance(expression, str) or not expression:
                    raise CatalogError(f"Signal '{name}' requires a 'regex'")
                try:
                    regex = re.compile(expression)
                except re.error as exc:
                    raise CatalogError(f"Signal '{name}' has an invalid regex: {exc}") from exc

        signals[name] = SignalDefinition(
            name=name, kind=kind, paths=paths, patterns=patterns, regex=regex
        )
    return signals


def _parse_categories(
    raw: Any, signals: Mapping[str, SignalDefinition]
) -> Tuple[CategoryDefinition, ...]:
    if not isinstance(raw, list) or not raw:
        raise CatalogError("Catalog must declare 'categories' as a non-empty list")

    categories: List[CategoryDefinition] = []
    seen: set[str] = set()
    for entry in raw:
        if not isinstance(entry, dict):
            raise CatalogError("Each category must be a mapping with 'name' and 'weights'")
        name = entry.get("name")
        if not isinstance(name, str) or not name:
            raise CatalogError("Category is missing a 'name'")
        if name in seen:
            raise CatalogError(f"Category '{name}' is declared more than once")
        seen.add(name)

        weights_raw = entry.get("weights")
        if not isinstance(weights_raw, dict) or not weights_raw:
            raise CatalogError(f"Category '{name}' references no signals")

        weights: List[Tuple[str, int]] = []
        for signal_name, points in weights_raw.items():
            if signal_name not in signals:
                raise CatalogError(f"Category '{name}' references unknown signal '{signal_name}'")
            if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
                raise CatalogError(
                    f"Category '{name}' weight for '{signal_name}' must be a positive integer"
                )
            weights.append((signal_name, points))
        categories.append(CategoryDefinition(name=name, weights=tuple(weights)))
    return tuple(categories)


def _parse_membership(
    raw: Any, signals: Mapping[str, SignalDefinition], section: str
) -> Dict[str, Tuple[str, ...]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise CatalogError(f"'{section}' must map names to signal lists")
    membership: Dict[str, Tuple[str, ...]] = {}
    for name, signal_names in raw.items():
        names = tuple(_as_str_list(signal_names, f"{section}.{name}"))
        if not names:
            raise CatalogError(f"'{section}.{name}' references no signals")
        _require_known(names, signals, f"{section}.{name}")
        membership[str(name).lower()] = names
    return membership


def _parse_assets(
    raw: Any,
    languages: Mapping[str, Tuple[str, ...]],
    providers: Mapping[str, Tuple[str, ...]],
) -> AssetCatalog:
    if not isinstance(raw, dict):
        raise CatalogError("Catalog must declare an 'assets' mapping")

    groups_raw = raw.get("groups")
    if not isinstance(groups_raw, dict):
        raise CatalogError("'assets.groups' must map group names to identifier lists")
    groups = {
        str(name): tuple(_as_str_list(members, f"assets.groups.{name}"))
        for name, members in groups_raw.items()
    }

    core_group = str(raw.get("core", "core"))
    if not groups.get(core_group):
        raise CatalogError(f"Core asset group '{core_group}' is missing or empty")
    ci_group = str(raw.get("ci", "ci"))

    aliases = {
        key: value.lower()
        for key, value in _as_str_mapping(raw.get("aliases"), "assets.aliases").items()
    }
    language_groups = _default_groups(languages, "language", aliases, groups)
    language_groups.update(
        _canonical_keys(_as_str_mapping(raw.get("languages"), "assets.languages"), aliases)
    )
    provider_groups = _default_groups(providers, "cloud", aliases, groups)
    provider_groups.update(
        _canonical_keys(_as_str_mapping(raw.get("providers"), "assets.providers"), aliases)
    )

    return AssetCatalog(
        groups=MappingProxyType(groups),
        core_group=core_group,
        ci_group=ci_group,
        language_groups=MappingProxyType(language_groups),
        provider_groups=MappingProxyType(provider_groups),
        aliases=MappingProxyType(aliases),
    )


def _default_groups(
    names: Iterable[str],
    prefix: str,
    aliases: Mapping[str, str],
    groups: Mapping[str, Tuple[str, ...]],
) -> Dict[str, str]:
    """Map canonical names to ``<prefix>:<name>`` groups.

    Names that alias to one another share an entry; a group that exists in
    the catalog wins over one that does not.
    """
    mapping: Dict[str, str] = {}
    for name in names:
        key = aliases.get(name, name)
        group = f"{prefix}:{name}"
        current = mapping.get(key)
        if current is None or (current not in groups and group in groups):
            mapping[key] = group
    return mapping


def _canonical_keys(mapping: Mapping[str, str], aliases: Mapping[str, str]) -> Dict[str, str]:
    return {aliases.get(key, key): value for key, value in mapping.items()}


def _require_known(
    names: Sequence[str], signals: Mapping[str, SignalDefinition], section: str
) -> None:
    for name in names:
        if name not in signals:
            raise CatalogError(f"'{section}' references unknown signal '{name}'")


def _as_str_list(value: Any, section: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise CatalogError(f"'{section}' must be a string or a list of strings")


def _as_str_mapping(value: Any, section: str) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise CatalogError(f"'{section}' must be a mapping")
    return {str(key).lower(): str(item) for key, item in value.items()}


__all__ = [
    "AssetCatalog",
    "Catalog",
    "CatalogError",
    "CategoryDefinition",
    "DEFAULT_CATALOG_PATH",
    "SIGNAL_KINDS",
    "SignalDefinition",
    "load_catalog",
    "parse_catalog",
]
