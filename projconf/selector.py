"""Maps a classification result onto knowledge-asset identifiers."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from .catalog import Catalog
from .logging import get_logger
from .models import ClassificationResult


class AssetSelector:
    """Accumulates asset groups for every rule a classification matches."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog
        self.logger = get_logger("selector")

    def select_groups(self, result: ClassificationResult) -> Tuple[str, ...]:
        """Return contributing group names: core, languages, providers, then CI."""
        assets = self.catalog.assets
        groups: List[str] = [assets.core_group]

        for language in self._ordered(result.detected_languages, self.catalog.languages):
            group = assets.language_group(language)
            if group is None:
                self.logger.debug("No asset group mapped for language %s", language)
                continue
            groups.append(group)

        for provider in self._ordered(result.detected_cloud_providers, self.catalog.providers):
            group = assets.provider_group(provider)
            if group is None:
                self.logger.debug("No asset group mapped for provider %s", provider)
                continue
            groups.append(group)

        if result.ci_detected:
            groups.append(assets.ci_group)

        unique: List[str] = []
        for group in groups:
            if group not in unique:
                unique.append(group)
        return tuple(unique)

    def select(self, result: ClassificationResult) -> frozenset[str]:
        """Return the deduplicated asset identifiers for ``result``."""
        selected: set[str] = set()
        for group in self.select_groups(result):
            members = self.catalog.assets.group(group)
            if members is None:
                self.logger.info("Asset group %s is not in the catalog; nothing selected", group)
                continue
            selected.update(members)
        return frozenset(selected)

    @staticmethod
    def _ordered(names: frozenset[str], declared: Iterable[str]) -> List[str]:
        order = list(declared)
        known = [name for name in order if name in names]
        return known + sorted(name for name in names if name not in order)


__all__ = ["AssetSelector"]
