"""Weighted project-type scoring over a collected signal set."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from .catalog import Catalog, CatalogError
from .logging import get_logger
from .models import UNKNOWN, ClassificationResult, SignalSet


class Classifier:
    """Scores catalog categories and derives primary/secondary project types.

    Categories are always visited in catalog order, which doubles as the
    tie-break priority; dictionary iteration order never decides a winner.
    """

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog
        self.logger = get_logger("classifier")

    def score(self, signals: SignalSet) -> Dict[str, int]:
        """Return the category score table; zero-score categories are omitted."""
        scores: Dict[str, int] = {}
        for category in self.catalog.categories:
            total = 0
            for signal_name, points in category.weights:
                if signal_name not in signals:
                    raise CatalogError(
                        f"Category '{category.name}' expects signal '{signal_name}' "
                        "which was not collected"
                    )
                if signals.is_set(signal_name):
                    total += points
            if total > 0:
                scores[category.name] = total
        return scores

    def classify(
        self, signals: SignalSet, *, python_version: Optional[str] = None
    ) -> ClassificationResult:
        scores = self.score(signals)
        ranked = self._rank(scores)

        primary = ranked[0][0] if ranked else UNKNOWN
        threshold = self.catalog.secondary_threshold
        # A category tied with the primary is still a secondary.
        secondary = tuple(
            name for name, value in ranked[1:] if value >= threshold
        )

        languages = frozenset(
            language
            for language, names in self.catalog.languages.items()
            if signals.any_set(names)
        )
        providers = frozenset(
            provider
            for provider, names in self.catalog.providers.items()
            if signals.any_set(names)
        )
        ci_detected = signals.any_set(self.catalog.ci_signals)

        result = ClassificationResult(
            primary=primary,
            secondary=secondary,
            scores=scores,
            detected_languages=languages,
            detected_cloud_providers=providers,
            ci_detected=ci_detected,
            python_version=python_version,
        )
        self.logger.debug("Scores %s -> %s", scores, result.label)
        return result

    def _rank(self, scores: Dict[str, int]) -> List[Tuple[str, int]]:
        priority = {name: index for index, name in enumerate(self.catalog.category_names)}
        return sorted(scores.items(), key=lambda item: (-item[1], priority[item[0]]))


__all__ = ["Classifier"]
