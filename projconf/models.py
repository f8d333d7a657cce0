"""Core data models shared across projconf components."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union

UNKNOWN = "unknown"

SignalValue = Union[bool, int]


def _frozen_mapping(values: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class SignalSet:
    """Flat, read-only view of the filesystem facts gathered for one project."""

    root: str
    values: Mapping[str, SignalValue] = field(default_factory=dict)
    failures: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", _frozen_mapping(self.values))
        object.__setattr__(self, "failures", tuple(self.failures))

    def __contains__(self, name: object) -> bool:
        return name in self.values

    def __len__(self) -> int:
        return len(self.values)

    def get(self, name: str) -> SignalValue:
        return self.values.get(name, False)

    def is_set(self, name: str) -> bool:
        """Return True when the signal is a true flag or a positive count."""
        value = self.values.get(name, False)
        if isinstance(value, bool):
            return value
        return value > 0

    def any_set(self, names: Iterable[str]) -> bool:
        return any(self.is_set(name) for name in names)


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of scoring a signal set against the category catalog."""

    primary: str
    secondary: Tuple[str, ...] = ()
    scores: Mapping[str, int] = field(default_factory=dict)
    detected_languages: FrozenSet[str] = frozenset()
    detected_cloud_providers: FrozenSet[str] = frozenset()
    ci_detected: bool = False
    python_version: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "secondary", tuple(self.secondary))
        object.__setattr__(self, "scores", _frozen_mapping(self.scores))
        object.__setattr__(self, "detected_languages", frozenset(self.detected_languages))
        object.__setattr__(
            self, "detected_cloud_providers", frozenset(self.detected_cloud_providers)
        )

    @property
    def is_unknown(self) -> bool:
        return self.primary == UNKNOWN

    @property
    def label(self) -> str:
        """Human readable type, e.g. ``python (+ docker kubernetes)``."""
        if not self.secondary:
            return self.primary
        return f"{self.primary} (+ {' '.join(self.secondary)})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary": self.primary,
            "secondary": list(self.secondary),
            "scores": dict(self.scores),
            "detected_languages": sorted(self.detected_languages),
            "detected_cloud_providers": sorted(self.detected_cloud_providers),
            "ci_detected": self.ci_detected,
            "python_version": self.python_version,
        }


__all__ = ["ClassificationResult", "SignalSet", "SignalValue", "UNKNOWN"]
