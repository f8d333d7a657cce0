"""Base classes for signal probes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from ..catalog import SignalDefinition
from ..models import SignalValue
from .tree import ProjectTree


class CollectionError(RuntimeError):
    """Raised when a filesystem probe fails for a reason other than absence."""

    def __init__(self, path: Path | str, message: str) -> None:
        super().__init__(f"{message}: {path}")
        self.path = Path(path)
        self.message = message


class Probe(ABC):
    """Contract for probes that evaluate one catalog signal against a project tree."""

    kind: str = ""

    @abstractmethod
    def probe(self, definition: SignalDefinition, tree: ProjectTree) -> SignalValue:
        """Return the signal value; absence is ``False`` or ``0``, never an error."""

    def absent(self) -> SignalValue:
        return False
