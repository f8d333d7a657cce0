"""Per-project assistant config provisioning with project-type detection."""

from .catalog import Catalog, CatalogError, load_catalog
from .classifier import Classifier
from .collector import CollectionError, SignalCollector
from .models import UNKNOWN, ClassificationResult, SignalSet
from .selector import AssetSelector

__version__ = "0.1.0"

__all__ = [
    "AssetSelector",
    "Catalog",
    "CatalogError",
    "ClassificationResult",
    "Classifier",
    "CollectionError",
    "SignalCollector",
    "SignalSet",
    "UNKNOWN",
    "load_catalog",
]
