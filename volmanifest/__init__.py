"""volmanifest - Content manifests and duplicate detection for storage volumes."""

__version__ = "0.1.0"

from volmanifest.database import ManifestStore
from volmanifest.duplicates import CrossStoreComparator, DuplicateDetector
from volmanifest.scanner import Scanner

__all__ = ["ManifestStore", "Scanner", "DuplicateDetector", "CrossStoreComparator"]
