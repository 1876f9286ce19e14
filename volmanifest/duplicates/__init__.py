"""Duplicate detection within and across manifests."""

from .comparator import CrossStoreComparator, PairComparison, compare_pairs
from .detector import DuplicateDetector

__all__ = ["DuplicateDetector", "CrossStoreComparator", "PairComparison", "compare_pairs"]
