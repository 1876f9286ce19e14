"""Data models for manifest records and query results."""

import time
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ManifestEntry:
    """One indexed file.

    The digest is only trustworthy while ``size`` and ``modified_at_ns`` still
    match the file on disk.
    """

    path: str
    digest: str
    size: int
    modified_at_ns: int
    scanned_at_unix: float

    @classmethod
    def create(cls, path: str, digest: str, size: int, modified_at_ns: int) -> "ManifestEntry":
        return cls(path, digest, size, modified_at_ns, scanned_at_unix=time.time())

    @property
    def scanned_at(self) -> int:
        return int(self.scanned_at_unix)

    def matches(self, size: int, modified_at_ns: int) -> bool:
        return self.size == size and self.modified_at_ns == modified_at_ns


@dataclass
class DuplicateStats:
    """Summary of duplicate content within one manifest."""

    duplicate_files: int = 0
    duplicate_groups: int = 0
    wasted_space: int = 0


@dataclass
class ManifestStats:
    file_count: int = 0
    total_size: int = 0
    duplicates: DuplicateStats = field(default_factory=DuplicateStats)

    @property
    def savings_percentage(self) -> float:
        if self.total_size == 0:
            return 0.0
        return self.duplicates.wasted_space / self.total_size * 100.0


@dataclass
class DuplicateGroup:
    """Files within one manifest sharing a content digest."""

    digest: str
    size_each: int
    count: int
    paths: list[str]

    @property
    def wasted_space(self) -> int:
        return self.size_each * (self.count - 1)


@dataclass(frozen=True)
class StoreLocation:
    label: str
    path: str


@dataclass
class CrossStoreDuplicate:
    """Content present in two or more distinct manifests."""

    digest: str
    size: int
    locations: list[StoreLocation]

    @property
    def store_count(self) -> int:
        return len({location.label for location in self.locations})

    @property
    def combined_size(self) -> int:
        return self.size * len(self.locations)

    def paths_in(self, label: str) -> list[str]:
        return [location.path for location in self.locations if location.label == label]
