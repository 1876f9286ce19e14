"""Public operations of the manifest engine.

These functions are the surface other tools build on: open a manifest, scan a
volume into it, and query statistics and duplicates. Every handle is an
explicitly opened ``ManifestStore``; close it (or use it as a context manager)
when done.
"""

from collections.abc import Sequence
from pathlib import Path

from volmanifest.config import Config
from volmanifest.database import (
    CrossStoreDuplicate,
    DuplicateGroup,
    ManifestStats,
    ManifestStore,
)
from volmanifest.duplicates import CrossStoreComparator, DuplicateDetector
from volmanifest.registry import MANIFEST_SUFFIX, ManifestRegistry
from volmanifest.scanner import ContentHasher, ProgressSink, Scanner, ScanResult


def open_store(identifier: str | Path, config: Config | None = None) -> ManifestStore:
    """Open or create a manifest.

    ``identifier`` is either a path to a ``.db`` file or a manifest name,
    resolved in the configured manifest directory.

    Raises:
        StoreError: the database cannot be created or opened.
    """
    identifier = Path(identifier).expanduser()
    if identifier.suffix == MANIFEST_SUFFIX or len(identifier.parts) > 1:
        return ManifestStore.open(identifier)

    config = config or Config()
    return ManifestRegistry(config.manifest_dir).open(str(identifier))


def scan(
    store: ManifestStore,
    root: str | Path,
    force: bool = False,
    progress: ProgressSink | None = None,
    config: Config | None = None,
    **options,
) -> ScanResult:
    """Scan ``root`` into ``store``. ``options`` are passed to ``Scanner.scan``."""
    config = config or Config()
    scanner = Scanner(
        store,
        hasher=ContentHasher(config.scanner.chunk_size),
        batch_size=config.scanner.batch_size,
        max_path_length=config.scanner.max_path_length,
    )
    return scanner.scan(Path(root), force=force, progress=progress, **options)


def stats(store: ManifestStore) -> ManifestStats:
    return store.statistics()


def find_duplicates(store: ManifestStore, min_size: int = 0) -> list[DuplicateGroup]:
    return DuplicateDetector(store).find_duplicates(min_size)


def compare_with(
    stores: Sequence[ManifestStore],
    min_size: int = 0,
    limit: int | None = None,
) -> list[CrossStoreDuplicate]:
    return CrossStoreComparator(stores).compare(min_size, limit)


def remove_entry(store: ManifestStore, path: str) -> bool:
    """Remove an index entry (never the file itself). False if it was absent."""
    return store.remove(path)
