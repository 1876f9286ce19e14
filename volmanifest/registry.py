"""Named manifests kept together in one directory.

Each scanned volume gets ``<name>.db`` in the manifest directory, where the
name is derived from the volume path (``/Volumes/T9`` -> ``T9``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from volmanifest.database import ManifestStats, ManifestStore
from volmanifest.errors import StoreError
from volmanifest.formatting import path_to_name

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".db"


@dataclass(frozen=True)
class RegisteredManifest:
    name: str
    path: Path


@dataclass
class ManifestSummary:
    name: str
    path: Path
    stats: ManifestStats


class ManifestRegistry:
    def __init__(self, directory: Path):
        self.directory = Path(directory).expanduser()

    def path_for(self, name: str) -> Path:
        return self.directory / f"{name}{MANIFEST_SUFFIX}"

    def name_for_volume(self, volume_path: str | Path) -> str:
        return path_to_name(Path(volume_path).expanduser().resolve())

    def open(self, name: str, read_only: bool = False) -> ManifestStore:
        """Open (creating if needed) the manifest called ``name``."""
        return ManifestStore.open(self.path_for(name), label=name, read_only=read_only)

    def list(self) -> list[RegisteredManifest]:
        if not self.directory.is_dir():
            return []
        manifests = [
            RegisteredManifest(name=path.stem, path=path)
            for path in self.directory.iterdir()
            if path.is_file() and path.suffix == MANIFEST_SUFFIX
        ]
        return sorted(manifests, key=lambda m: m.name)

    def find(self, names: Iterable[str]) -> tuple[list[RegisteredManifest], list[str]]:
        """Match requested names case-insensitively.

        Returns the matched manifests (each at most once, in request order)
        and the names that matched nothing.
        """
        by_name = {m.name.lower(): m for m in self.list()}
        matched: list[RegisteredManifest] = []
        not_found: list[str] = []

        for requested in names:
            manifest = by_name.get(requested.lower())
            if manifest is None:
                not_found.append(requested)
            elif manifest not in matched:
                matched.append(manifest)

        return matched, not_found

    def collect_stats(self) -> list[ManifestSummary]:
        """Statistics for every manifest that can be read; others are logged and skipped."""
        summaries = []
        for manifest in self.list():
            try:
                with ManifestStore(manifest.path, label=manifest.name, read_only=True) as store:
                    stats = store.statistics()
            except StoreError as e:
                logger.warning("Skipping unreadable manifest %s: %s", manifest.path, e)
                continue
            summaries.append(ManifestSummary(manifest.name, manifest.path, stats))
        return summaries
