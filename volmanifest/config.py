"""Configuration module for volmanifest."""

import os
from dataclasses import dataclass, field
from pathlib import Path

MANIFEST_HOME_ENV = "VOLMANIFEST_HOME"


def _default_manifest_dir() -> Path:
    override = os.environ.get(MANIFEST_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "volmanifest" / "manifests"


@dataclass
class ScannerConfig:
    progress_interval: int = 1000
    batch_size: int = 500
    chunk_size: int = 1024 * 1024
    max_path_length: int = 4096


@dataclass
class DuplicatesConfig:
    # Within one manifest, files under 1 KB are rarely worth reporting
    min_size: int = 1024
    # Cross-volume comparisons default to 1 MB and up
    cross_min_size: int = 1024 * 1024
    display_limit: int = 20
    compare_limit: int = 10


@dataclass
class Config:
    manifest_dir: Path = field(default_factory=_default_manifest_dir)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    duplicates: DuplicatesConfig = field(default_factory=DuplicatesConfig)
