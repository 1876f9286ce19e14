"""Filesystem traversal utilities for scanning directories."""

import logging
import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from volmanifest.formatting import normalize_entry_path

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[Path, OSError, bool], None]


@dataclass
class FileInfo:
    path: Path
    relative_path: str
    size: int
    modified_at_ns: int


def walk_files(
    start: Path,
    source_root: Path | None = None,
    max_path_length: int = 4096,
    on_error: ErrorCallback | None = None,
) -> Iterator[FileInfo]:
    """Yield every regular file under ``start`` in sorted, depth-first order.

    Symlinks, directories and special files are never yielded. Relative paths
    are computed against ``source_root`` (``start`` by default) so a subtree
    walk produces the same keys as a full walk of the root.
    """
    yield from _walk_recursive(start, source_root or start, max_path_length, on_error)


def count_files(start: Path, max_path_length: int = 4096) -> tuple[int, int]:
    """Pre-pass returning (file count, total bytes) for progress estimates."""
    files = 0
    total_bytes = 0
    for info in walk_files(start, max_path_length=max_path_length):
        files += 1
        total_bytes += info.size
    return files, total_bytes


def _walk_recursive(
    current_dir: Path,
    source_root: Path,
    max_path_length: int,
    on_error: ErrorCallback | None,
) -> Iterator[FileInfo]:
    try:
        with os.scandir(current_dir) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        if isinstance(e, PermissionError):
            logger.warning("Permission denied listing directory: %s", current_dir)
        else:
            logger.error("Error listing directory %s: %s", current_dir, e)
        if on_error:
            on_error(current_dir, e, True)
        return

    subdirs: list[Path] = []
    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                subdirs.append(Path(entry.path))
                continue
        except OSError as e:
            # Treated as a directory: nothing beneath it may be pruned
            logger.warning("Could not stat %s: %s", entry.path, e)
            if on_error:
                on_error(Path(entry.path), e, True)
            continue

        file_info = _process_entry(entry, source_root, max_path_length, on_error)
        if file_info:
            yield file_info

    for subdir in subdirs:
        yield from _walk_recursive(subdir, source_root, max_path_length, on_error)


def _process_entry(
    entry: os.DirEntry,
    source_root: Path,
    max_path_length: int,
    on_error: ErrorCallback | None,
) -> FileInfo | None:
    try:
        if entry.is_symlink():
            return None

        if not entry.is_file(follow_symlinks=False):
            return None

        if len(entry.path) > max_path_length:
            logger.warning("Path too long, skipping: %s", entry.path)
            return None

        stat_result = entry.stat(follow_symlinks=False)
        path = Path(entry.path)

        return FileInfo(
            path=path,
            relative_path=normalize_entry_path(path, source_root),
            size=stat_result.st_size,
            modified_at_ns=stat_result.st_mtime_ns,
        )

    except PermissionError as e:
        logger.warning("Permission denied: %s", entry.path)
        if on_error:
            on_error(Path(entry.path), e, False)
        return None
    except FileNotFoundError:
        logger.warning("File disappeared during scan: %s", entry.path)
        return None
    except OSError as e:
        logger.error("Error processing %s: %s", entry.path, e)
        if on_error:
            on_error(Path(entry.path), e, False)
        return None
