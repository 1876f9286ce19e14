"""Main scanner implementation."""

import logging
import os
import time
from collections.abc import Callable
from pathlib import Path

from volmanifest.database import ManifestEntry, ManifestStore
from volmanifest.errors import ScanRootError
from volmanifest.formatting import normalize_entry_path
from volmanifest.scanner.filesystem import FileInfo, count_files, walk_files
from volmanifest.scanner.hasher import ContentHasher
from volmanifest.scanner.progress import NoProgress, ProgressSink, ScanError, ScanResult

logger = logging.getLogger(__name__)


class Scanner:
    """Walks a volume root, hashes changed files and keeps the manifest current.

    Scanning is synchronous: ``scan`` returns once the whole tree has been
    processed (or ``should_cancel`` asked it to stop).
    """

    def __init__(
        self,
        store: ManifestStore,
        hasher: ContentHasher | None = None,
        batch_size: int = 500,
        max_path_length: int = 4096,
    ):
        self.store = store
        self.hasher = hasher or ContentHasher()
        self.batch_size = max(1, batch_size)
        self.max_path_length = max_path_length

    def scan(
        self,
        source_root: Path,
        force: bool = False,
        progress: ProgressSink | None = None,
        subtree: str | Path | None = None,
        prune: bool = True,
        should_cancel: Callable[[], bool] | None = None,
    ) -> ScanResult:
        """Bring the manifest up to date with the files under ``source_root``.

        Unchanged files (same size and mtime as recorded) keep their stored
        digest unless ``force`` is set. A file whose content changes while its
        size and mtime stay the same is therefore not re-hashed.

        When ``subtree`` is given only that directory (relative to the root)
        is walked and nothing is pruned. Entries for paths that were not seen
        are pruned otherwise, unless ``prune`` is False or the scan was
        cancelled.

        Raises:
            ScanRootError: the root (or subtree) is not an existing directory.
            StoreError: the manifest could not be written; the scan is aborted.
        """
        progress = progress or NoProgress()
        source_root = Path(source_root).expanduser().resolve()
        if not source_root.is_dir():
            raise ScanRootError(f"Scan root is not a directory: {source_root}")

        start_dir = source_root
        if subtree is not None:
            start_dir = self._resolve_subtree(source_root, subtree)
            prune = False

        logger.info("Starting scan of %s (manifest: %s)", start_dir, self.store.label)

        result = ScanResult()
        estimated_files, estimated_bytes = count_files(start_dir, self.max_path_length)
        progress.start(estimated_files, estimated_bytes)

        observed: list[str] = []
        pending: list[ManifestEntry] = []

        def record_walk_error(path: Path, error: OSError, is_directory: bool) -> None:
            relative_path = normalize_entry_path(path, source_root)
            result.errors.append(ScanError(relative_path, _describe(error), is_directory))
            # The file still exists, so its entry must survive pruning
            if not is_directory:
                observed.append(relative_path)

        for file_info in walk_files(start_dir, source_root, self.max_path_length, record_walk_error):
            if should_cancel is not None and should_cancel():
                logger.info("Scan of %s cancelled", start_dir)
                result.cancelled = True
                break

            observed.append(file_info.relative_path)
            progress.file_start(file_info.relative_path, file_info.size)
            success = self._process_file(file_info, force, pending, result)
            progress.file_done(success)

            if len(pending) >= self.batch_size:
                self._flush(pending)

        self._flush(pending)

        if prune and not result.cancelled:
            self._prune(observed, result)

        result.end_time = time.time()
        logger.info(
            "Scan of %s finished: %d hashed, %d skipped, %d errors, %d pruned",
            start_dir,
            result.files_hashed,
            result.files_skipped,
            result.files_errored,
            result.files_pruned,
        )
        progress.complete(result)
        return result

    def _resolve_subtree(self, source_root: Path, subtree: str | Path) -> Path:
        start_dir = (source_root / subtree).resolve()
        if not start_dir.is_relative_to(source_root):
            raise ScanRootError(f"Subtree {subtree} is outside scan root {source_root}")
        if not start_dir.is_dir():
            raise ScanRootError(f"Subtree is not a directory: {start_dir}")
        return start_dir

    def _process_file(
        self,
        file_info: FileInfo,
        force: bool,
        pending: list[ManifestEntry],
        result: ScanResult,
    ) -> bool:
        existing = self.store.get(file_info.relative_path)
        if (
            existing is not None
            and not force
            and existing.matches(file_info.size, file_info.modified_at_ns)
        ):
            logger.debug("Unchanged, reusing digest: %s", file_info.relative_path)
            result.files_skipped += 1
            return True

        try:
            digest = self.hasher.hash_file(file_info.path)
            after = os.stat(file_info.path, follow_symlinks=False)
        except OSError as e:
            logger.warning("Could not hash %s: %s", file_info.path, e)
            result.errors.append(ScanError(file_info.relative_path, _describe(e)))
            self._drop_stale(existing, file_info.size, file_info.modified_at_ns)
            return False

        if after.st_size != file_info.size or after.st_mtime_ns != file_info.modified_at_ns:
            logger.warning("File changed while hashing: %s", file_info.path)
            result.errors.append(ScanError(file_info.relative_path, "modified while hashing"))
            self._drop_stale(existing, after.st_size, after.st_mtime_ns)
            return False

        pending.append(
            ManifestEntry.create(
                file_info.relative_path, digest, file_info.size, file_info.modified_at_ns
            )
        )
        result.files_hashed += 1
        result.bytes_hashed += file_info.size
        return True

    def _drop_stale(self, existing: ManifestEntry | None, size: int, modified_at_ns: int) -> None:
        """Remove a recorded digest that no longer describes the file on disk."""
        if existing is None or existing.matches(size, modified_at_ns):
            return
        logger.info("Dropping stale digest for %s", existing.path)
        self.store.remove(existing.path)

    def _flush(self, pending: list[ManifestEntry]) -> None:
        if pending:
            self.store.upsert(pending)
            pending.clear()

    def _prune(self, observed: list[str], result: ScanResult) -> None:
        # Entries under an unreadable directory were not observed but may still exist
        if any(error.is_directory for error in result.errors):
            logger.warning("Skipping prune: some directories could not be listed")
            return
        result.files_pruned = self.store.prune_missing(observed)
        if result.files_pruned:
            logger.info("Pruned %d entries no longer on disk", result.files_pruned)


def _describe(error: OSError) -> str:
    return error.strerror or str(error)
