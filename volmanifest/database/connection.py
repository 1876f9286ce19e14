"""Manifest store: one SQLite database per scanned volume root.

A store handle owns a single connection and serves one logical operation at a
time. Two writable handles on the same database file (in one process or
several) are unsafe: SQLite keeps the file consistent, but the engine does not
coordinate their updates. Read-only handles may be opened alongside a writer.
"""

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Self

from volmanifest.errors import StoreError

from .models import DuplicateStats, ManifestEntry, ManifestStats
from .schema import create_schema, verify_schema

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = "path, digest, size, modified_at_ns, scanned_at_unix"


@contextmanager
def store_errors(action: str, db_path: Path) -> Iterator[None]:
    """Re-raise sqlite3 failures as StoreError, the engine's fatal error kind."""
    try:
        yield
    except sqlite3.Error as e:
        raise StoreError(f"Failed to {action} manifest {db_path}: {e}") from e


class ManifestStore:
    """SQLite connection wrapper for a manifest, with context manager support."""

    def __init__(self, db_path: Path, label: str | None = None, read_only: bool = False):
        self.db_path = Path(db_path)
        self.label = label or self.db_path.stem
        self.read_only = read_only
        self._conn: sqlite3.Connection | None = None

    @classmethod
    def open(cls, db_path: Path, label: str | None = None, read_only: bool = False) -> Self:
        store = cls(db_path, label=label, read_only=read_only)
        store.connect()
        return store

    def connect(self) -> sqlite3.Connection:
        if self._conn is None:
            if self.read_only:
                self._conn = self._connect_read_only()
            else:
                self._conn = self._connect_read_write()
        return self._conn

    def _connect_read_write(self) -> sqlite3.Connection:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create manifest directory {self.db_path.parent}: {e}") from e

        with store_errors("open", self.db_path):
            conn = sqlite3.connect(self.db_path)
            try:
                conn.row_factory = sqlite3.Row
                create_schema(conn)
            except BaseException:
                conn.close()
                raise
        logger.debug("Opened manifest %s", self.db_path)
        return conn

    def _connect_read_only(self) -> sqlite3.Connection:
        if not self.db_path.exists():
            raise StoreError(f"Manifest does not exist: {self.db_path}")

        with store_errors("open", self.db_path):
            conn = sqlite3.connect(f"{self.db_path.resolve().as_uri()}?mode=ro", uri=True)
            try:
                conn.row_factory = sqlite3.Row
                verify_schema(conn)
            except BaseException:
                conn.close()
                raise
        return conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self.connect()

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> Self:
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ManifestStore({str(self.db_path)!r}, label={self.label!r})"

    # Writes

    def upsert(self, entries: Iterable[ManifestEntry]) -> int:
        """Insert or replace a batch of entries in a single transaction.

        Either every row of the batch is written (digest, size and mtime
        together) or none is.
        """
        rows = [
            (e.path, e.digest, e.size, e.modified_at_ns, e.scanned_at_unix) for e in entries
        ]
        if not rows:
            return 0

        with store_errors("write", self.db_path), self.conn:
            self.conn.executemany(
                """
                INSERT INTO files (
                    path, digest, size, modified_at_ns, scanned_at_unix
                ) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    digest = excluded.digest,
                    size = excluded.size,
                    modified_at_ns = excluded.modified_at_ns,
                    scanned_at_unix = excluded.scanned_at_unix
                """,
                rows,
            )
        return len(rows)

    def remove(self, path: str) -> bool:
        """Remove one entry. Returns False if the path was not indexed."""
        with store_errors("write", self.db_path), self.conn:
            cursor = self.conn.execute("DELETE FROM files WHERE path = ?", (path,))
        return cursor.rowcount > 0

    def remove_many(self, paths: Iterable[str]) -> int:
        with store_errors("write", self.db_path), self.conn:
            cursor = self.conn.executemany(
                "DELETE FROM files WHERE path = ?", ((p,) for p in paths)
            )
        return max(cursor.rowcount, 0)

    def prune_missing(self, observed_paths: Iterable[str]) -> int:
        """Delete every entry whose path is not in ``observed_paths``.

        Runs as one transaction; the observed paths go through a temporary
        table so the comparison happens inside SQLite.
        """
        with store_errors("prune", self.db_path), self.conn:
            self.conn.execute("CREATE TEMP TABLE IF NOT EXISTS observed (path TEXT PRIMARY KEY)")
            self.conn.execute("DELETE FROM temp.observed")
            self.conn.executemany(
                "INSERT OR IGNORE INTO temp.observed (path) VALUES (?)",
                ((p,) for p in observed_paths),
            )
            cursor = self.conn.execute(
                "DELETE FROM main.files WHERE path NOT IN (SELECT path FROM temp.observed)"
            )
            pruned = cursor.rowcount
            self.conn.execute("DELETE FROM temp.observed")
        return pruned

    # Reads

    def get(self, path: str) -> ManifestEntry | None:
        with store_errors("read", self.db_path):
            row = self.conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM files WHERE path = ?", (path,)
            ).fetchone()
        return _row_to_entry(row) if row else None

    def iterate_all(self) -> Iterator[ManifestEntry]:
        """Stream every entry ordered by path."""
        with store_errors("read", self.db_path):
            cursor = self.conn.execute(f"SELECT {_ENTRY_COLUMNS} FROM files ORDER BY path")
            for row in cursor:
                yield _row_to_entry(row)

    def iterate_by_digest(self, digest: str) -> Iterator[ManifestEntry]:
        with store_errors("read", self.db_path):
            cursor = self.conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM files WHERE digest = ? ORDER BY path",
                (digest,),
            )
            for row in cursor:
                yield _row_to_entry(row)

    def file_count(self) -> int:
        with store_errors("read", self.db_path):
            return self.conn.execute("SELECT COUNT(*) FROM files").fetchone()[0]

    def total_size(self) -> int:
        with store_errors("read", self.db_path):
            return self.conn.execute("SELECT COALESCE(SUM(size), 0) FROM files").fetchone()[0]

    def duplicate_stats(self) -> DuplicateStats:
        with store_errors("read", self.db_path):
            row = self.conn.execute(
                """
                SELECT
                    COUNT(*) AS duplicate_groups,
                    COALESCE(SUM(copies), 0) AS duplicate_files,
                    COALESCE(SUM((copies - 1) * size_each), 0) AS wasted_space
                FROM (
                    SELECT COUNT(*) AS copies, MAX(size) AS size_each
                    FROM files
                    GROUP BY digest
                    HAVING COUNT(*) > 1
                )
                """
            ).fetchone()

        return DuplicateStats(
            duplicate_files=row["duplicate_files"],
            duplicate_groups=row["duplicate_groups"],
            wasted_space=row["wasted_space"],
        )

    def statistics(self) -> ManifestStats:
        return ManifestStats(
            file_count=self.file_count(),
            total_size=self.total_size(),
            duplicates=self.duplicate_stats(),
        )


def _row_to_entry(row: sqlite3.Row) -> ManifestEntry:
    return ManifestEntry(
        path=row["path"],
        digest=row["digest"],
        size=row["size"],
        modified_at_ns=row["modified_at_ns"],
        scanned_at_unix=row["scanned_at_unix"],
    )

