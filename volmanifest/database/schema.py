"""Database schema definition."""

import sqlite3

from volmanifest.errors import SchemaMismatchError

SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- One row per regular file under the scanned root
CREATE TABLE IF NOT EXISTS files (
    path TEXT PRIMARY KEY,
    digest TEXT NOT NULL,
    size INTEGER NOT NULL,
    modified_at_ns INTEGER NOT NULL,
    scanned_at_unix REAL NOT NULL
) WITHOUT ROWID;

-- Duplicate grouping and cross-manifest joins
CREATE INDEX IF NOT EXISTS idx_files_digest ON files(digest);

-- min_size filters
CREATE INDEX IF NOT EXISTS idx_files_size ON files(size);
"""

REQUIRED_COLUMNS = frozenset(
    {"path", "digest", "size", "modified_at_ns", "scanned_at_unix"}
)


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the schema on a new database, or validate an existing one."""
    _check_version(conn)
    if _files_table_exists(conn):
        _check_columns(conn)

    conn.executescript(SCHEMA_SQL)
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
    conn.commit()


def verify_schema(conn: sqlite3.Connection, schema: str = "main") -> None:
    """Raise SchemaMismatchError unless ``schema`` holds a manifest we understand."""
    _check_version(conn, schema)
    if not _files_table_exists(conn, schema):
        raise SchemaMismatchError("Database does not contain a manifest 'files' table")
    _check_columns(conn, schema)


def _check_version(conn: sqlite3.Connection, schema: str = "main") -> None:
    version = conn.execute(f"PRAGMA {schema}.user_version").fetchone()[0]
    if version > SCHEMA_VERSION:
        raise SchemaMismatchError(
            f"Manifest schema version {version} is newer than supported version {SCHEMA_VERSION}"
        )


def _check_columns(conn: sqlite3.Connection, schema: str = "main") -> None:
    cursor = conn.execute(f"PRAGMA {schema}.table_info(files)")
    existing_columns = {row[1] for row in cursor.fetchall()}
    missing = REQUIRED_COLUMNS - existing_columns
    if missing:
        raise SchemaMismatchError(
            f"Manifest 'files' table is missing columns: {', '.join(sorted(missing))}"
        )


def _files_table_exists(conn: sqlite3.Connection, schema: str = "main") -> bool:
    cursor = conn.execute(
        f"SELECT name FROM {schema}.sqlite_master WHERE type='table' AND name='files'"
    )
    return cursor.fetchone() is not None
