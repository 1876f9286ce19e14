"""Cross-manifest duplicate detection.

All participating manifests are attached read-only to one in-memory SQLite
connection, and a single query joins their rows on the digest column. Only
the matching rows ever leave SQLite.
"""

import itertools
import logging
import sqlite3
from collections.abc import Sequence
from contextlib import closing
from dataclasses import dataclass
from operator import itemgetter
from pathlib import Path

from volmanifest.database import CrossStoreDuplicate, ManifestStore, StoreLocation
from volmanifest.database.connection import store_errors
from volmanifest.database.schema import verify_schema
from volmanifest.errors import StoreError

logger = logging.getLogger(__name__)

# SQLite's default SQLITE_MAX_ATTACHED
MAX_ATTACHED_STORES = 10


@dataclass
class PairComparison:
    """Result of comparing two manifests."""

    source_label: str
    other_label: str
    duplicates: list[CrossStoreDuplicate]
    total_count: int
    total_size: int


class CrossStoreComparator:
    """Finds content shared between two or more manifests."""

    def __init__(self, stores: Sequence[ManifestStore]):
        self.stores = _distinct_stores(stores)
        if len(self.stores) < 2:
            raise ValueError("At least two distinct manifests are required for a comparison")
        if len(self.stores) > MAX_ATTACHED_STORES:
            raise ValueError(
                f"Cannot compare more than {MAX_ATTACHED_STORES} manifests at once "
                f"(got {len(self.stores)})"
            )

        labels = [store.label for store in self.stores]
        if len(set(labels)) != len(labels):
            raise ValueError(f"Manifest labels must be unique: {labels}")

    def compare(self, min_size: int = 0, limit: int | None = None) -> list[CrossStoreDuplicate]:
        """Return digests present in at least two distinct manifests.

        Matches confined to a single manifest are excluded. Each group lists
        every location of the content, in manifest order and then path order.
        Groups are ranked by combined size (size times number of copies), and
        only the top ``limit`` groups are returned when a limit is given.
        """
        if min_size < 0:
            raise ValueError(f"min_size must not be negative, got {min_size}")

        for store in self.stores:
            if not store.db_path.exists():
                raise StoreError(f"Manifest does not exist: {store.db_path}")

        with closing(sqlite3.connect("file::memory:", uri=True)) as conn:
            conn.row_factory = sqlite3.Row
            self._attach_all(conn)
            sql, params = self._build_query(min_size, limit)
            with store_errors("compare", self.stores[0].db_path):
                rows = conn.execute(sql, params)
                results = [
                    _to_duplicate(digest, list(group))
                    for digest, group in itertools.groupby(rows, key=itemgetter("digest"))
                ]

        logger.info(
            "Compared %s: %d shared digests (min size %d)",
            ", ".join(store.label for store in self.stores),
            len(results),
            min_size,
        )
        return results

    def _attach_all(self, conn: sqlite3.Connection) -> None:
        for index, store in enumerate(self.stores):
            schema = f"s{index}"
            uri = f"{store.db_path.resolve().as_uri()}?mode=ro"
            with store_errors("attach", store.db_path):
                conn.execute(f"ATTACH DATABASE ? AS {schema}", (uri,))
                verify_schema(conn, schema)

    def _build_query(self, min_size: int, limit: int | None) -> tuple[str, dict]:
        params: dict[str, object] = {"min_size": min_size, "limit": limit if limit else -1}
        selects = []
        for index, store in enumerate(self.stores):
            params[f"label{index}"] = store.label
            selects.append(
                f"SELECT :label{index} AS label, {index} AS ordinal, path, digest, size "
                f"FROM s{index}.files WHERE size >= :min_size"
            )

        sql = f"""
        WITH candidates AS (
            {" UNION ALL ".join(selects)}
        ),
        shared AS (
            SELECT digest, MAX(size) AS size, COUNT(*) AS copies
            FROM candidates
            GROUP BY digest
            HAVING COUNT(DISTINCT ordinal) >= 2
            ORDER BY MAX(size) * COUNT(*) DESC, digest ASC
            LIMIT :limit
        )
        SELECT c.digest, s.size, c.label, c.path
        FROM shared s
        JOIN candidates c ON c.digest = s.digest
        ORDER BY s.size * s.copies DESC, s.digest ASC, c.ordinal ASC, c.path ASC
        """
        return sql, params


def compare_pairs(
    stores: Sequence[ManifestStore],
    min_size: int = 0,
    limit: int | None = None,
) -> list[PairComparison]:
    """Compare every pair of manifests, first against second.

    ``limit`` caps the groups kept per pair; the totals still count every
    shared digest of the pair.
    """
    stores = _distinct_stores(stores)
    comparisons = []
    for source, other in itertools.combinations(stores, 2):
        duplicates = CrossStoreComparator([source, other]).compare(min_size)
        comparisons.append(
            PairComparison(
                source_label=source.label,
                other_label=other.label,
                duplicates=duplicates[:limit] if limit else duplicates,
                total_count=len(duplicates),
                total_size=sum(d.size for d in duplicates),
            )
        )
    return comparisons


def _distinct_stores(stores: Sequence[ManifestStore]) -> list[ManifestStore]:
    seen: set[Path] = set()
    distinct = []
    for store in stores:
        key = store.db_path.resolve()
        if key not in seen:
            seen.add(key)
            distinct.append(store)
    return distinct


def _to_duplicate(digest: str, rows: list[sqlite3.Row]) -> CrossStoreDuplicate:
    return CrossStoreDuplicate(
        digest=digest,
        size=rows[0]["size"],
        locations=[StoreLocation(label=row["label"], path=row["path"]) for row in rows],
    )
