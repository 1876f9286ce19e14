"""Duplicate detection within a single manifest."""

import itertools
import logging
from collections.abc import Iterator
from operator import itemgetter

from volmanifest.database import DuplicateGroup, ManifestStore
from volmanifest.database.connection import store_errors

logger = logging.getLogger(__name__)

# Groups are ranked inside SQLite so a limit never needs every group in memory.
DUPLICATES_SQL = """
SELECT f.digest, f.path, g.size_each, g.copies
FROM (
    SELECT digest, COUNT(*) AS copies, MAX(size) AS size_each
    FROM files
    WHERE size >= :min_size
    GROUP BY digest
    HAVING COUNT(*) > 1
    ORDER BY (COUNT(*) - 1) * MAX(size) DESC, COUNT(*) DESC, digest ASC
    LIMIT :limit
) g
JOIN files f ON f.digest = g.digest AND f.size >= :min_size
ORDER BY (g.copies - 1) * g.size_each DESC, g.copies DESC, g.digest ASC, f.path ASC
"""


class DuplicateDetector:
    """Groups the entries of one manifest by identical digest.

    Digest equality is treated as content equality; files of equal size but
    different digests never share a group.
    """

    def __init__(self, store: ManifestStore):
        self.store = store

    def find_duplicates(self, min_size: int = 0, limit: int | None = None) -> list[DuplicateGroup]:
        """Return groups of two or more files of at least ``min_size`` bytes.

        Sorted by wasted space (descending), then copy count (descending),
        then digest, so the output is deterministic.
        """
        groups = list(self.iter_duplicates(min_size, limit))
        logger.debug(
            "Found %d duplicate groups in %s (min size %d)", len(groups), self.store.label, min_size
        )
        return groups

    def iter_duplicates(self, min_size: int = 0, limit: int | None = None) -> Iterator[DuplicateGroup]:
        if min_size < 0:
            raise ValueError(f"min_size must not be negative, got {min_size}")

        params = {"min_size": min_size, "limit": limit if limit else -1}
        with store_errors("query", self.store.db_path):
            cursor = self.store.conn.execute(DUPLICATES_SQL, params)
            for digest, group in itertools.groupby(cursor, key=itemgetter("digest")):
                rows = list(group)
                yield DuplicateGroup(
                    digest=digest,
                    size_each=rows[0]["size_each"],
                    count=len(rows),
                    paths=[row["path"] for row in rows],
                )
