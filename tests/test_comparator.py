"""Tests for cross-manifest comparison."""

import sqlite3
from pathlib import Path

import pytest

from volmanifest.database import ManifestEntry, ManifestStore, StoreLocation
from volmanifest.duplicates import CrossStoreComparator, compare_pairs
from volmanifest.errors import SchemaMismatchError, StoreError
from volmanifest.scanner import Scanner


def make_store(tmp_path: Path, label: str, entries: list[tuple[str, str, int]]) -> ManifestStore:
    store = ManifestStore.open(tmp_path / f"{label}.db", label=label)
    store.upsert([ManifestEntry.create(path, char * 64, size, 1) for path, char, size in entries])
    return store


class TestCrossStoreComparator:
    """Tests for CrossStoreComparator.compare."""

    def test_shared_content_found(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [("shared.txt", "s", 14), ("unique_a.txt", "a", 9)])
        b = make_store(tmp_path, "B", [("also_shared.txt", "s", 14), ("unique_b.txt", "b", 9)])

        [duplicate] = CrossStoreComparator([a, b]).compare()

        assert duplicate.digest == "s" * 64
        assert duplicate.size == 14
        assert duplicate.locations == [
            StoreLocation("A", "shared.txt"),
            StoreLocation("B", "also_shared.txt"),
        ]
        assert duplicate.store_count == 2

    def test_within_store_duplicates_excluded(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [("one.txt", "d", 100), ("two.txt", "d", 100)])
        b = make_store(tmp_path, "B", [("other.txt", "o", 100)])

        assert CrossStoreComparator([a, b]).compare() == []

    def test_all_locations_reported_when_shared(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [("one.txt", "d", 100), ("two.txt", "d", 100)])
        b = make_store(tmp_path, "B", [("copy.txt", "d", 100)])

        [duplicate] = CrossStoreComparator([a, b]).compare()

        assert duplicate.paths_in("A") == ["one.txt", "two.txt"]
        assert duplicate.paths_in("B") == ["copy.txt"]
        assert duplicate.combined_size == 300

    def test_min_size(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [("small.txt", "s", 5), ("large.txt", "l", 100)])
        b = make_store(tmp_path, "B", [("small.txt", "s", 5), ("large.txt", "l", 100)])

        duplicates = CrossStoreComparator([a, b]).compare(min_size=50)

        assert [d.size for d in duplicates] == [100]
        assert duplicates[0].paths_in("A") == ["large.txt"]

    def test_three_stores(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [("a.bin", "x", 10), ("only_ab.bin", "y", 10)])
        b = make_store(tmp_path, "B", [("b.bin", "x", 10), ("ab.bin", "y", 10)])
        c = make_store(tmp_path, "C", [("c.bin", "x", 10), ("solo.bin", "z", 10)])

        duplicates = CrossStoreComparator([a, b, c]).compare()

        assert [d.digest[0] for d in duplicates] == ["x", "y"]
        assert duplicates[0].store_count == 3
        assert [loc.label for loc in duplicates[0].locations] == ["A", "B", "C"]
        assert duplicates[1].store_count == 2

    def test_ordered_by_combined_size_and_limited(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [("p", "p", 10), ("q", "q", 500), ("r", "r", 100)])
        b = make_store(tmp_path, "B", [("p", "p", 10), ("q", "q", 500), ("r", "r", 100)])

        duplicates = CrossStoreComparator([a, b]).compare()
        limited = CrossStoreComparator([a, b]).compare(limit=2)

        assert [d.size for d in duplicates] == [500, 100, 10]
        assert [d.size for d in limited] == [500, 100]

    def test_requires_two_distinct_stores(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [])
        same_file = ManifestStore(tmp_path / "A.db", label="again")

        with pytest.raises(ValueError):
            CrossStoreComparator([a])
        with pytest.raises(ValueError):
            CrossStoreComparator([a, same_file])

    def test_duplicate_labels_rejected(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [])
        b = ManifestStore.open(tmp_path / "other" / "A.db")

        with pytest.raises(ValueError):
            CrossStoreComparator([a, b])

    def test_missing_store_file(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [("file.txt", "c", 7)])
        missing = ManifestStore(tmp_path / "does_not_exist.db")

        with pytest.raises(StoreError):
            CrossStoreComparator([a, missing]).compare()

    def test_foreign_database_rejected(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [("file.txt", "c", 7)])
        foreign_path = tmp_path / "foreign.db"
        conn = sqlite3.connect(foreign_path)
        conn.execute("CREATE TABLE things (id INTEGER)")
        conn.commit()
        conn.close()

        with pytest.raises(SchemaMismatchError):
            CrossStoreComparator([a, ManifestStore(foreign_path)]).compare()

    def test_does_not_modify_stores(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [("f", "f", 10)])
        b = make_store(tmp_path, "B", [("g", "f", 10)])

        CrossStoreComparator([a, b]).compare()

        assert a.file_count() == 1
        assert b.file_count() == 1


class TestCompareScannedVolumes:
    """Cross-store comparison over real scans."""

    def test_identical_file_in_two_volumes(self, tmp_path: Path):
        dir_a = tmp_path / "storage_a"
        dir_b = tmp_path / "storage_b"
        dir_a.mkdir()
        dir_b.mkdir()
        (dir_a / "shared.txt").write_text("shared content")
        (dir_a / "dup_in_a.txt").write_text("only in A twice")
        (dir_a / "dup_in_a_2.txt").write_text("only in A twice")
        (dir_b / "also_shared.txt").write_text("shared content")

        with ManifestStore(tmp_path / "a.db", label="a") as a, ManifestStore(
            tmp_path / "b.db", label="b"
        ) as b:
            Scanner(a).scan(dir_a)
            Scanner(b).scan(dir_b)

            duplicates = CrossStoreComparator([a, b]).compare(min_size=1)

        assert len(duplicates) == 1
        assert duplicates[0].size == len("shared content")
        assert duplicates[0].paths_in("a") == ["shared.txt"]
        assert duplicates[0].paths_in("b") == ["also_shared.txt"]


class TestComparePairs:
    """Tests for compare_pairs function."""

    def test_every_pair_compared(self, tmp_path: Path):
        a = make_store(tmp_path, "A", [("x", "x", 10)])
        b = make_store(tmp_path, "B", [("x", "x", 10)])
        c = make_store(tmp_path, "C", [("y", "y", 10)])

        comparisons = compare_pairs([a, b, c])

        assert [(p.source_label, p.other_label) for p in comparisons] == [
            ("A", "B"),
            ("A", "C"),
            ("B", "C"),
        ]
        assert [p.total_count for p in comparisons] == [1, 0, 0]
        assert comparisons[0].total_size == 10

    def test_limit_keeps_totals(self, tmp_path: Path):
        entries = [(f"f{i}", chr(ord("a") + i), 10 * (i + 1)) for i in range(5)]
        a = make_store(tmp_path, "A", entries)
        b = make_store(tmp_path, "B", entries)

        [comparison] = compare_pairs([a, b], limit=2)

        assert len(comparison.duplicates) == 2
        assert comparison.total_count == 5
        assert comparison.total_size == 150
