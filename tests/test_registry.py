"""Tests for the manifest registry."""

# pylint: disable=redefined-outer-name

from pathlib import Path

import pytest

from volmanifest.database import ManifestEntry
from volmanifest.registry import ManifestRegistry


@pytest.fixture
def registry(tmp_path: Path) -> ManifestRegistry:
    return ManifestRegistry(tmp_path / "manifests")


class TestManifestRegistry:
    """Tests for ManifestRegistry."""

    def test_name_for_volume_uses_last_component(self, registry: ManifestRegistry, tmp_path: Path):
        volume = tmp_path / "T9"
        volume.mkdir()

        assert registry.name_for_volume(volume) == "T9"

    def test_open_creates_database(self, registry: ManifestRegistry):
        with registry.open("T9") as store:
            assert store.label == "T9"
            assert store.db_path == registry.path_for("T9")

        assert registry.path_for("T9").exists()

    def test_list_empty_when_directory_missing(self, registry: ManifestRegistry):
        assert registry.list() == []

    def test_list_sorted_and_filtered(self, registry: ManifestRegistry):
        for name in ("beta", "alpha"):
            registry.open(name).close()
        (registry.directory / "notes.txt").write_text("not a manifest")

        assert [m.name for m in registry.list()] == ["alpha", "beta"]

    def test_find_is_case_insensitive(self, registry: ManifestRegistry):
        for name in ("T9", "Backup"):
            registry.open(name).close()

        matched, not_found = registry.find(["t9", "BACKUP", "T9", "missing"])

        assert [m.name for m in matched] == ["T9", "Backup"]
        assert not_found == ["missing"]

    def test_collect_stats(self, registry: ManifestRegistry):
        with registry.open("vol") as store:
            store.upsert(
                [
                    ManifestEntry.create("a.bin", "a" * 64, 100, 1),
                    ManifestEntry.create("b.bin", "a" * 64, 100, 1),
                ]
            )

        [summary] = registry.collect_stats()

        assert summary.name == "vol"
        assert summary.stats.file_count == 2
        assert summary.stats.total_size == 200
        assert summary.stats.duplicates.wasted_space == 100

    def test_collect_stats_skips_unreadable(self, registry: ManifestRegistry):
        registry.open("good").close()
        registry.path_for("broken").write_bytes(b"this is not a sqlite database at all")

        summaries = registry.collect_stats()

        assert [s.name for s in summaries] == ["good"]
