"""Tests for formatting and path helpers."""

import os
from pathlib import Path

import pytest

from volmanifest.formatting import (
    format_duration,
    format_size,
    normalize_entry_path,
    path_to_name,
    truncate,
)


class TestFormatSize:
    """Tests for format_size function."""

    def test_bytes(self):
        assert format_size(0) == "0 B"
        assert format_size(500) == "500 B"

    def test_kilobytes(self):
        assert format_size(1024) == "1.0 KB"
        assert format_size(1536) == "1.5 KB"

    def test_megabytes_and_gigabytes(self):
        assert format_size(1024 * 1024) == "1.0 MB"
        assert format_size(1024 * 1024 * 1024) == "1.0 GB"

    def test_terabytes_use_two_decimals(self):
        assert format_size(1024 * 1024 * 1024 * 1024) == "1.00 TB"

    def test_none_is_zero(self):
        assert format_size(None) == "0 B"


class TestFormatDuration:
    """Tests for format_duration function."""

    def test_subsecond(self):
        assert format_duration(0.25) == "250ms"

    def test_seconds(self):
        assert format_duration(42) == "42s"

    def test_minutes(self):
        assert format_duration(125) == "2m 5s"

    def test_hours(self):
        assert format_duration(3725) == "1h 2m 5s"


class TestPathToName:
    """Tests for path_to_name function."""

    def test_last_component(self):
        assert path_to_name(Path("/Volumes/T9")) == "T9"
        assert path_to_name(Path("/home/user/data")) == "data"

    def test_root_becomes_underscore(self):
        assert path_to_name(Path("/")) == "_"

    def test_replaces_separators(self):
        assert path_to_name("backup:2024") == "backup_2024"


class TestNormalizeEntryPath:
    """Tests for normalize_entry_path function."""

    def test_absolute_path_relative_to_root(self, tmp_path: Path):
        assert normalize_entry_path(tmp_path / "a" / "b.txt", tmp_path) == "a/b.txt"

    def test_relative_path_kept(self, tmp_path: Path):
        assert normalize_entry_path(Path("a") / "b.txt", tmp_path) == "a/b.txt"

    def test_root_itself_is_empty(self, tmp_path: Path):
        assert normalize_entry_path(tmp_path, tmp_path) == ""

    def test_outside_root_raises(self, tmp_path: Path):
        with pytest.raises(ValueError):
            normalize_entry_path(Path("/elsewhere/file.txt"), tmp_path)

    def test_undecodable_bytes_escaped(self, tmp_path: Path):
        name = os.fsdecode(b"bad\xff.txt")

        assert normalize_entry_path(tmp_path / "dir" / name, tmp_path) == "dir/bad\\xff.txt"

    def test_unicode_names_unchanged(self, tmp_path: Path):
        assert normalize_entry_path(tmp_path / "café.jpg", tmp_path) == "café.jpg"


class TestTruncate:
    """Tests for truncate function."""

    def test_short_text_unchanged(self):
        assert truncate("short", 10) == "short"

    def test_long_text_keeps_tail(self):
        assert truncate("a/very/long/path.txt", 10) == "...ath.txt"
