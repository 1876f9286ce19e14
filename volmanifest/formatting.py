"""Formatting and path helpers shared by the CLI and reporting code."""

import os
from pathlib import Path, PurePosixPath

_KB = 1024
_MB = _KB * 1024
_GB = _MB * 1024
_TB = _GB * 1024


def format_size(size: int | None) -> str:
    """Format a byte count as a human-readable size.

    Terabytes get two decimals, GB/MB/KB one, and plain bytes none.
    """
    if not size:
        return "0 B"
    if size >= _TB:
        return f"{size / _TB:.2f} TB"
    if size >= _GB:
        return f"{size / _GB:.1f} GB"
    if size >= _MB:
        return f"{size / _MB:.1f} MB"
    if size >= _KB:
        return f"{size / _KB:.1f} KB"
    return f"{size} B"


def format_duration(seconds: float) -> str:
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    return f"{secs}s"


def path_to_name(path: str | Path) -> str:
    """Derive a manifest name from a volume path.

    Uses the last path component (e.g. ``/Volumes/T9`` -> ``T9``). The
    filesystem root has no name and becomes ``_``.
    """
    path = Path(path)
    name = path.name or path.anchor or "default"
    for char in ("/", "\\", ":"):
        name = name.replace(char, "_")
    return name


def normalize_entry_path(path: str | Path, root: str | Path) -> str:
    """Return the stable manifest key for ``path`` under ``root``.

    Keys are relative to the scanned root and always use forward slashes so a
    manifest stays comparable regardless of the platform that wrote it. Name
    bytes that are not valid UTF-8 are kept as ``\\xNN`` escapes.
    """
    path = Path(path)
    root = Path(root)
    if path.is_absolute():
        try:
            path = path.relative_to(root)
        except ValueError as e:
            raise ValueError(f"{path} is not inside {root}") from e
    relative = PurePosixPath(*path.parts).as_posix()
    if relative == ".":
        return ""
    return os.fsencode(relative).decode("utf-8", "backslashreplace")


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return "..." + text[-(max_len - 3) :]
