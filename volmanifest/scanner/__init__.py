"""Scanner module for filesystem traversal and hashing."""

from .filesystem import FileInfo, count_files, walk_files
from .hasher import EMPTY_DIGEST, ContentHasher
from .progress import ConsoleProgress, NoProgress, ProgressSink, ScanError, ScanResult
from .scanner import Scanner

__all__ = [
    "Scanner",
    "ContentHasher",
    "EMPTY_DIGEST",
    "FileInfo",
    "walk_files",
    "count_files",
    "ProgressSink",
    "NoProgress",
    "ConsoleProgress",
    "ScanResult",
    "ScanError",
]
