"""Scan results and progress reporting."""

import time
from dataclasses import dataclass, field
from typing import Protocol

import click

from volmanifest.formatting import format_duration, format_size, truncate


@dataclass(frozen=True)
class ScanError:
    """A file or directory that could not be read during a scan."""

    path: str
    reason: str
    is_directory: bool = False


@dataclass
class ScanResult:
    """Outcome of one scan. Per-path failures are data, not exceptions."""

    files_hashed: int = 0
    files_skipped: int = 0
    files_pruned: int = 0
    bytes_hashed: int = 0
    errors: list[ScanError] = field(default_factory=list)
    cancelled: bool = False
    start_time: float = field(default_factory=time.time)
    end_time: float | None = None

    @property
    def files_errored(self) -> int:
        return len(self.errors)

    @property
    def files_seen(self) -> int:
        return self.files_hashed + self.files_skipped + self.files_errored

    @property
    def duration_seconds(self) -> float:
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time


class ProgressSink(Protocol):
    """Receives scan lifecycle events synchronously, as they happen."""

    def start(self, estimated_files: int, estimated_bytes: int) -> None: ...

    def file_start(self, path: str, size: int) -> None: ...

    def file_done(self, success: bool) -> None: ...

    def complete(self, result: ScanResult) -> None: ...


class NoProgress:
    """Progress sink for callers that need no feedback."""

    def start(self, estimated_files: int, estimated_bytes: int) -> None:
        pass

    def file_start(self, path: str, size: int) -> None:
        pass

    def file_done(self, success: bool) -> None:
        pass

    def complete(self, result: ScanResult) -> None:
        pass


class ConsoleProgress:
    """Reports scan progress to the terminal every ``interval`` files."""

    def __init__(self, interval: int = 1000):
        self.interval = max(1, interval)
        self.total_files = 0
        self.total_bytes = 0
        self.files_done = 0
        self._current = ""

    def start(self, estimated_files: int, estimated_bytes: int) -> None:
        self.total_files = estimated_files
        self.total_bytes = estimated_bytes
        click.echo(f"Files found: {estimated_files:,} ({format_size(estimated_bytes)})", err=True)

    def file_start(self, path: str, size: int) -> None:
        self._current = path

    def file_done(self, success: bool) -> None:
        self.files_done += 1
        if self.files_done % self.interval == 0:
            click.echo(
                f"[{self.files_done:,}/{self.total_files:,} files] {truncate(self._current, 60)}",
                err=True,
            )

    def complete(self, result: ScanResult) -> None:
        duration = format_duration(result.duration_seconds)
        status = "Scan cancelled" if result.cancelled else "Scan complete"
        click.echo(
            f"{status}: {result.files_hashed:,} hashed, {result.files_skipped:,} unchanged, "
            f"{result.files_errored:,} errors ({format_size(result.bytes_hashed)} read in {duration})",
            err=True,
        )
