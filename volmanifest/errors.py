"""Fatal error kinds raised by the engine.

Per-file problems during a scan are not exceptions; they are collected into
``ScanResult.errors``.
"""


class EngineError(Exception):
    """Base class for errors that abort the current operation."""


class StoreError(EngineError):
    """Raised when a manifest database cannot be opened, read or written."""


class SchemaMismatchError(StoreError):
    """Raised when an existing manifest database has an unrecognised layout."""


class ScanRootError(EngineError):
    """Raised when the directory to scan does not exist or is not a directory."""
