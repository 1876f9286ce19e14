"""Database module for volmanifest."""

from .connection import ManifestStore
from .models import (
    CrossStoreDuplicate,
    DuplicateGroup,
    DuplicateStats,
    ManifestEntry,
    ManifestStats,
    StoreLocation,
)
from .schema import SCHEMA_VERSION, create_schema

__all__ = [
    "ManifestStore",
    "create_schema",
    "SCHEMA_VERSION",
    "ManifestEntry",
    "ManifestStats",
    "DuplicateStats",
    "DuplicateGroup",
    "StoreLocation",
    "CrossStoreDuplicate",
]
