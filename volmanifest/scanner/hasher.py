"""Content hashing for manifest entries."""

from pathlib import Path

from blake3 import blake3

DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1 MB

EMPTY_DIGEST = blake3(b"").hexdigest()


class ContentHasher:
    """Computes BLAKE3 digests of file contents in fixed-size chunks.

    Memory use is bounded by ``chunk_size`` regardless of file size. Read
    failures surface as ``OSError`` for the caller to record.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size

    def hash_file(self, path: str | Path) -> str:
        hasher = blake3()
        with open(path, "rb") as f:
            while chunk := f.read(self.chunk_size):
                hasher.update(chunk)
        return hasher.hexdigest()

    def hash_bytes(self, data: bytes) -> str:
        return blake3(data).hexdigest()
