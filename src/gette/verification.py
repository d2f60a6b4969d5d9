#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from hashlib import sha256
from pathlib import Path  # noqa: TCH003

from gette.errors import ChecksumMismatchError


def hash_file(path: Path, chunk_size_mb: int = 1) -> str:
    """Reads file bytes as chunks and hashes them.

    Args:
        path: Input file path.
        chunk_size_mb: Chunk size in megabytes.

    Returns:
        - The hex SHA-256 digest of the file.
    """
    chunk_size = chunk_size_mb * 1024 * 1024
    hash_fn = sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hash_fn.update(chunk)
    return hash_fn.hexdigest()


def verify_sha256(path: Path, expected: str) -> str:
    """Check a staged file against an expected digest.

    Raises:
        ChecksumMismatchError: If `path` is not a regular file or its digest differs.
    """
    if not path.is_file():
        raise ChecksumMismatchError(f"Checksum requested but {path.name} is not a single file")
    actual = hash_file(path)
    if actual.lower() != expected.lower():
        raise ChecksumMismatchError(f"SHA-256 mismatch for {path.name}: expected {expected.lower()}, got {actual}")
    return actual
