"""Content fingerprints for local/remote equality checks.

Fingerprints are SHA-256 digests of the full file content. They are only
ever compared for equality and carry no security meaning.
"""

from __future__ import annotations

import base64
import hashlib
from pathlib import Path

READ_BLOCK_SIZE = 8192


class FileError(Exception):
    """Local file could not be opened or read."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = path


def compute_fingerprint(path: Path | str) -> str:
    """Compute the SHA-256 fingerprint of a file.

    Reads the file in blocks so large files are not loaded in memory.

    Args:
        path: Path to the file to hash.

    Returns:
        Lowercase hexadecimal SHA-256 digest.

    Raises:
        FileError: If the file cannot be opened or read.
    """
    hasher = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for block in iter(lambda: f.read(READ_BLOCK_SIZE), b""):
                hasher.update(block)
    except OSError as e:
        raise FileError(f"Cannot fingerprint {path}: {e}", path) from e
    return hasher.hexdigest()


def to_store_checksum(hex_digest: str) -> str:
    """Convert a hex digest to the base64 form S3 reports as ChecksumSHA256."""
    return base64.b64encode(bytes.fromhex(hex_digest)).decode("ascii")
