"""Reconciliation decisions for one local/remote file pair.

Upload (local is the source):

| Local   | Remote    | Fingerprints         | Action  |
|---------|-----------|----------------------|---------|
| missing | *         | -                    | NOOP    |
| present | missing   | -                    | UPLOAD  |
| present | present   | mismatch/unverifiable| UPLOAD  |
| present | present   | match                | NOOP    |

Download (remote is the source):

| Local   | force_check | Remote  | Fingerprints          | Action       |
|---------|-------------|---------|-----------------------|--------------|
| missing | *           | *       | -                     | DOWNLOAD     |
| present | False       | *       | -                     | NOOP         |
| present | True        | missing | -                     | DELETE_LOCAL |
| present | True        | present | mismatch/unverifiable | DOWNLOAD     |
| present | True        | present | match                 | NOOP         |

A missing local file on download always fetches; when the object turns out
not to exist the fetch itself becomes a no-op.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from monitoragent.core.fingerprint import to_store_checksum

if TYPE_CHECKING:
    from monitoragent.sync.storage import ObjectMetadata


class ReconcileAction(str, Enum):
    """Action taken (or to take) for one file pair. Never persisted."""

    UPLOAD = "upload"
    DOWNLOAD = "download"
    DELETE_LOCAL = "delete_local"
    NOOP = "noop"


def checksums_match(metadata: ObjectMetadata, local_digest: str | None) -> bool:
    """Compare a local fingerprint with remote object metadata.

    The store-computed checksum is trusted first, then the uploader's custom
    metadata. With neither present the pair is unverifiable and reported as a
    mismatch, so callers always re-transfer.

    Args:
        metadata: Remote object metadata from a head call.
        local_digest: Local hex SHA-256, or None if it could not be computed.

    Returns:
        True only if a checksum source is present and equal by value.
    """
    if not local_digest:
        return False
    if metadata.checksum_sha256:
        # Stores report base64, some S3-compatible ones hex
        remote = metadata.checksum_sha256.strip()
        return remote == to_store_checksum(local_digest) or remote.lower() == local_digest
    if metadata.custom_sha256:
        return metadata.custom_sha256.strip().lower() == local_digest
    return False


def decide_upload(
    local_exists: bool,
    remote: ObjectMetadata | None,
    local_digest: str | None = None,
) -> ReconcileAction:
    """Decide what an upload pass should do.

    Args:
        local_exists: Whether the local file exists.
        remote: Remote metadata, or None if the object was not found.
        local_digest: Local fingerprint (only consulted when remote exists).
    """
    if not local_exists:
        return ReconcileAction.NOOP
    if remote is None:
        return ReconcileAction.UPLOAD
    if checksums_match(remote, local_digest):
        return ReconcileAction.NOOP
    return ReconcileAction.UPLOAD


def decide_download(
    local_exists: bool,
    force_check: bool,
    remote: ObjectMetadata | None = None,
    local_digest: str | None = None,
) -> ReconcileAction:
    """Decide what a download pass should do.

    Args:
        local_exists: Whether the local copy exists.
        force_check: Re-verify an existing local copy against the remote.
        remote: Remote metadata, or None if the object was not found. Only
            consulted when the local copy exists and force_check is set.
        local_digest: Local fingerprint.
    """
    if not local_exists:
        return ReconcileAction.DOWNLOAD
    if not force_check:
        return ReconcileAction.NOOP
    if remote is None:
        return ReconcileAction.DELETE_LOCAL
    if checksums_match(remote, local_digest):
        return ReconcileAction.NOOP
    return ReconcileAction.DOWNLOAD
