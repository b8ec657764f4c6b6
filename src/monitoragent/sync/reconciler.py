"""Local/remote reconciliation of dated record files.

This module provides:
- FileLocks: per-file advisory locks created on demand
- Reconciler: idempotent upload/download of one file pair

Both operations are safe to repeat: a second call with no intervening change
transfers nothing. Transport errors propagate to the caller unmodified and
are never retried here; the next scheduler tick retries naturally.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from monitoragent.core.fingerprint import FileError, compute_fingerprint
from monitoragent.sync.decisions import ReconcileAction, decide_download, decide_upload
from monitoragent.sync.storage import ObjectNotFoundError

if TYPE_CHECKING:
    from monitoragent.sync.storage import ObjectMetadata, ObjectStore

logger = logging.getLogger(__name__)


class FileLocks:
    """Map from file identity to a mutex, created on demand.

    Serializes reconciliation of the same local file across scheduler loops
    and request handlers. Different files never block each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, path: Path) -> Iterator[None]:
        """Hold the lock for path for the duration of the block."""
        lock = self._lock_for(os.path.abspath(path))
        with lock:
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class Reconciler:
    """Bring one file's local and remote copies toward equality."""

    def __init__(
        self,
        store: ObjectStore,
        locks: FileLocks | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            store: Object store bound to the target bucket.
            locks: Shared per-file locks (a private set is created if None).
            log: Logger to report decisions to.
        """
        self._store = store
        self._locks = locks or FileLocks()
        self._log = log or logger

    @property
    def store(self) -> ObjectStore:
        return self._store

    def _head(self, key: str) -> ObjectMetadata | None:
        try:
            return self._store.head_object(key)
        except ObjectNotFoundError:
            return None

    def _local_fingerprint(self, path: Path) -> str | None:
        """Fingerprint path, or None if it cannot be read (assume mismatch)."""
        try:
            return compute_fingerprint(path)
        except FileError as e:
            self._log.warning("Cannot verify %s, assuming mismatch: %s", path, e)
            return None

    def upload(self, key: str, local_path: Path, remove_local: bool = False) -> ReconcileAction:
        """Make the remote object match the local file.

        Args:
            key: Object key.
            local_path: Local file to upload.
            remove_local: Delete the local file once the remote copy is
                confirmed (uploaded or already matching). The deletion
                happens under the same file lock as the upload.

        Returns:
            UPLOAD if the object was written, NOOP otherwise.

        Raises:
            TransportError: On head/put failure.
            FileError: If the local file cannot be read for upload, or
                cannot be removed afterwards.
        """
        with self._locks.hold(local_path):
            if not local_path.is_file():
                self._log.debug("Local data not present, skipping upload: %s", local_path)
                return ReconcileAction.NOOP

            remote = self._head(key)
            digest = self._local_fingerprint(local_path) if remote is not None else None
            action = decide_upload(True, remote, digest)
            if action is ReconcileAction.NOOP:
                self._log.debug("Fingerprints match, skipping upload: %s", key)
            else:
                if digest is None:
                    digest = compute_fingerprint(local_path)
                if remote is None:
                    self._log.info("Remote object %s not found, uploading %s", key, local_path)
                elif not remote.verifiable:
                    self._log.info("Remote object %s has no checksum, re-uploading", key)
                else:
                    self._log.info("Fingerprint mismatch for %s, re-uploading", key)
                self._store.put_object(key, local_path, digest)

            if remove_local:
                self._log.info("Remote copy %s confirmed, removing %s", key, local_path)
                try:
                    local_path.unlink(missing_ok=True)
                except OSError as e:
                    raise FileError(f"Cannot remove {local_path}: {e}", local_path) from e
            return action

    def download(self, key: str, local_path: Path, force_check: bool = False) -> ReconcileAction:
        """Make the local copy match the remote object.

        Args:
            key: Object key.
            local_path: Local copy to create or refresh.
            force_check: Re-verify an existing local copy against the remote.
                When False an existing copy is trusted as current.

        Returns:
            DOWNLOAD if the local copy was written, DELETE_LOCAL if it was
            removed because the remote object is gone, NOOP otherwise.

        Raises:
            TransportError: On head/get failure.
            FileError: If the local copy cannot be written or removed.
        """
        with self._locks.hold(local_path):
            if not local_path.exists():
                return self._fetch(key, local_path, reason="local copy missing")

            if not force_check:
                return decide_download(True, False)

            remote = self._head(key)
            digest = self._local_fingerprint(local_path) if remote is not None else None
            action = decide_download(True, True, remote, digest)

            if action is ReconcileAction.DELETE_LOCAL:
                self._log.info("Remote object %s is gone, removing local copy %s", key, local_path)
                try:
                    local_path.unlink(missing_ok=True)
                except OSError as e:
                    raise FileError(f"Cannot remove {local_path}: {e}", local_path) from e
                return action

            if action is ReconcileAction.DOWNLOAD:
                return self._fetch(key, local_path, reason="fingerprint mismatch")

            self._log.debug("Fingerprints match, skipping download: %s", key)
            return action

    def _fetch(self, key: str, local_path: Path, reason: str) -> ReconcileAction:
        self._log.info("Fetching %s to %s (%s)", key, local_path, reason)
        try:
            self._store.get_object(key, local_path)
        except ObjectNotFoundError:
            self._log.info("Remote object %s not found, nothing to fetch", key)
            return ReconcileAction.NOOP
        return ReconcileAction.DOWNLOAD
