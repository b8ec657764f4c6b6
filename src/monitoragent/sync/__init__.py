"""Reconciliation of local dated files with an object store bucket.

Usage:
    from monitoragent.sync import Reconciler, create_object_store

    store = create_object_store(config.storage_config)
    reconciler = Reconciler(store)
    reconciler.upload("2024-05-01_host", Path("/var/log/monitor/2024-05-01"))
"""

from monitoragent.sync.decisions import (
    ReconcileAction,
    checksums_match,
    decide_download,
    decide_upload,
)
from monitoragent.sync.reconciler import FileLocks, Reconciler
from monitoragent.sync.storage import (
    CHECKSUM_METADATA_KEY,
    IncompleteListingError,
    LocalFSObjectStore,
    ObjectMetadata,
    ObjectNotFoundError,
    ObjectStore,
    S3ObjectStore,
    StorageError,
    TransportError,
    create_object_store,
)
from monitoragent.sync.tasks import PassResult, sync_remote_files, upload_local_files

__all__ = [
    # Decisions
    "ReconcileAction",
    "checksums_match",
    "decide_download",
    "decide_upload",
    # Reconciler
    "FileLocks",
    "Reconciler",
    # Storage
    "CHECKSUM_METADATA_KEY",
    "IncompleteListingError",
    "LocalFSObjectStore",
    "ObjectMetadata",
    "ObjectNotFoundError",
    "ObjectStore",
    "S3ObjectStore",
    "StorageError",
    "TransportError",
    "create_object_store",
    # Passes
    "PassResult",
    "sync_remote_files",
    "upload_local_files",
]
