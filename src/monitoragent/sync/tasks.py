"""Upload and sync passes over all dated files.

Each pass reconciles files one at a time. An error on one file is logged and
contained; the pass continues with the next file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING

from monitoragent.core.fingerprint import FileError
from monitoragent.core.naming import parse_date, parse_remote_key, remote_key, today
from monitoragent.sync.decisions import ReconcileAction
from monitoragent.sync.storage import StorageError

if TYPE_CHECKING:
    from monitoragent.sync.reconciler import Reconciler

logger = logging.getLogger(__name__)


@dataclass
class PassResult:
    """Outcome of one upload or sync pass."""

    actions: dict[str, ReconcileAction] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)

    def count(self, action: ReconcileAction) -> int:
        return sum(1 for a in self.actions.values() if a is action)

    @property
    def transferred(self) -> int:
        return self.count(ReconcileAction.UPLOAD) + self.count(ReconcileAction.DOWNLOAD)


def list_local_dated_files(directory: Path) -> list[tuple[date, Path]]:
    """List files in directory whose name is a YYYY-MM-DD date, oldest first."""
    if not directory.is_dir():
        return []
    found = []
    for path in directory.iterdir():
        day = parse_date(path.name)
        if day is not None and path.is_file():
            found.append((day, path))
    return sorted(found)


def upload_local_files(
    reconciler: Reconciler,
    directory: Path,
    device_id: str,
    current_day: date | None = None,
    log: logging.Logger | None = None,
) -> PassResult:
    """Upload every local dated file to <date>_<device_id>.

    The local copy is removed after a confirmed upload, except for the file
    of the current day which is still being appended to.

    Args:
        reconciler: Reconciler bound to the target bucket.
        directory: Directory holding the local dated files.
        device_id: This device's identifier, used as the key suffix.
        current_day: Date considered "today" (defaults to the local date).
        log: Logger to report to.

    Returns:
        Per-key actions and the keys that failed.
    """
    log = log or logger
    current_day = current_day or today()
    result = PassResult()

    for day, path in list_local_dated_files(directory):
        key = remote_key(day, device_id)
        try:
            result.actions[key] = reconciler.upload(key, path, remove_local=day != current_day)
        except (StorageError, FileError) as e:
            log.error("Upload of %s failed: %s", path, e)
            result.failed.append(key)
        except Exception:
            log.exception("Unexpected error uploading %s", path)
            result.failed.append(key)

    if result.failed:
        log.warning(
            "Upload pass: %d transferred, %d failed",
            result.transferred,
            len(result.failed),
        )
    else:
        log.info("Upload pass: %d of %d files transferred", result.transferred, len(result.actions))
    return result


def sync_remote_files(
    reconciler: Reconciler,
    mirror: Path,
    force_sync: bool = False,
    current_day: date | None = None,
    only_day: date | None = None,
    log: logging.Logger | None = None,
) -> PassResult:
    """Fetch every dated remote object into the local mirror directory.

    Existing copies are re-verified only for today's keys, for only_day, or
    for every key when force_sync is set.

    Args:
        reconciler: Reconciler bound to the source bucket.
        mirror: Directory receiving copies, one file per object key.
        force_sync: Re-verify every existing copy.
        current_day: Date considered "today" (defaults to the local date).
        only_day: Restrict the pass to keys of this date.
        log: Logger to report to.

    Returns:
        Per-key actions and the keys that failed.

    Raises:
        TransportError: If the bucket listing fails; no file is touched.
    """
    log = log or logger
    current_day = current_day or today()
    result = PassResult()

    def wants_check(day: date) -> bool:
        return force_sync or day == current_day or day == only_day

    keys = reconciler.store.list_objects()
    listed = set(keys)
    # Checked copies whose object is no longer listed are verified too, so a
    # removed remote object removes its local copy.
    if mirror.is_dir():
        for path in sorted(mirror.iterdir()):
            parsed = parse_remote_key(path.name)
            if parsed and path.name not in listed and path.is_file() and wants_check(parsed.date):
                keys.append(path.name)

    for key in keys:
        parsed = parse_remote_key(key)
        if parsed is None:
            log.debug("Skipping non-dated object %s", key)
            continue
        if only_day is not None and parsed.date != only_day:
            continue
        force_check = wants_check(parsed.date)
        try:
            result.actions[key] = reconciler.download(key, mirror / key, force_check=force_check)
        except (StorageError, FileError) as e:
            log.error("Sync of %s failed: %s", key, e)
            result.failed.append(key)
        except Exception:
            log.exception("Unexpected error syncing %s", key)
            result.failed.append(key)

    log.info(
        "Sync pass: %d fetched, %d removed, %d failed",
        result.count(ReconcileAction.DOWNLOAD),
        result.count(ReconcileAction.DELETE_LOCAL),
        len(result.failed),
    )
    return result
