"""Status queries over local and mirrored dated files."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING

from monitoragent.core.naming import format_date, parse_remote_key, remote_key, today
from monitoragent.records.store import HealthRecord, read_records
from monitoragent.sync.tasks import list_local_dated_files, sync_remote_files

if TYPE_CHECKING:
    from monitoragent.sync.reconciler import Reconciler
    from monitoragent.sync.storage import ObjectStore

logger = logging.getLogger(__name__)


class StatusQuery:
    """Answer "give me the last N days" and "give me day D" queries.

    Today's records always come from the local file, which is the one being
    appended to. Older days come from the bucket mirror when a reconciler is
    configured, otherwise from whatever local dated files remain.
    """

    def __init__(
        self,
        local_dir: Path,
        mirror_dir: Path,
        reconciler: Reconciler | None = None,
        region: str | None = None,
        device_id: str | None = None,
    ) -> None:
        """Initialize the query.

        Args:
            local_dir: Directory of this agent's local dated files.
            mirror_dir: Directory of copies fetched from the bucket.
            reconciler: Reconciler for the bucket, or None for local only.
            region: Region used if the bucket has to be created.
            device_id: This device's identifier; its own mirrored copy of a
                day is skipped while the local file for that day remains.
        """
        self._local_dir = local_dir
        self._mirror_dir = mirror_dir
        self._reconciler = reconciler
        self._region = region
        self._device_id = device_id

    def read(self, limit: int, day: date | None = None) -> list[HealthRecord]:
        """Read records.

        Args:
            limit: Number of days to include, today counted (1 = today only).
            day: A specific day to read instead.

        Returns:
            Records in ascending date order.

        Raises:
            ValueError: If limit is below 1.
            RecordError: If a file contains a malformed row.
            StorageError: If the bucket cannot be reached.
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        current_day = today()

        if day == current_day or (day is None and limit == 1):
            logger.debug("Reading today's local file")
            return read_records(self._local_dir / format_date(current_day))

        if self._reconciler is not None:
            self._ensure_bucket(self._reconciler.store)
            sync_remote_files(self._reconciler, self._mirror_dir, only_day=day)

        if day is not None:
            logger.info("Fetching records for %s", format_date(day))
            return self._read_day(day)

        logger.info("Fetching records for the last %d days", limit)
        past_days = sorted(d for d in self._known_days() if d < current_day)
        records: list[HealthRecord] = []
        # limit counts today, which is always included
        for past_day in past_days[-(limit - 1):]:
            records.extend(self._read_day(past_day))
        records.extend(read_records(self._local_dir / format_date(current_day)))
        return records

    def _ensure_bucket(self, store: ObjectStore) -> None:
        if not store.bucket_exists():
            store.create_bucket(self._region)

    def _day_files(self, day: date) -> list[Path]:
        files = []
        local = self._local_dir / format_date(day)
        own_key = None
        if local.is_file():
            files.append(local)
            own_key = remote_key(day, self._device_id)
        if self._mirror_dir.is_dir():
            for path in sorted(self._mirror_dir.iterdir()):
                parsed = parse_remote_key(path.name)
                if (
                    parsed is not None
                    and parsed.date == day
                    and path.name != own_key
                    and path.is_file()
                ):
                    files.append(path)
        return files

    def _read_day(self, day: date) -> list[HealthRecord]:
        records: list[HealthRecord] = []
        for path in self._day_files(day):
            records.extend(read_records(path))
        return records

    def _known_days(self) -> set[date]:
        days = {day for day, _ in list_local_dated_files(self._local_dir)}
        if self._mirror_dir.is_dir():
            for path in self._mirror_dir.iterdir():
                parsed = parse_remote_key(path.name)
                if parsed is not None and path.is_file():
                    days.add(parsed.date)
        return days
