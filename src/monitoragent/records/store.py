"""CSV storage for dated health records.

Each dated file is a sequence of 3-column rows:

    timestamp,status,origin

Files are only ever appended to locally. A row with the wrong number of
columns makes the whole read fail.
"""

from __future__ import annotations

import csv
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# One writer at a time per process; rows are small so a global lock is enough
_append_lock = threading.Lock()


class RecordError(Exception):
    """A dated file could not be read or contains a malformed row."""


@dataclass(frozen=True)
class HealthRecord:
    """One row of a dated file."""

    timestamp: str
    status: str
    origin: str

    @classmethod
    def from_row(cls, row: list[str]) -> HealthRecord:
        if len(row) != 3:
            raise RecordError(f"Expected 3 columns, got {len(row)}: {row!r}")
        return cls(timestamp=row[0], status=row[1], origin=row[2])

    def to_row(self) -> list[str]:
        return [self.timestamp, self.status, self.origin]

    def to_public(self) -> dict[str, str]:
        """Chart point without the origin."""
        return {"x": self.timestamp, "y": self.status}

    def to_private(self) -> dict[str, str]:
        """Chart point including the origin."""
        return {"x": self.timestamp, "y": self.status, "origin": self.origin}


def format_timestamp(moment: datetime | None = None) -> str:
    return (moment or datetime.now()).strftime(TIMESTAMP_FORMAT)


def append_records(path: Path, records: Iterable[HealthRecord]) -> int:
    """Append records to a dated file, creating it if needed.

    Args:
        path: Dated file path.
        records: Records to append.

    Returns:
        Number of rows written.

    Raises:
        RecordError: If the file cannot be written.
    """
    rows = [record.to_row() for record in records]
    if not rows:
        return 0
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with _append_lock, open(path, "a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerows(rows)
    except OSError as e:
        raise RecordError(f"Cannot append to {path}: {e}") from e
    return len(rows)


def read_records(path: Path) -> list[HealthRecord]:
    """Read every record of a dated file.

    A missing file reads as no records.

    Raises:
        RecordError: If the file is unreadable or any row is malformed.
    """
    try:
        with open(path, newline="", encoding="utf-8") as f:
            return [HealthRecord.from_row(row) for row in csv.reader(f) if row]
    except FileNotFoundError:
        return []
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        raise RecordError(f"Cannot read {path}: {e}") from e
