"""Dated-file naming convention.

Local files carry no device suffix, remote keys do:

    local:   <data_dir>/<name>/<YYYY-MM-DD>
    remote:  <YYYY-MM-DD>_<device_id>
    mirror:  <data_dir>/<name>/remote/<object key>

The mirror directory holds copies fetched by the sync loop, keyed by the
literal object key so copies from different devices never collide.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

DATE_FORMAT = "%Y-%m-%d"
DEVICE_SEPARATOR = "_"
MIRROR_DIRNAME = "remote"


@dataclass(frozen=True)
class RemoteKey:
    """A parsed remote object key."""

    date: date
    device_id: str | None = None

    def __str__(self) -> str:
        return remote_key(self.date, self.device_id)


def today() -> date:
    """Return the current local calendar date."""
    return date.today()


def format_date(day: date) -> str:
    return day.strftime(DATE_FORMAT)


def parse_date(text: str) -> date | None:
    """Parse a YYYY-MM-DD string, returning None if it is not a valid date."""
    if len(text) != 10:
        return None
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError:
        return None


def is_date(text: str) -> bool:
    return parse_date(text) is not None


def remote_key(day: date, device_id: str | None = None) -> str:
    """Build the object key for a dated file.

    Args:
        day: Calendar date of the file.
        device_id: Originating device, or None for a bare dated key.

    Returns:
        "YYYY-MM-DD_<device_id>" or "YYYY-MM-DD".
    """
    if device_id:
        return f"{format_date(day)}{DEVICE_SEPARATOR}{device_id}"
    return format_date(day)


def parse_remote_key(key: str) -> RemoteKey | None:
    """Parse an object key of the form YYYY-MM-DD or YYYY-MM-DD_<device>.

    Returns:
        The parsed key, or None if the key does not start with a valid date.
    """
    day = parse_date(key[:10])
    if day is None:
        return None
    rest = key[10:]
    if not rest:
        return RemoteKey(day)
    if not rest.startswith(DEVICE_SEPARATOR) or len(rest) == 1:
        return None
    device_id = rest[1:]
    # Keys are mirrored to local filenames
    if "/" in device_id or "\\" in device_id:
        return None
    return RemoteKey(day, device_id)


def sanitize_device_id(device_id: str) -> str:
    """Replace characters that are unsafe in filenames and object keys.

    Only alphanumeric characters, hyphens, dots and underscores are kept.
    """
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in device_id)


def data_dir(base_dir: Path, name: str) -> Path:
    """Directory holding this agent's local dated files."""
    return base_dir / name


def mirror_dir(base_dir: Path, name: str) -> Path:
    """Directory holding copies fetched from the bucket."""
    return base_dir / name / MIRROR_DIRNAME


def local_path(base_dir: Path, name: str, day: date) -> Path:
    return data_dir(base_dir, name) / format_date(day)


def mirror_path(base_dir: Path, name: str, key: str) -> Path:
    return mirror_dir(base_dir, name) / key
