"""Dated health record files: CSV storage and status queries."""

from monitoragent.records.query import StatusQuery
from monitoragent.records.store import (
    HealthRecord,
    RecordError,
    append_records,
    format_timestamp,
    read_records,
)

__all__ = [
    "HealthRecord",
    "RecordError",
    "StatusQuery",
    "append_records",
    "format_timestamp",
    "read_records",
]
