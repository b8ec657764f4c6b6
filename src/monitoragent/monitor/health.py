"""Health probe of the monitored URL."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path

import httpx

from monitoragent.core.naming import format_date
from monitoragent.records.store import HealthRecord, append_records, format_timestamp

logger = logging.getLogger(__name__)

# Status recorded when the monitored URL cannot be reached at all
UNREACHABLE_STATUS = 500


def probe(url: str, timeout: float = 10.0, client: httpx.Client | None = None) -> int:
    """Request url and return its HTTP status code.

    Any request failure (DNS, connection, timeout) maps to 500.
    """
    try:
        if client is not None:
            response = client.get(url, timeout=timeout)
        else:
            response = httpx.get(url, timeout=timeout)
    except httpx.HTTPError as e:
        logger.warning("Error checking %s: %s", url, e)
        return UNREACHABLE_STATUS
    return response.status_code


class HealthChecker:
    """Probe a URL and record unhealthy results in today's dated file.

    Healthy (200) probes are not recorded: a dated file holds the incidents of
    its day.
    """

    def __init__(
        self,
        url: str,
        local_dir: Path,
        origin: str,
        timeout: float = 10.0,
        clock: Callable[[], datetime] = datetime.now,
        log: logging.Logger | None = None,
    ) -> None:
        """Initialize the checker.

        Args:
            url: Monitored URL.
            local_dir: Directory of local dated files.
            origin: Origin tag written with each record (the agent name).
            timeout: Request timeout in seconds.
            clock: Source of the current time.
            log: Logger to report to.
        """
        self._url = url
        self._local_dir = local_dir
        self._origin = origin
        self._timeout = timeout
        self._clock = clock
        self._log = log or logger
        self._client = httpx.Client(follow_redirects=True)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def _path_for(self, day: date) -> Path:
        return self._local_dir / format_date(day)

    def check(self) -> HealthRecord | None:
        """Probe once.

        Returns:
            The record written, or None if the URL was healthy.
        """
        status = probe(self._url, self._timeout, self._client)
        if status == httpx.codes.OK:
            self._log.debug("%s is healthy", self._url)
            return None

        self._log.warning("%s is unhealthy, status code %d", self._url, status)
        # Read after the probe: a past day's file may already be uploaded and removed
        now = self._clock()
        record = HealthRecord(
            timestamp=format_timestamp(now),
            status=str(status),
            origin=self._origin,
        )
        append_records(self._path_for(now.date()), [record])
        return record
