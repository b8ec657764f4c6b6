"""Scheduler for the agent's periodic loops.

This module provides independent interval jobs:
- Health check every check_duration seconds
- Upload of local dated files every upload_duration minutes
- Sync of remote dated files every sync_duration minutes
- Public IP report every report_duration minutes

Each job runs in its own worker thread, one instance at a time, so a stalled
network call only delays its own loop.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from monitoragent.sync.tasks import PassResult, sync_remote_files, upload_local_files

if TYPE_CHECKING:
    from monitoragent.core.config import AgentConfig
    from monitoragent.monitor.health import HealthChecker
    from monitoragent.monitor.ip_report import IpReporter
    from monitoragent.sync.reconciler import Reconciler

JOB_HEALTH_CHECK = "health_check"
JOB_UPLOAD = "upload"
JOB_SYNC = "sync"
JOB_IP_REPORT = "ip_report"


class AgentScheduler:
    """Drive the health check, upload, sync and IP report loops."""

    def __init__(
        self,
        config: AgentConfig,
        log: logging.Logger,
        reconciler: Reconciler | None = None,
        health_checker: HealthChecker | None = None,
        ip_reporter: IpReporter | None = None,
        local_dir: Path | None = None,
        mirror_dir: Path | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            config: Agent configuration (intervals, flags, device id).
            log: Logger passed to every loop.
            reconciler: Reconciler for the bucket; upload/sync need it.
            health_checker: Checker for the health loop.
            ip_reporter: Reporter for the IP loop.
            local_dir: Directory of local dated files.
            mirror_dir: Directory receiving remote copies.
        """
        self._config = config
        self._log = log
        self._reconciler = reconciler
        self._health_checker = health_checker
        self._ip_reporter = ip_reporter
        self._local_dir = local_dir
        self._mirror_dir = mirror_dir
        self._scheduler: BackgroundScheduler | None = None

    def _health_job(self) -> None:
        """Job function for the health check loop."""
        if self._health_checker is None:
            return
        try:
            self._health_checker.check()
        except Exception:
            self._log.exception("Error during health check")

    def _upload_job(self) -> None:
        """Job function for the upload loop."""
        self._log.info("Starting scheduled upload")
        try:
            self.upload_now()
        except Exception:
            self._log.exception("Error during scheduled upload")

    def _sync_job(self) -> None:
        """Job function for the sync loop."""
        self._log.info("Starting scheduled sync (force: %s)", self._config.force_sync)
        try:
            self.sync_now()
        except Exception:
            self._log.exception("Error during scheduled sync")

    def _ip_report_job(self) -> None:
        """Job function for the IP report loop."""
        if self._ip_reporter is None:
            return
        try:
            self._ip_reporter.report()
        except Exception:
            self._log.exception("Error during IP report")

    def upload_now(self) -> PassResult:
        """Run one upload pass immediately."""
        if self._reconciler is None or self._local_dir is None:
            raise RuntimeError("Upload requires a reconciler and a local directory")
        return upload_local_files(
            self._reconciler,
            self._local_dir,
            self._config.device_id,
            log=self._log,
        )

    def sync_now(self, force: bool | None = None) -> PassResult:
        """Run one sync pass immediately.

        Args:
            force: Override the configured forceSync flag.
        """
        if self._reconciler is None or self._mirror_dir is None:
            raise RuntimeError("Sync requires a reconciler and a mirror directory")
        return sync_remote_files(
            self._reconciler,
            self._mirror_dir,
            force_sync=self._config.force_sync if force is None else force,
            log=self._log,
        )

    @property
    def job_ids(self) -> list[str]:
        if self._scheduler is None:
            return []
        return sorted(job.id for job in self._scheduler.get_jobs())

    def start(self) -> None:
        """Start the scheduler with every enabled loop."""
        if self._scheduler is not None:
            return  # Already running

        config = self._config
        self._scheduler = BackgroundScheduler(executors={"default": ThreadPoolExecutor(4)})
        now = datetime.now()

        if config.enable_check and self._health_checker is not None:
            self._scheduler.add_job(
                self._health_job,
                trigger=IntervalTrigger(seconds=config.check_duration),
                id=JOB_HEALTH_CHECK,
                name="Health check",
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )

        if config.enable_upload and self._reconciler is not None:
            self._scheduler.add_job(
                self._upload_job,
                trigger=IntervalTrigger(minutes=config.upload_duration),
                id=JOB_UPLOAD,
                name="Upload local dated files",
                next_run_time=now,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )

        if config.enable_sync and self._reconciler is not None:
            self._scheduler.add_job(
                self._sync_job,
                trigger=IntervalTrigger(minutes=config.sync_duration),
                id=JOB_SYNC,
                name="Sync remote dated files",
                next_run_time=now,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )

        if config.enable_ip_check and self._ip_reporter is not None:
            self._scheduler.add_job(
                self._ip_report_job,
                trigger=IntervalTrigger(minutes=config.report_duration),
                id=JOB_IP_REPORT,
                name="Public IP report",
                next_run_time=now,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )

        self._scheduler.start()
        self._log.info("Scheduler started with jobs: %s", ", ".join(self.job_ids) or "none")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            self._log.info("Scheduler stopped")
