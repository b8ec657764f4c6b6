"""Logging setup for the agent process."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_path: Path | None = None, level: str | int = logging.INFO) -> logging.Logger:
    """Configure logging to output to stdout and, optionally, a file.

    Args:
        log_path: Path to the log file, or None for stdout only.
        level: Log level name or number.

    Returns:
        The configured "monitoragent" logger, to be passed to the scheduler.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger("monitoragent")
    root_logger.setLevel(level.upper() if isinstance(level, str) else level)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        # Also capture uvicorn logs to file
        for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
            logging.getLogger(uvicorn_name).addHandler(file_handler)

    return root_logger
