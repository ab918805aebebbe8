"""Logging initialization utilities using loguru."""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

APP_DIR_NAME = "TravelJournal"


def get_log_directory() -> str:
    """Get the per-user log directory path."""
    base = os.environ.get("LOCALAPPDATA") or os.environ.get("XDG_STATE_HOME")
    root = Path(base) if base else Path.home() / ".local" / "state"
    return str(root / APP_DIR_NAME / "logs")


def init_logging(log_dir: str | None = None, level: str = "INFO") -> Path:
    """Initialize rotating file logging under the given directory.

    Returns the directory the log files are written to.
    """
    log_path = Path(log_dir or get_log_directory()).expanduser()
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        str(log_path / "journal_{time:YYYYMMDD}.log"),
        rotation="10 MB",
        retention="10 days",
        compression="zip",
        backtrace=False,
        diagnose=False,
        level=level.upper(),
    )
    return log_path


def find_latest_log_file(log_dir: str | None = None) -> Path | None:
    """Find the latest log file in the specified directory."""
    log_path = Path(log_dir or get_log_directory()).expanduser()
    try:
        log_files = list(log_path.glob("journal_*.log"))
        if not log_files:
            return None
        return max(log_files, key=lambda p: p.stat().st_mtime)
    except OSError:
        return None
