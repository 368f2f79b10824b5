"""
Utility helpers: directory setup, logging config, and UTC time utils.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "flow_ingest"
_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def ensure_dirs(*paths: Path) -> None:
    """Ensure each directory exists."""
    for p in paths:
        p.mkdir(parents=True, exist_ok=True)


def init_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """Configure a console logger + optional rotating file handler."""
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False  # avoid duplicate logs if root has handlers

    # Re-init replaces our handlers instead of stacking them
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    # Console
    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(ch)

    # File (rotating)
    if log_file is not None:
        log_file = Path(log_file)
        ensure_dirs(log_file.parent)
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5)
        fh.setLevel(log_level)
        fh.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(fh)

    return logger


def utc_today() -> date:
    """Return the current date in UTC."""
    return datetime.now(timezone.utc).date()


def ts_to_utc(ts: int) -> datetime:
    return datetime.fromtimestamp(int(ts), tz=timezone.utc)


def ts_to_iso(ts: Optional[int]) -> str:
    """Render an epoch timestamp as ISO-8601 UTC, or 'never' for None."""
    if ts is None:
        return "never"
    return ts_to_utc(ts).strftime("%Y-%m-%dT%H:%M:%SZ")
