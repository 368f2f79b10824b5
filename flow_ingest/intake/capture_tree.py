"""
Filesystem layout of the collector's capture files.

Files are partitioned by source and day:
  <profiles_data>/<profile>/<source>/<YYYY>/<MM>/<DD>/nfcapd.YYYYMMDDHHMM

This module only enumerates; it does NOT open files and does not decide
whether a file still needs importing. Day directories that do not exist
simply mean "no data yet" for that day.
"""

from __future__ import annotations

import os
from datetime import date, timedelta
from pathlib import Path
from typing import Iterator, List, Optional

from ..config import IngestConfig


def day_relpath(day: date) -> str:
    """Relative day directory, e.g. '2024/01/31'."""
    return f"{day.year:04d}/{day.month:02d}/{day.day:02d}"


def day_dir(cfg: IngestConfig, source: str, day: date) -> Path:
    return cfg.source_dir(source) / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}"


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every day from start through end, inclusive, in order."""
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def list_day_files(path: Path) -> Optional[List[str]]:
    """
    Names of the regular files in one day directory, in listing order
    (sorted by name, which is chronological for collector file names).

    Returns None when the directory does not exist.
    """
    if not path.is_dir():
        return None
    names: List[str] = []
    for name in sorted(os.listdir(path)):
        if not (path / name).is_file():
            continue
        names.append(name)
    return names


def relative_stats_path(cfg: IngestConfig, source: str, file_path: str) -> str:
    """
    Path of a capture file relative to its source directory, which is what
    the summarization tool expects next to `-M <profile>/<sources>`.

    Paths outside the source directory (or already relative) are returned
    unchanged.
    """
    p = Path(file_path)
    if not p.is_absolute():
        return p.as_posix()
    try:
        return p.resolve().relative_to(cfg.source_dir(source).resolve()).as_posix()
    except ValueError:
        return p.as_posix()
