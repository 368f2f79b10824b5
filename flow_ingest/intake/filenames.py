"""
Capture file name parsing.

The collector names every rotated file `nfcapd.YYYYMMDDHHMM`, optionally
followed by a signed UTC offset (`nfcapd.202401010000+0100`). The digits
are the start of the capture interval and are read as UTC wall-clock time.
We never use the file's mtime: the name is the only reliable timestamp.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Tuple

from ..dto import CaptureFile
from ..errors import MalformedFilename

FILE_MARKER = "nfcapd."

_NAME_RE = re.compile(r"nfcapd\.([0-9]{12})([+-][0-9]{4})?$")


def parse_capture_name(name: str) -> Tuple[int, str | None]:
    """
    Extract (epoch seconds, utc offset or None) from a capture file name.

    Parameters
    ----------
    name : str
        File name or path; only the trailing segment has to match.

    Raises
    ------
    MalformedFilename
        If the marker or the 12-digit run is missing, or the digits are
        not a real date.
    """
    m = _NAME_RE.search(str(name))
    if m is None:
        raise MalformedFilename("could not extract timestamp from filename", {"filename": str(name)})

    digits, offset = m.group(1), m.group(2)
    try:
        dt = datetime.strptime(digits, "%Y%m%d%H%M").replace(tzinfo=timezone.utc)
    except ValueError:
        raise MalformedFilename("filename timestamp is not a valid date", {"filename": str(name)})
    return int(dt.timestamp()), offset


def capture_timestamp(name: str) -> int:
    """Epoch seconds (UTC) of the capture interval named by `name`."""
    ts, _ = parse_capture_name(name)
    return ts


def capture_file(path: str) -> CaptureFile:
    """Build a CaptureFile for `path`, raising MalformedFilename if unnamed."""
    ts, offset = parse_capture_name(path)
    return CaptureFile(path=str(path), timestamp=ts, utc_offset=offset)
