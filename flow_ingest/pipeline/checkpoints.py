"""
Checkpoints: where each series currently ends.

The store is append-only, so the newest timestamp of a series is both the
resume point of an interrupted import and the lower bound for any further
write. `updatable` turns that into a cheap pre-check so we do not run the
summarization tool for files that could never be written.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import MalformedFilename
from ..intake.filenames import capture_timestamp
from ..ports import TimeSeriesStorePort

logger = logging.getLogger(__name__)


class CheckpointResolver:
    """
    Reads checkpoints from the store and answers the updatability question.

    Parameters
    ----------
    store : TimeSeriesStorePort
        Backing store; StoreUnreachable from it propagates (fatal).
    check_last_update : bool
        When False, every well-named file counts as updatable (backfill runs).
    """

    def __init__(self, store: TimeSeriesStorePort, *, check_last_update: bool = True) -> None:
        self._store = store
        self._enabled = bool(check_last_update)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def last_update(self, source: str, port: int = 0) -> Optional[int]:
        """Newest sample timestamp for (source, port), None if never written."""
        return self._store.last_update(source, port)

    def updatable(self, file_name: str, source: str = "", port: int = 0) -> bool:
        """
        True iff the file's capture time is strictly after the checkpoint of
        (source, port), or the series has no checkpoint yet.

        A file whose name carries no timestamp is never updatable.
        """
        try:
            file_ts = capture_timestamp(file_name)
        except MalformedFilename:
            return False

        if not self._enabled:
            return True

        last = self.last_update(source, port)
        if last is None or last <= 0:
            return True
        return file_ts > last
