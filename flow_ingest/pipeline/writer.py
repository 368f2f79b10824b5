"""
Time-Series Writer.

The single point of truth for monotonicity: whatever the upstream skip
logic decided, a record is only appended when its timestamp is newer than
the series' last point. Series are created lazily, with the fixed schema,
on their first write.
"""

from __future__ import annotations

import logging

from ..dto import AggregateRecord, Outcome, OutcomeKind
from ..errors import StaleWrite
from ..ports import TimeSeriesStorePort

logger = logging.getLogger(__name__)


class SeriesWriter:
    """
    Parameters
    ----------
    store : TimeSeriesStorePort
        Backing store.
    step : int
        Series step; a lazily created series starts one step before its
        first sample.
    """

    def __init__(self, store: TimeSeriesStorePort, *, step: int = 300) -> None:
        self._store = store
        self._step = int(step)

    def write(self, record: AggregateRecord) -> Outcome:
        """Return a WRITTEN or STALE_WRITE Outcome; fatal store errors propagate."""
        done = Outcome(OutcomeKind.WRITTEN, record.source, record.port, record.timestamp, record=record)

        last = self._store.last_update(record.source, record.port)
        if last is None:
            self._store.create(record.source, record.port, start=record.timestamp - self._step)
        elif record.timestamp <= last:
            return self._stale(done, last)

        try:
            self._store.update(record)
        except StaleWrite as e:
            return self._stale(done, (e.details or {}).get("last_update"))

        return done

    def _stale(self, outcome: Outcome, last: object) -> Outcome:
        logger.warning(
            "Stale write for %s:%d at %d (last update %s), dropped",
            outcome.source or "*",
            outcome.port,
            outcome.timestamp,
            last,
        )
        return outcome.with_kind(OutcomeKind.STALE_WRITE, f"last update {last}")
