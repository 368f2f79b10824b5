"""
In-process series store.

Same contract as the RRD store (lazy schema, strictly increasing
timestamps per key) without touching disk. Used for dry runs and by the
test-suite.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from ..dto import METRIC_KEYS, AggregateRecord, StructureReport
from ..errors import StaleWrite

SeriesKey = Tuple[str, int]


class MemoryStore:
    """
    Dict-backed series keyed by (source, port).

    Each series is a list of (timestamp, metrics) in write order; `start`
    given at create time acts as the initial checkpoint, like rrdtool's
    --start.
    """

    def __init__(self, step: int = 300) -> None:
        self.step = int(step)
        self._series: Dict[SeriesKey, List[Tuple[int, Dict[str, int]]]] = {}
        self._start: Dict[SeriesKey, int] = {}

    def exists(self, source: str, port: int = 0) -> bool:
        return (source, int(port)) in self._series

    def last_update(self, source: str, port: int = 0) -> Optional[int]:
        return self._last((source, int(port)))

    def _last(self, key: SeriesKey) -> Optional[int]:
        if key not in self._series:
            return None
        points = self._series[key]
        if points:
            return points[-1][0]
        return self._start.get(key, 0)

    def create(self, source: str, port: int = 0, *, start: Optional[int] = None, reset: bool = False) -> bool:
        key = (source, int(port))
        if key in self._series and not reset:
            return False
        self._series[key] = []
        self._start[key] = int(start) if start is not None else 0
        return True

    def update(self, record: AggregateRecord) -> None:
        key = record.key
        if key not in self._series:
            self.create(record.source, record.port, start=record.timestamp - self.step)
        last = self._last(key)
        if last is not None and record.timestamp <= last:
            raise StaleWrite(
                "timestamp does not exceed last update",
                {"source": record.source, "port": record.port, "timestamp": record.timestamp, "last_update": last},
            )
        self._series[key].append((record.timestamp, {k: int(record.metrics.get(k, 0)) for k in METRIC_KEYS}))

    def validate_structure(self, source: str, port: int = 0) -> StructureReport:
        if not self.exists(source, port):
            return StructureReport(True, f"no series for {source or '*'}:{port} yet")
        return StructureReport(True, "ok")

    def reset(self) -> None:
        self._series.clear()
        self._start.clear()

    # --- inspection ---

    def keys(self) -> List[SeriesKey]:
        return sorted(self._series)

    def points(self, source: str, port: int = 0) -> List[Tuple[int, Dict[str, int]]]:
        return list(self._series.get((source, int(port)), []))
