"""
Per-timestamp completion tracking.

The combined (all sources) port breakdown for a capture interval is only
meaningful once every source has its own data for that interval. Instead
of trusting the position of a source in the configured list, we count
which sources have reported each timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set


@dataclass
class _Pending:
    stats_path: str
    reported: Set[str] = field(default_factory=set)


class CompletionTracker:
    """
    Usage:
        tracker = CompletionTracker(expected_sources=3)
        if tracker.report(ts, "gw1", "2024/01/01/nfcapd.202401010000"):
            ...  # every source has reported ts
    """

    def __init__(self, expected_sources: int) -> None:
        self.expected = int(expected_sources)
        self._by_ts: Dict[int, _Pending] = {}

    def report(self, timestamp: int, source: str, stats_path: str) -> bool:
        """Record that `source` holds data for `timestamp`; True once complete."""
        p = self._by_ts.get(timestamp)
        if p is None:
            p = _Pending(stats_path=stats_path)
            self._by_ts[timestamp] = p
        p.reported.add(source)
        return self.is_complete(timestamp)

    def is_complete(self, timestamp: int) -> bool:
        p = self._by_ts.get(timestamp)
        return p is not None and len(p.reported) >= self.expected

    def missing(self, timestamp: int) -> int:
        p = self._by_ts.get(timestamp)
        return self.expected - (len(p.reported) if p else 0)

    def pending(self) -> List[tuple[int, str, int]]:
        """(timestamp, stats_path, sources reported), oldest first."""
        return [(ts, p.stats_path, len(p.reported)) for ts, p in sorted(self._by_ts.items())]

    def discard(self, timestamp: int) -> None:
        self._by_ts.pop(timestamp, None)

    def discard_through(self, timestamp: int) -> None:
        """Forget `timestamp` and everything older; those can no longer be written."""
        for ts in [t for t in self._by_ts if t <= timestamp]:
            del self._by_ts[ts]

    def __len__(self) -> int:
        return len(self._by_ts)
