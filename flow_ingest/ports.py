"""
Hexagonal interfaces (Ports) for the ingestion pipeline.

These define the boundary between the import logic and its two external
collaborators: the flow summarization tool and the time-series store.
Keep them small and implementation-agnostic so they're easy to fake in tests.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from .dto import AggregateRecord, StructureReport
from .processor.nfdump import NfdumpQuery


class FlowToolPort(Protocol):
    """Runs one query against the summarization tool."""

    def execute(self, query: NfdumpQuery) -> List[str]:
        """
        Return the tool's output lines. The first line is the echoed
        command and carries no data.
        Raise ToolInvocationFailure when the tool cannot produce output.
        """
        ...


class TimeSeriesStorePort(Protocol):
    """
    Append-only store keyed by (source, port).

    source == "" addresses the combined series; port == 0 the unfiltered one.
    """

    def exists(self, source: str, port: int = 0) -> bool:
        """True if a series has been created for the key."""
        ...

    def last_update(self, source: str, port: int = 0) -> Optional[int]:
        """
        Timestamp of the newest sample, or None if the series does not exist.
        Must not create the series. Raise StoreUnreachable if the store
        cannot be queried.
        """
        ...

    def create(self, source: str, port: int = 0, *, start: Optional[int] = None, reset: bool = False) -> bool:
        """
        Create the series with the fixed 15-metric schema.
        Returns False when it already exists and reset is False.
        """
        ...

    def update(self, record: AggregateRecord) -> None:
        """
        Append one sample. Raise StaleWrite if record.timestamp does not
        exceed the series' last point.
        """
        ...

    def validate_structure(self, source: str, port: int = 0) -> StructureReport:
        """Compare an existing series' layout with the expected schema."""
        ...

    def reset(self) -> None:
        """Drop every stored series."""
        ...
