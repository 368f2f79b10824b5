"""
Data Transfer Objects (DTOs) used across the ingestion pipeline.

These are intentionally small, immutable (where sensible), and independent
of the external tool and of the storage backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

# Fixed 15-metric schema, in storage order.
PROTOCOLS: Tuple[str, ...] = ("tcp", "udp", "icmp", "other")
FAMILIES: Tuple[str, ...] = ("flows", "packets", "bytes")
METRIC_KEYS: Tuple[str, ...] = tuple(
    name
    for family in FAMILIES
    for name in (family, *(f"{family}_{proto}" for proto in PROTOCOLS))
)


def empty_metrics() -> Dict[str, int]:
    """Return a fresh metrics mapping with every key present and zeroed."""
    return {k: 0 for k in METRIC_KEYS}


# === Intake ===
@dataclass(frozen=True)
class CaptureFile:
    """One capture file found on disk or handed in for single-file import."""
    path: str                # path relative to the source directory (or as given)
    timestamp: int           # epoch seconds (UTC), parsed from the file name
    utc_offset: Optional[str] = None  # e.g. "+0100", parsed but not applied


# === Stored unit ===
@dataclass(frozen=True)
class AggregateRecord:
    """
    One sample for one (source, port) series.

    source == "" means all configured sources combined; port == 0 means
    no destination port filter.
    """
    source: str
    port: int
    timestamp: int
    metrics: Dict[str, int] = field(default_factory=empty_metrics)

    @property
    def key(self) -> Tuple[str, int]:
        return (self.source, self.port)


# === Outcomes ===
class OutcomeKind(str, Enum):
    READY = "ready"                          # summary produced, not yet written
    WRITTEN = "written"
    NOT_UPDATABLE = "not_updatable"          # policy skip, series already past this file
    MALFORMED_FILENAME = "malformed_filename"
    TOOL_FAILURE = "tool_failure"
    STALE_WRITE = "stale_write"


@dataclass(frozen=True)
class Outcome:
    """Result of one stage for one (source, port, file)."""
    kind: OutcomeKind
    source: str
    port: int = 0
    timestamp: Optional[int] = None
    detail: str = ""
    record: Optional[AggregateRecord] = None

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.READY, OutcomeKind.WRITTEN)

    @property
    def failed(self) -> bool:
        return self.kind in (OutcomeKind.TOOL_FAILURE, OutcomeKind.STALE_WRITE)

    def with_kind(self, kind: OutcomeKind, detail: str = "") -> "Outcome":
        return Outcome(
            kind=kind,
            source=self.source,
            port=self.port,
            timestamp=self.timestamp,
            detail=detail or self.detail,
            record=self.record,
        )


# === Store structure check ===
@dataclass(frozen=True)
class StructureReport:
    valid: bool
    message: str
    expected_rows: Optional[int] = None
    actual_rows: Optional[int] = None
