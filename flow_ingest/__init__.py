"""
flow_ingest: resumable import of nfcapd capture files into time series.

Public API (stable):
- IngestConfig, load_config       (configuration)
- CatchUpScanner, ScanReport      (catch-up import over a date range)
- SingleFileImporter              (event-driven import of one file)
- TimeSeriesStorePort, FlowToolPort (adapter interfaces)
- RrdStore, MemoryStore, build_store (storage adapters)
- DTOs: AggregateRecord, CaptureFile, Outcome, OutcomeKind, METRIC_KEYS

This package intentionally exposes a small surface area so callers can
wire stores and tools without depending on internals.
"""

from __future__ import annotations

__version__ = "0.1.0"

# Configuration
from .config import IngestConfig, load_config

# DTOs
from .dto import METRIC_KEYS, AggregateRecord, CaptureFile, Outcome, OutcomeKind

# Ports
from .ports import FlowToolPort, TimeSeriesStorePort

# Adapters
from .storage.backends import build_store
from .storage.memory import MemoryStore
from .storage.rrd import RrdStore

# Orchestration
from .orchestration.scanner import CatchUpScanner, ScanReport
from .orchestration.single_file import SingleFileImporter

__all__ = [
    "IngestConfig",
    "load_config",
    "METRIC_KEYS",
    "AggregateRecord",
    "CaptureFile",
    "Outcome",
    "OutcomeKind",
    "FlowToolPort",
    "TimeSeriesStorePort",
    "build_store",
    "MemoryStore",
    "RrdStore",
    "CatchUpScanner",
    "ScanReport",
    "SingleFileImporter",
]
