"""
Port Breakdown Extractor: per-destination-port protocol totals.

For every configured port p we ask nfdump for `dst port p` aggregated by
destination port (`-s dstport:p -o csv`). The CSV rows carry 14 columns:

    ts, te, td, pr, val, fl, flP, ipkt, ipktP, ibyt, ibytP, ipps, ipbs, ibpp

A single query can return one row per protocol (tcp and udp on port 53,
say), so protocol values are summed, never overwritten. The header row and
nfdump's trailing summary block do not have 14 columns / start with 'ts'
and are skipped.
"""

from __future__ import annotations

import csv
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ..dto import PROTOCOLS, AggregateRecord, Outcome, OutcomeKind, empty_metrics
from ..errors import MalformedFilename, ToolInvocationFailure
from ..intake.filenames import capture_timestamp
from ..pipeline.checkpoints import CheckpointResolver
from ..ports import FlowToolPort
from .nfdump import NfdumpQuery

logger = logging.getLogger(__name__)

ROW_FIELDS = 14
HEADER_TOKEN = "ts"

# Column positions within one row
_COL_PROTO = 3
_COL_FLOWS = 5
_COL_PACKETS = 7
_COL_BYTES = 9


def split_csv_lines(lines: Iterable[str]) -> List[List[str]]:
    """Turn raw CSV output (without the echoed command) into rows."""
    return [row for row in csv.reader(line for line in lines if line.strip())]


def parse_breakdown_rows(rows: Iterable[Sequence[object]]) -> Dict[str, int]:
    """
    Accumulate qualifying rows into the 15-metric mapping.

    Protocols other than tcp/udp/icmp count as 'other'. Rows with a
    non-numeric counter are skipped like any other malformed row.
    """
    metrics = empty_metrics()

    for row in rows:
        if len(row) != ROW_FIELDS:
            continue
        if str(row[0]).strip() == HEADER_TOKEN:
            continue

        proto = str(row[_COL_PROTO]).strip().lower()
        if proto not in PROTOCOLS:
            proto = "other"

        try:
            flows = int(str(row[_COL_FLOWS]).strip())
            packets = int(str(row[_COL_PACKETS]).strip())
            octets = int(str(row[_COL_BYTES]).strip())
        except ValueError:
            logger.debug("Skipping malformed breakdown row %r", row)
            continue

        metrics[f"flows_{proto}"] += flows
        metrics[f"packets_{proto}"] += packets
        metrics[f"bytes_{proto}"] += octets
        metrics["flows"] += flows
        metrics["packets"] += packets
        metrics["bytes"] += octets

    return metrics


class PortBreakdownExtractor:
    """
    Runs one nfdump dst-port query per configured port.

    Parameters
    ----------
    runner : FlowToolPort
        Executes the queries.
    checkpoints : CheckpointResolver
        Skips ports whose series is already past the file.
    all_sources : Sequence[str]
        Sources combined when no single source is requested.
    """

    def __init__(
        self,
        runner: FlowToolPort,
        checkpoints: CheckpointResolver,
        all_sources: Sequence[str],
    ) -> None:
        self._runner = runner
        self._checkpoints = checkpoints
        self._all_sources = tuple(all_sources)

    def breakdown(self, stats_path: str, ports: Sequence[int], source: Optional[str] = None) -> List[Outcome]:
        """
        One Outcome per port. source=None builds the combined series
        (stored under source "").
        """
        key_source = source or ""
        query_sources = (source,) if source else self._all_sources

        try:
            ts = capture_timestamp(stats_path)
        except MalformedFilename as e:
            return [Outcome(OutcomeKind.MALFORMED_FILENAME, key_source, int(p), None, str(e)) for p in ports]

        out: List[Outcome] = []
        for port in ports:
            out.append(self._one_port(stats_path, int(port), key_source, query_sources, ts))
        return out

    # --- helpers ---

    def _one_port(
        self,
        stats_path: str,
        port: int,
        key_source: str,
        query_sources: Sequence[str],
        ts: int,
    ) -> Outcome:
        pending = Outcome(OutcomeKind.READY, key_source, port, ts)

        if not self._checkpoints.updatable(stats_path, key_source, port):
            return pending.with_kind(OutcomeKind.NOT_UPDATABLE, "series already past this file")

        query = NfdumpQuery(
            sources=tuple(query_sources),
            stats_path=stats_path,
            stat="dstport:p",
            filter=f"dst port {port}",
            csv=True,
        )
        try:
            lines = self._runner.execute(query)
        except ToolInvocationFailure as e:
            logger.warning("Port %d breakdown of %s failed: %s", port, stats_path, e)
            return pending.with_kind(OutcomeKind.TOOL_FAILURE, str(e))

        metrics = parse_breakdown_rows(split_csv_lines(lines[1:]))
        record = AggregateRecord(source=key_source, port=port, timestamp=ts, metrics=metrics)
        return Outcome(OutcomeKind.READY, key_source, port, ts, record=record)
