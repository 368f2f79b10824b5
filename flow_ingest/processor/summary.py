"""
Flow Summarizer: whole-file protocol totals for one source.

nfdump -I prints one statistic per line after the echoed command:

    Ident: gw1
    Flows: 323829
    Flows_tcp: 300114
    ...
    Bytes_other: 0

Only the flows/packets/bytes family (optionally with a _tcp/_udp/_icmp/_other
suffix) is kept. Everything else, including banners and error messages the
tool mixes into stdout, is ignored.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable

from ..dto import FAMILIES, PROTOCOLS, AggregateRecord, Outcome, OutcomeKind, empty_metrics
from ..errors import MalformedFilename, ToolInvocationFailure
from ..intake.filenames import capture_timestamp
from ..pipeline.checkpoints import CheckpointResolver
from ..ports import FlowToolPort
from .nfdump import NfdumpQuery

logger = logging.getLogger(__name__)

_LINE_RE = re.compile(r"^\s*([A-Za-z_]+)\s*:\s*(\d+)\s*$")
_KEY_RE = re.compile(r"(flows|packets|bytes)(?:_(tcp|udp|icmp|other))?", re.IGNORECASE)


def parse_summary(lines: Iterable[str]) -> Dict[str, int]:
    """
    Parse `-I` output into the 15-metric mapping.

    The first line is the echoed command and is skipped. Lines that are not
    `name: number`, and names outside the metric family, are ignored.
    """
    metrics = empty_metrics()
    reported: set[str] = set()

    for i, line in enumerate(lines):
        if i == 0:
            continue
        m = _LINE_RE.match(str(line))
        if m is None:
            continue
        k = _KEY_RE.fullmatch(m.group(1))
        if k is None:
            continue
        family = k.group(1).lower()
        proto = (k.group(2) or "").lower()
        name = f"{family}_{proto}" if proto else family
        metrics[name] = int(m.group(2))
        reported.add(name)

    reconcile_totals(metrics, reported)
    return metrics


def reconcile_totals(metrics: Dict[str, int], reported: set[str]) -> None:
    """
    Keep `<family> == sum(<family>_<proto>)` when the tool reported a
    protocol split for that family.

    - split but no total: the total becomes the sum
    - total above the split: the remainder goes to `<family>_other`
    - total below the split: the total is raised to the sum
    A family reported only as a total is left alone.
    """
    for family in FAMILIES:
        parts = [f"{family}_{p}" for p in PROTOCOLS]
        if not any(p in reported for p in parts):
            continue
        split = sum(metrics[p] for p in parts)
        total = metrics[family]
        if family not in reported or total < split:
            metrics[family] = split
        elif total > split:
            metrics[f"{family}_other"] += total - split


class FlowSummarizer:
    """
    Runs nfdump -I over one capture file for one source.

    Usage:
        outcome = FlowSummarizer(runner, checkpoints).summarize("2024/01/01/nfcapd.202401010000", "gw1")
        if outcome.kind is OutcomeKind.READY:
            writer.write(outcome.record)
    """

    def __init__(self, runner: FlowToolPort, checkpoints: CheckpointResolver) -> None:
        self._runner = runner
        self._checkpoints = checkpoints

    def summarize(self, stats_path: str, source: str) -> Outcome:
        try:
            ts = capture_timestamp(stats_path)
        except MalformedFilename as e:
            return Outcome(OutcomeKind.MALFORMED_FILENAME, source, 0, None, str(e))

        pending = Outcome(OutcomeKind.READY, source, 0, ts)

        if not self._checkpoints.updatable(stats_path, source, 0):
            return pending.with_kind(OutcomeKind.NOT_UPDATABLE, "series already past this file")

        try:
            lines = self._runner.execute(NfdumpQuery(sources=(source,), stats_path=stats_path, totals=True))
        except ToolInvocationFailure as e:
            logger.warning("Summary of %s for %s failed: %s", stats_path, source, e)
            return pending.with_kind(OutcomeKind.TOOL_FAILURE, str(e))

        if len(lines) <= 1:
            logger.debug("Got no output for %s (%s)", stats_path, source)

        record = AggregateRecord(source=source, port=0, timestamp=ts, metrics=parse_summary(lines))
        return Outcome(OutcomeKind.READY, source, 0, ts, record=record)
