"""
Per-file write steps shared by the catch-up scanner and the single-file
importer: summarize-then-write for the per-source series, and
breakdown-then-write for the port series.
"""

from __future__ import annotations

from typing import List, Optional

from ..config import IngestConfig
from ..dto import Outcome, OutcomeKind
from ..pipeline.checkpoints import CheckpointResolver
from ..pipeline.writer import SeriesWriter
from ..ports import FlowToolPort, TimeSeriesStorePort
from ..processor.nfdump import NfdumpRunner
from ..processor.port_breakdown import PortBreakdownExtractor
from ..processor.summary import FlowSummarizer

# The per-source series holds the file's timestamp after either of these.
# A stale write only shows the series is past it.
HOLDS_DATA = (OutcomeKind.WRITTEN, OutcomeKind.NOT_UPDATABLE)


class ImportSteps:
    def __init__(
        self,
        cfg: IngestConfig,
        store: TimeSeriesStorePort,
        runner: Optional[FlowToolPort] = None,
    ) -> None:
        self.cfg = cfg
        self.store = store
        self.runner = runner or NfdumpRunner(cfg)
        self.checkpoints = CheckpointResolver(store, check_last_update=cfg.check_last_update)
        self.summarizer = FlowSummarizer(self.runner, self.checkpoints)
        self.extractor = PortBreakdownExtractor(self.runner, self.checkpoints, cfg.sources)
        self.writer = SeriesWriter(store, step=cfg.step_seconds)

    def write_source_data(self, source: str, stats_path: str) -> Outcome:
        """Fill the unfiltered series of one source from one file."""
        outcome = self.summarizer.summarize(stats_path, source)
        if outcome.ok and outcome.record is not None:
            return self.writer.write(outcome.record)
        return outcome

    def write_ports_data(self, stats_path: str, source: Optional[str] = None) -> List[Outcome]:
        """Fill every configured port series; source=None means combined."""
        out: List[Outcome] = []
        for outcome in self.extractor.breakdown(stats_path, self.cfg.ports, source):
            if outcome.ok and outcome.record is not None:
                out.append(self.writer.write(outcome.record))
            else:
                out.append(outcome)
        return out
