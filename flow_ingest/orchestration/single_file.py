"""
Single-File Importer: event-driven import of one freshly rotated capture
file, typically called from the collector's post-rotation hook once per
source.

It never raises. Whatever goes wrong is logged and the caller (an
unattended hook) carries on with the next file.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..config import IngestConfig
from ..dto import Outcome
from ..errors import FlowIngestError
from ..intake.capture_tree import relative_stats_path
from ..intake.filenames import capture_timestamp
from ..pipeline.completion import CompletionTracker
from ..ports import FlowToolPort, TimeSeriesStorePort
from .steps import HOLDS_DATA, ImportSteps

logger = logging.getLogger(__name__)


class SingleFileImporter:
    """
    Usage:
        importer = SingleFileImporter(cfg, store)
        for i, source in enumerate(cfg.sources):
            importer.import_one(path_for(source), source, last=(i == len(cfg.sources) - 1))

    With process_ports set, the combined per-port series is written when
    the caller says this is the last source for the interval, or as soon
    as every configured source has reported it to this importer, whichever
    comes first.
    """

    def __init__(
        self,
        cfg: IngestConfig,
        store: TimeSeriesStorePort,
        runner: Optional[FlowToolPort] = None,
    ) -> None:
        self.cfg = cfg
        self.store = store
        self.steps = ImportSteps(cfg, store, runner)
        self.tracker = CompletionTracker(len(cfg.sources))

    def import_one(self, file: str, source: str, last: bool = False) -> List[Outcome]:
        """
        Import `file` for `source`. Returns the outcomes of every write
        attempted; an empty list if the import failed before writing.
        """
        try:
            logger.info("Importing file %s (%s), last=%d", file, source, int(last))
            stats_path = relative_stats_path(self.cfg, source, file)
            ts = capture_timestamp(stats_path)

            self._ensure_series(source, ts)

            outcomes: List[Outcome] = []
            outcome = self.steps.write_source_data(source, stats_path)
            outcomes.append(outcome)

            complete = False
            if outcome.kind in HOLDS_DATA:
                complete = self.tracker.report(ts, source, stats_path)

            if self.cfg.process_ports and self.cfg.ports and (last or complete):
                outcomes += self.steps.write_ports_data(stats_path)
                self.tracker.discard_through(ts)

            if self.cfg.process_ports_by_source and self.cfg.ports:
                outcomes += self.steps.write_ports_data(stats_path, source)

            failed = [o for o in outcomes if o.failed]
            if failed:
                logger.warning(
                    "Import of %s (%s) incomplete: %s",
                    stats_path,
                    source,
                    ", ".join(f"{o.source or '*'}:{o.port} {o.kind.value}" for o in failed),
                )
            return outcomes
        except FlowIngestError as e:
            logger.warning("Caught exception: %s", e)
        except Exception:
            logger.exception("Unexpected error importing %s (%s)", file, source)
        return []

    # --- helpers ---

    def _ensure_series(self, source: str, ts: int) -> None:
        """Create the series this file may be written to, if absent."""
        start = ts - self.cfg.step_seconds
        wanted = [(source, 0)]
        for port in self.cfg.ports:
            if self.cfg.process_ports:
                wanted.append(("", port))
            if self.cfg.process_ports_by_source:
                wanted.append((source, port))

        for key_source, port in wanted:
            if self.store.exists(key_source, port):
                continue
            logger.info("Creating series for %s:%d", key_source or "*", port)
            self.store.create(key_source, port, start=start)
