"""
Catch-up Scanner: imports every capture file from a start date through
today, for every configured source, resuming from the store's checkpoints.

Run outline
-----------
1. Validate the existing series layout (skipped with force).
2. With force, wipe every series first.
3. Per source: resume at the day of its checkpoint (never before the start
   date), walk day directories chronologically, and for each file newer
   than the checkpoint write the per-source series and, optionally, its
   per-source port series.
4. After all sources: write the combined per-port series for every
   interval the sources reported, oldest first.

Per-file problems are logged and the scan moves on. A missing profile
directory or an unreachable store aborts the run.
"""

from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Optional

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from ..config import IngestConfig
from ..dto import Outcome, OutcomeKind
from ..errors import FlowIngestError, MalformedFilename, MissingProfileRoot
from ..intake.capture_tree import day_dir, day_relpath, iter_days, list_day_files
from ..intake.filenames import capture_timestamp
from ..pipeline.completion import CompletionTracker
from ..ports import FlowToolPort, TimeSeriesStorePort
from ..utils import LOGGER_NAME, ts_to_iso, ts_to_utc, utc_today
from .steps import HOLDS_DATA, ImportSteps

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    sources_processed: int = 0
    days_visited: int = 0        # progress units, missing days included
    days_missing: int = 0
    files_seen: int = 0
    files_skipped: int = 0       # not a capture file, or already imported
    files_failed: int = 0
    writes: int = 0
    stale_writes: int = 0
    tool_failures: int = 0
    global_writes: int = 0


class CatchUpScanner:
    """
    Parameters
    ----------
    cfg : IngestConfig
        Sources, ports, paths and import switches.
    store : TimeSeriesStorePort
        Series backend.
    runner : FlowToolPort, optional
        Summarization tool; defaults to nfdump from cfg.
    force : bool
        Wipe all series and import from the start date.
    quiet : bool
        No progress bar.
    today : Callable[[], date]
        Last day to scan (inclusive); UTC today by default.
    """

    def __init__(
        self,
        cfg: IngestConfig,
        store: TimeSeriesStorePort,
        runner: Optional[FlowToolPort] = None,
        *,
        force: bool = False,
        quiet: bool = False,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.cfg = cfg
        self.store = store
        self.steps = ImportSteps(cfg, store, runner)
        self.force = bool(force)
        self.quiet = bool(quiet)
        self._today = today

    def run(self, start: date) -> ScanReport:
        cfg = self.cfg
        sources = cfg.sources
        report = ScanReport()

        if not self.force and sources:
            self._validate_store(sources[0])

        if self.force:
            logger.info("Resetting existing data...")
            self.store.reset()

        if not cfg.profile_dir.is_dir():
            raise MissingProfileRoot("could not read nfdump profile directory", {"path": str(cfg.profile_dir)})

        end = self._today()
        days_per_source = max((end - start).days + 1, 0)
        tracker = CompletionTracker(len(sources))
        global_floor = self._global_floor()

        # log records go through tqdm.write while the bar is drawn
        redirect = (
            nullcontext() if self.quiet else logging_redirect_tqdm(loggers=[logging.getLogger(LOGGER_NAME)])
        )
        with redirect, tqdm(
            total=days_per_source * len(sources),
            desc=f"Processing {len(sources)} sources",
            unit="day",
            disable=self.quiet,
        ) as pbar:
            for nr, source in enumerate(sources):
                if not cfg.source_dir(source).is_dir():
                    logger.warning("Source directory %s does not exist, skipping", cfg.source_dir(source))
                    pbar.update(days_per_source)
                    continue
                logger.info("Processing source %s (%d/%d)...", source, nr + 1, len(sources))
                self._scan_source(source, start, end, pbar, tracker, global_floor, report)
                report.sources_processed += 1

            if global_floor is not None and len(tracker):
                self._write_combined_ports(tracker, report)

        if report.sources_processed == 0:
            logger.warning("Import did not process any sources.")
        return report

    # --- stages ---

    def _validate_store(self, source: str) -> None:
        logger.info("Validating series structure...")
        result = self.store.validate_structure(source, 0)
        if not result.valid:
            logger.warning(
                "Series structure check failed: %s (expected rows %s, actual %s)",
                result.message,
                result.expected_rows,
                result.actual_rows,
            )

    def _global_floor(self) -> Optional[int]:
        """
        Oldest checkpoint among the combined port series, or None when the
        combined series are not written in this run.
        """
        if not (self.cfg.process_ports and self.cfg.ports):
            return None
        if self.force:
            return 0
        return min((self.steps.checkpoints.last_update("", p) or 0) for p in self.cfg.ports)

    def _scan_source(
        self,
        source: str,
        start: date,
        end: date,
        pbar: tqdm,
        tracker: CompletionTracker,
        global_floor: Optional[int],
        report: ScanReport,
    ) -> None:
        last = None if self.force else self.steps.checkpoints.last_update(source, 0)
        if last is not None and last <= 0:
            last = None

        first_day = start
        if last is not None:
            logger.info("Last update: %s", ts_to_iso(last))
            resume_ts = last if global_floor is None else min(last, global_floor)
            resume_day = ts_to_utc(resume_ts).date()
            if resume_day > first_day:
                # progress bar skips the days we do not rescan
                saved = min((resume_day - first_day).days, max((end - first_day).days + 1, 0))
                pbar.update(saved)
                first_day = resume_day

        for day in iter_days(first_day, end):
            path = day_dir(self.cfg, source, day)
            names = list_day_files(path)
            report.days_visited += 1
            pbar.update(1)

            if names is None:
                logger.debug("%s does not exist!", path)
                report.days_missing += 1
                continue

            logger.debug("Scanning path %s", path)
            pbar.set_postfix_str(f"{source} {day_relpath(day)}", refresh=False)
            for name in names:
                self._process_file(source, f"{day_relpath(day)}/{name}", last, tracker, global_floor, report)

    def _process_file(
        self,
        source: str,
        stats_path: str,
        last: Optional[int],
        tracker: CompletionTracker,
        global_floor: Optional[int],
        report: ScanReport,
    ) -> None:
        report.files_seen += 1
        try:
            ts = capture_timestamp(stats_path)
        except MalformedFilename as e:
            logger.debug("Caught exception: %s", e)
            report.files_skipped += 1
            return

        wants_combined = global_floor is not None and ts > global_floor
        present = last is not None and ts <= last

        if present and self.steps.checkpoints.enabled:
            report.files_skipped += 1
            if wants_combined:
                tracker.report(ts, source, stats_path)
            return

        try:
            outcome = self.steps.write_source_data(source, stats_path)
            self._count([outcome], report)
            if wants_combined and (present or outcome.kind in HOLDS_DATA):
                tracker.report(ts, source, stats_path)

            if self.cfg.process_ports_by_source and self.cfg.ports:
                self._count(self.steps.write_ports_data(stats_path, source), report)
        except FlowIngestError as e:
            if e.fatal:
                raise
            logger.warning("Caught exception: %s", e)
            report.files_failed += 1
        except OSError as e:
            logger.warning("Caught exception while importing %s: %s", stats_path, e)
            report.files_failed += 1

    def _write_combined_ports(self, tracker: CompletionTracker, report: ScanReport) -> None:
        for ts, stats_path, _ in tracker.pending():
            missing = tracker.missing(ts)
            if missing > 0:
                logger.debug("Combined breakdown for %s: %d source(s) without data", ts_to_iso(ts), missing)
            try:
                outcomes = self.steps.write_ports_data(stats_path)
            except FlowIngestError as e:
                if e.fatal:
                    raise
                logger.warning("Caught exception: %s", e)
                report.files_failed += 1
                continue
            except OSError as e:
                logger.warning("Caught exception while importing ports of %s: %s", stats_path, e)
                report.files_failed += 1
                continue
            finally:
                tracker.discard(ts)
            self._count(outcomes, report)
            report.global_writes += sum(1 for o in outcomes if o.kind is OutcomeKind.WRITTEN)

    # --- helpers ---

    @staticmethod
    def _count(outcomes: Iterable[Outcome], report: ScanReport) -> None:
        for o in outcomes:
            if o.kind is OutcomeKind.WRITTEN:
                report.writes += 1
            elif o.kind is OutcomeKind.STALE_WRITE:
                report.stale_writes += 1
            elif o.kind is OutcomeKind.TOOL_FAILURE:
                report.tool_failures += 1
