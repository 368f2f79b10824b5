"""
Command line entry point.

    flow-ingest --config ingest.yaml import --since 2024-01-01 -p
    flow-ingest --config ingest.yaml import-file /var/nfdump/profiles-data/live/gw1/2024/01/01/nfcapd.202401010000 gw1 --last
    flow-ingest --config ingest.yaml status
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .config import IngestConfig, load_config
from .errors import FlowIngestError
from .orchestration.scanner import CatchUpScanner
from .orchestration.single_file import SingleFileImporter
from .storage.backends import build_store
from .utils import init_logging, ts_to_iso, utc_today

logger = logging.getLogger(__name__)


def _parse_day(raw: str) -> date:
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {raw!r}")


def default_start(today: date, years: int) -> date:
    """Same calendar day `years` ago (Feb 29 falls back to Feb 28)."""
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        return today.replace(year=today.year - years, day=28)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="flow-ingest", description="Import nfcapd captures into per-source time series.")
    ap.add_argument("--config", "-c", default=None, help="YAML config (default: $FLOW_INGEST_CONFIG).")
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")
    ap.add_argument("--quiet", "-q", action="store_true", help="No progress bar, warnings only.")
    sub = ap.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Catch up on every capture file since a start date.")
    imp.add_argument("--since", type=_parse_day, default=None, help="First day to scan (YYYY-MM-DD).")
    imp.add_argument("--force", "-f", action="store_true", help="Wipe all series and re-import.")
    imp.add_argument("--ports", "-p", action="store_true", default=None, help="Write combined per-port series.")
    imp.add_argument("--ports-by-source", "-s", action="store_true", default=None, help="Write per-source per-port series.")
    imp.add_argument(
        "--no-check-last-update",
        dest="check_last_update",
        action="store_false",
        default=None,
        help="Summarize files even when the series is already past them.",
    )

    one = sub.add_parser("import-file", help="Import one capture file for one source.")
    one.add_argument("file", help="Capture file (absolute, or relative to the source directory).")
    one.add_argument("source", help="Source the file belongs to.")
    one.add_argument("--last", action="store_true", help="This is the last source reporting this interval.")

    sub.add_parser("status", help="Print the checkpoint of every configured series.")
    return ap


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if args.command == "import":
        out["process_ports"] = args.ports
        out["process_ports_by_source"] = args.ports_by_source
        out["check_last_update"] = args.check_last_update
    if args.verbose:
        out["log_level"] = "DEBUG"
    elif args.quiet:
        out["log_level"] = "WARNING"
    return out


def _cmd_import(cfg: IngestConfig, args: argparse.Namespace) -> int:
    store = build_store(cfg)
    start = args.since or default_start(utc_today(), cfg.import_years)
    scanner = CatchUpScanner(cfg, store, force=args.force, quiet=args.quiet)
    report = scanner.run(start)
    logger.info(
        "Import finished: %d source(s), %d file(s) seen, %d write(s), %d stale, %d failed",
        report.sources_processed,
        report.files_seen,
        report.writes,
        report.stale_writes,
        report.files_failed + report.tool_failures,
    )
    return 0


def _cmd_import_file(cfg: IngestConfig, args: argparse.Namespace) -> int:
    store = build_store(cfg)
    SingleFileImporter(cfg, store).import_one(args.file, args.source, last=args.last)
    return 0


def _cmd_status(cfg: IngestConfig, args: argparse.Namespace) -> int:
    store = build_store(cfg)
    keys: List[tuple[str, int]] = []
    for source in cfg.sources:
        keys.append((source, 0))
        keys += [(source, p) for p in cfg.ports]
    keys += [("", p) for p in cfg.ports]
    for source, port in keys:
        label = f"{source or '*'}:{port}" if port else source
        print(f"{label}: {ts_to_iso(store.last_update(source, port))}")
    return 0


_COMMANDS = {
    "import": _cmd_import,
    "import-file": _cmd_import_file,
    "status": _cmd_status,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(args.config, **_overrides(args))
        init_logging(cfg.log_level, cfg.log_file)
        return _COMMANDS[args.command](cfg, args)
    except FlowIngestError as e:
        print(str(e), file=sys.stderr)
        return 2 if e.fatal else 1


if __name__ == "__main__":
    raise SystemExit(main())
