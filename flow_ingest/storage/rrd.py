"""
RRD-backed series store.

One round-robin database per (source, port) in `data_dir`:
  <source>.rrd          unfiltered per-source series
  <source>_<port>.rrd   per-source port breakdown
  _<port>.rrd           all sources combined, one port
  _all.rrd              all sources combined, no filter

Everything goes through the `rrdtool` CLI (create / last / update / info),
so no compiled binding is needed. rrdtool itself refuses updates that do
not move time forward; we surface that as StaleWrite.
"""

from __future__ import annotations

import logging
import re
import subprocess
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..dto import METRIC_KEYS, AggregateRecord, StructureReport
from ..errors import StaleWrite, StoreUnreachable, ToolInvocationFailure
from ..proc import ProcResult, format_command, run_checked

logger = logging.getLogger(__name__)

# (steps per row, rows): 45 days of single steps, 90 days of 30 min,
# 1 year of 2 h and 5 years of daily averages at a 300 s step.
DEFAULT_RRA_LAYOUT: Tuple[Tuple[int, int], ...] = (
    (1, 12960),
    (6, 4320),
    (24, 4380),
    (288, 1825),
)
CONSOLIDATIONS: Tuple[str, ...] = ("AVERAGE", "MAX")
XFF = 0.5

_STALE_MARKERS = ("illegal attempt to update", "minimum one second step")
_INFO_RE = re.compile(r"^(?P<key>[^=]+?)\s*=\s*(?P<value>.*)$")


class RrdStore:
    """
    Parameters
    ----------
    data_dir : Path
        Directory for the .rrd files; created on first write.
    rrdtool_path : str
        rrdtool binary.
    step : int
        Series step in seconds; heartbeat is two steps.
    timeout_s : float
        Timeout for one rrdtool call.
    """

    def __init__(
        self,
        data_dir: Path,
        *,
        rrdtool_path: str = "rrdtool",
        step: int = 300,
        timeout_s: float = 30.0,
        layout: Tuple[Tuple[int, int], ...] = DEFAULT_RRA_LAYOUT,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.rrdtool_path = rrdtool_path
        self.step = int(step)
        self.timeout_s = float(timeout_s)
        self.layout = tuple(layout)

    # --- paths ---

    def data_path(self, source: str, port: int = 0) -> Path:
        if not source:
            name = f"_{int(port)}" if port else "_all"
        elif port:
            name = f"{source}_{int(port)}"
        else:
            name = source
        return self.data_dir / f"{name}.rrd"

    def exists(self, source: str, port: int = 0) -> bool:
        return self.data_path(source, port).is_file()

    # --- schema ---

    def schema_args(self) -> List[str]:
        heartbeat = self.step * 2
        args = [f"DS:{name}:ABSOLUTE:{heartbeat}:U:U" for name in METRIC_KEYS]
        for cf in CONSOLIDATIONS:
            for steps, rows in self.layout:
                args.append(f"RRA:{cf}:{XFF}:{steps}:{rows}")
        return args

    @property
    def expected_rows(self) -> int:
        return sum(rows for _, rows in self.layout) * len(CONSOLIDATIONS)

    # --- operations ---

    def last_update(self, source: str, port: int = 0) -> Optional[int]:
        p = self.data_path(source, port)
        if not p.is_file():
            return None
        r = self._run_store(["last", str(p)])
        try:
            return int(r.stdout.strip().splitlines()[0])
        except (IndexError, ValueError):
            raise StoreUnreachable("unexpected rrdtool last output", {"path": str(p), "stdout": r.stdout.strip()})

    def create(self, source: str, port: int = 0, *, start: Optional[int] = None, reset: bool = False) -> bool:
        p = self.data_path(source, port)
        if p.is_file() and not reset:
            return False

        p.parent.mkdir(parents=True, exist_ok=True)
        if start is None:
            start = int(time.time()) - 3 * 365 * 86400
        args = ["create", str(p), "--start", str(int(start)), "--step", str(self.step)] + self.schema_args()
        r = self._run(args)
        if r.returncode != 0:
            raise ToolInvocationFailure(
                "rrdtool create failed",
                {"path": str(p), "stderr": r.stderr.strip()},
            )
        logger.info("Created series %s", p.name)
        return True

    def update(self, record: AggregateRecord) -> None:
        p = self.data_path(record.source, record.port)
        values = ":".join(str(int(record.metrics.get(k, 0))) for k in METRIC_KEYS)
        args = ["update", str(p), "--template", ":".join(METRIC_KEYS), f"{int(record.timestamp)}:{values}"]
        r = self._run(args)
        if r.returncode == 0:
            return

        stderr = r.stderr.strip()
        if any(marker in stderr.lower() for marker in _STALE_MARKERS):
            raise StaleWrite(
                "rrdtool rejected non-increasing timestamp",
                {"path": str(p), "timestamp": record.timestamp, "stderr": stderr},
            )
        raise ToolInvocationFailure("rrdtool update failed", {"path": str(p), "stderr": stderr})

    def validate_structure(self, source: str, port: int = 0) -> StructureReport:
        """
        Compare step, data source names and total RRA rows of an existing
        file with what `create` would produce now.
        """
        p = self.data_path(source, port)
        if not p.is_file():
            return StructureReport(True, f"{p.name} does not exist yet", expected_rows=self.expected_rows)

        info = self.info(source, port)

        step = info.get("step")
        if step is not None and int(step) != self.step:
            return StructureReport(False, f"step is {step}, expected {self.step}", self.expected_rows)

        ds_names = {m.group(1) for k in info if (m := re.match(r"^ds\[([^\]]+)\]\.", k))}
        missing = [k for k in METRIC_KEYS if k not in ds_names]
        if missing:
            return StructureReport(False, f"missing data sources: {', '.join(missing)}", self.expected_rows)

        actual_rows = sum(int(v) for k, v in info.items() if re.match(r"^rra\[\d+\]\.rows$", k))
        if actual_rows != self.expected_rows:
            return StructureReport(
                False,
                "retention layout differs; re-import with --force to rebuild",
                expected_rows=self.expected_rows,
                actual_rows=actual_rows,
            )
        return StructureReport(True, "ok", expected_rows=self.expected_rows, actual_rows=actual_rows)

    def info(self, source: str, port: int = 0) -> Dict[str, str]:
        """Parsed `rrdtool info` output: key -> unquoted value."""
        p = self.data_path(source, port)
        r = self._run_store(["info", str(p)])
        out: Dict[str, str] = {}
        for line in r.stdout.splitlines():
            m = _INFO_RE.match(line.strip())
            if m is None:
                continue
            out[m.group("key").strip()] = m.group("value").strip().strip('"')
        return out

    def reset(self) -> None:
        if not self.data_dir.is_dir():
            return
        removed = 0
        for p in sorted(self.data_dir.glob("*.rrd")):
            p.unlink()
            removed += 1
        logger.info("Removed %d series from %s", removed, self.data_dir)

    # --- helpers ---

    def _run(self, args: List[str]) -> ProcResult:
        full = [self.rrdtool_path] + args
        try:
            return run_checked(full, timeout_s=self.timeout_s)
        except FileNotFoundError:
            raise StoreUnreachable("rrdtool not found", {"rrdtool_path": self.rrdtool_path})
        except OSError as e:
            raise StoreUnreachable("could not start rrdtool", {"rrdtool_path": self.rrdtool_path, "error": str(e)})
        except subprocess.TimeoutExpired:
            raise StoreUnreachable("rrdtool timed out", {"command": format_command(full)})

    def _run_store(self, args: List[str]) -> ProcResult:
        """Run a read command; any failure means we cannot trust the store."""
        r = self._run(args)
        if r.returncode != 0:
            raise StoreUnreachable(
                f"rrdtool {args[0]} failed",
                {"command": format_command([self.rrdtool_path] + args), "stderr": r.stderr.strip()},
            )
        return r
