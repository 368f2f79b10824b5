"""
nfdump driver.

Builds one nfdump command line per query, runs it to completion and hands
back the raw output lines. Parsing lives in `summary` and `port_breakdown`;
this module only knows how to talk to the binary.

Command shape:
  nfdump -M <profile_dir>/<src1:src2:...> -r <YYYY/MM/DD/nfcapd.X> [-I]
         [-o csv] [-s <stat>] [<filter>]

`-r` is resolved by nfdump relative to every directory named by `-M`, so
the same relative path addresses one source or the union of several.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Tuple

from ..config import IngestConfig
from ..errors import ToolInvocationFailure
from ..proc import format_command, run_checked

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NfdumpQuery:
    """One nfdump invocation over one capture interval."""
    sources: Tuple[str, ...]
    stats_path: str          # relative to each source directory
    totals: bool = False     # -I: whole-file statistics as "key: value" lines
    stat: str = ""           # -s, e.g. "dstport:p"
    filter: str = ""         # nfdump filter expression, e.g. "dst port 80"
    csv: bool = False        # -o csv


class NfdumpRunner:
    """
    Executes NfdumpQuery objects with the configured binary and timeout.

    Usage:
        runner = NfdumpRunner(cfg)
        lines = runner.execute(NfdumpQuery(sources=("gw1",), stats_path=..., totals=True))
    """

    def __init__(self, cfg: IngestConfig) -> None:
        self._cfg = cfg

    def build_args(self, query: NfdumpQuery) -> List[str]:
        if not query.sources:
            raise ToolInvocationFailure("nfdump query without sources", {"stats_path": query.stats_path})

        args: List[str] = [
            self._cfg.nfdump_path,
            "-M",
            f"{self._cfg.profile_dir}/{':'.join(query.sources)}",
            "-r",
            query.stats_path,
        ]
        if query.totals:
            args.append("-I")
        if query.csv:
            args += ["-o", "csv"]
        if query.stat:
            args += ["-s", query.stat]
        if query.filter:
            args.append(query.filter)
        return args

    def execute(self, query: NfdumpQuery) -> List[str]:
        """
        Run the query and return [echoed command] + stdout lines.

        Raises
        ------
        ToolInvocationFailure
            Binary missing or not executable, timeout, or non-zero exit status.
        """
        args = self.build_args(query)
        command = format_command(args)
        logger.debug("Running %s", command)

        try:
            r = run_checked(args, timeout_s=self._cfg.nfdump_timeout_s)
        except FileNotFoundError:
            raise ToolInvocationFailure("nfdump not found", {"nfdump_path": self._cfg.nfdump_path})
        except OSError as e:
            raise ToolInvocationFailure(
                "could not start nfdump",
                {"nfdump_path": self._cfg.nfdump_path, "error": str(e)},
            )
        except subprocess.TimeoutExpired:
            raise ToolInvocationFailure(
                "nfdump timed out",
                {"command": command, "timeout_s": self._cfg.nfdump_timeout_s},
            )

        if r.returncode != 0:
            raise ToolInvocationFailure(
                "nfdump failed",
                {"command": command, "returncode": r.returncode, "stderr": r.stderr.strip()},
            )

        return [command] + r.stdout.splitlines()
