from __future__ import annotations

from dataclasses import dataclass
import subprocess
from typing import Optional


@dataclass(frozen=True)
class ProcResult:
    returncode: int
    stdout: str
    stderr: str


def run_checked(
    args: list[str],
    *,
    timeout_s: Optional[float],
) -> ProcResult:
    """
    Run a command to completion and capture its output.

    Never raises on a non-zero exit; callers inspect `returncode`.
    Output is decoded as UTF-8 with undecodable bytes replaced, so stray
    binary output never fails the call. `OSError` (missing or
    non-executable binary) and `subprocess.TimeoutExpired` propagate.
    """
    cp = subprocess.run(
        args,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        timeout=timeout_s,
        check=False,
    )
    return ProcResult(cp.returncode, cp.stdout, cp.stderr)


def format_command(args: list[str]) -> str:
    """Render an argument vector the way a shell user would type it."""
    out: list[str] = []
    for a in args:
        if not a or any(c in a for c in " \t'\""):
            out.append("'" + a.replace("'", "'\\''") + "'")
        else:
            out.append(a)
    return " ".join(out)
