import subprocess

import pytest

from flow_ingest.errors import ToolInvocationFailure
from flow_ingest.proc import ProcResult, run_checked
from flow_ingest.processor import nfdump as nfdump_mod
from flow_ingest.processor.nfdump import NfdumpQuery, NfdumpRunner

PATH = "2024/01/01/nfcapd.202401010000"


def test_totals_command(cfg):
    args = NfdumpRunner(cfg).build_args(NfdumpQuery(sources=("gw1",), stats_path=PATH, totals=True))
    assert args == ["nfdump", "-M", f"{cfg.profile_dir}/gw1", "-r", PATH, "-I"]


def test_port_breakdown_command_joins_sources(cfg):
    q = NfdumpQuery(sources=("gw1", "gw2"), stats_path=PATH, stat="dstport:p", filter="dst port 80", csv=True)
    args = NfdumpRunner(cfg).build_args(q)
    assert args == [
        "nfdump", "-M", f"{cfg.profile_dir}/gw1:gw2", "-r", PATH,
        "-o", "csv", "-s", "dstport:p", "dst port 80",
    ]


def test_execute_echoes_command_first(cfg, monkeypatch):
    monkeypatch.setattr(nfdump_mod, "run_checked", lambda args, *, timeout_s: ProcResult(0, "Flows: 1\nBytes: 2\n", ""))
    lines = NfdumpRunner(cfg).execute(NfdumpQuery(sources=("gw1",), stats_path=PATH, totals=True))
    assert lines[0].startswith("nfdump -M")
    assert lines[1:] == ["Flows: 1", "Bytes: 2"]


@pytest.mark.parametrize(
    "behavior",
    [
        lambda args, *, timeout_s: ProcResult(255, "", "Error: file not found"),
        lambda args, *, timeout_s: (_ for _ in ()).throw(FileNotFoundError("nfdump")),
        lambda args, *, timeout_s: (_ for _ in ()).throw(PermissionError(13, "Permission denied", "nfdump")),
        lambda args, *, timeout_s: (_ for _ in ()).throw(subprocess.TimeoutExpired(args, timeout_s)),
    ],
)
def test_failures_raise_tool_invocation_failure(cfg, monkeypatch, behavior):
    monkeypatch.setattr(nfdump_mod, "run_checked", behavior)
    with pytest.raises(ToolInvocationFailure) as ei:
        NfdumpRunner(cfg).execute(NfdumpQuery(sources=("gw1",), stats_path=PATH, totals=True))
    assert not ei.value.fatal


def test_undecodable_output_is_replaced_not_raised():
    r = run_checked(["/bin/sh", "-c", "printf 'Flows: 1\\n\\377\\376 Ident\\n'"], timeout_s=10)
    assert r.returncode == 0
    assert r.stdout.splitlines() == ["Flows: 1", "\ufffd\ufffd Ident"]
