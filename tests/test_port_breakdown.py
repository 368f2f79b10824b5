from flow_ingest.dto import AggregateRecord, FAMILIES, PROTOCOLS, OutcomeKind
from flow_ingest.intake.filenames import capture_timestamp
from flow_ingest.pipeline.checkpoints import CheckpointResolver
from flow_ingest.processor.port_breakdown import PortBreakdownExtractor, parse_breakdown_rows, split_csv_lines

from conftest import FakeRunner

HEADER = ["ts", "te", "td", "pr", "val", "fl", "flP", "ipkt", "ipktP", "ibyt", "ibytP", "ipps", "ipbs", "ibpp"]
PATH = "2024/01/01/nfcapd.202401010000"


def _row(proto, flows, packets, octets):
    return ["2024-01-01 00:00:00", "2024-01-01 00:04:59", "299", proto, "53", flows, 0, packets, 0, octets, 0, 0, 0, 0]


def test_breakdown_scenario_single_tcp_row():
    m = parse_breakdown_rows([["ts", "te", "td", "tcp", "val", 5, 0, 200, 0, 30000, 0, 0, 0, 0]])
    # first column literally 'ts' is the header token
    assert m["flows"] == 0

    m = parse_breakdown_rows([["2024-01-01", "te", "td", "tcp", "val", 5, 0, 200, 0, 30000, 0, 0, 0, 0]])
    assert m["flows"] == 5
    assert m["flows_tcp"] == 5
    assert m["packets"] == 200
    assert m["packets_tcp"] == 200
    assert m["bytes"] == 30000
    assert m["bytes_tcp"] == 30000
    for k in ("flows_udp", "flows_icmp", "flows_other", "packets_udp", "bytes_icmp", "bytes_other"):
        assert m[k] == 0


def test_rows_for_several_protocols_accumulate():
    rows = [HEADER, _row("TCP", 5, 200, 30000), _row("UDP", 2, 4, 300), _row("udp", 1, 1, 100), _row("GRE", 3, 3, 3)]
    m = parse_breakdown_rows(rows)

    assert m["flows_tcp"] == 5
    assert m["flows_udp"] == 3
    assert m["bytes_udp"] == 400
    assert m["flows_other"] == 3
    assert m["flows"] == 11
    for family in FAMILIES:
        assert m[family] == sum(m[f"{family}_{p}"] for p in PROTOCOLS)


def test_rows_with_wrong_width_or_bad_numbers_are_skipped():
    rows = [
        ["flows", "bytes", "packets"],
        _row("TCP", 5, 200, 30000)[:13],
        _row("TCP", "x", 200, 30000),
        _row("ICMP", 1, 2, 3),
    ]
    m = parse_breakdown_rows(rows)
    assert m["flows"] == 1
    assert m["flows_icmp"] == 1
    assert m["bytes_icmp"] == 3


def test_split_csv_lines_handles_nfdump_summary_block():
    lines = [
        "ts,te,td,pr,val,fl,flP,ipkt,ipktP,ibyt,ibytP,ipps,ipbs,ibpp",
        "2024-01-01 00:00:00,2024-01-01 00:04:59,299.000,TCP,80,5,100.0,200,100.0,30000,100.0,0,802,150",
        "",
        "Summary",
        "flows,bytes,packets,avg_bps,avg_pps,avg_bpp",
        "5,30000,200,802,0,150",
    ]
    m = parse_breakdown_rows(split_csv_lines(lines))
    assert m["flows"] == 5
    assert m["bytes_tcp"] == 30000


def test_combined_breakdown_queries_all_sources_per_port(store):
    runner = FakeRunner()
    ex = PortBreakdownExtractor(runner, CheckpointResolver(store), ["gw1", "gw2"])

    outs = ex.breakdown(PATH, [80, 443])

    assert [o.port for o in outs] == [80, 443]
    assert all(o.kind is OutcomeKind.READY for o in outs)
    assert all(o.source == "" for o in outs)
    assert outs[0].record.metrics["flows_tcp"] == 5
    assert [q.filter for q in runner.queries] == ["dst port 80", "dst port 443"]
    assert all(q.sources == ("gw1", "gw2") for q in runner.queries)
    assert all(q.stat == "dstport:p" and q.csv for q in runner.queries)


def test_per_source_breakdown_and_updatable_precheck(store):
    ts = capture_timestamp(PATH)
    store.update(AggregateRecord("gw2", 443, ts))
    runner = FakeRunner()
    ex = PortBreakdownExtractor(runner, CheckpointResolver(store), ["gw1", "gw2"])

    outs = ex.breakdown(PATH, [80, 443], source="gw2")

    assert outs[0].kind is OutcomeKind.READY
    assert outs[0].record.source == "gw2"
    assert outs[1].kind is OutcomeKind.NOT_UPDATABLE
    assert len(runner.queries) == 1
    assert runner.queries[0].sources == ("gw2",)


def test_tool_failure_is_reported_per_port(store):
    runner = FakeRunner()
    runner.fail_paths[PATH] = "boom"
    outs = PortBreakdownExtractor(runner, CheckpointResolver(store), ["gw1"]).breakdown(PATH, [80])
    assert outs[0].kind is OutcomeKind.TOOL_FAILURE
