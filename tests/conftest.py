from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from flow_ingest.config import IngestConfig
from flow_ingest.errors import ToolInvocationFailure
from flow_ingest.processor.nfdump import NfdumpQuery
from flow_ingest.storage.memory import MemoryStore

TOTALS_OUTPUT = [
    "nfdump -I",
    "Ident: test",
    "Flows: 10",
    "Flows_tcp: 7",
    "Flows_udp: 3",
    "Flows_icmp: 0",
    "Flows_other: 0",
    "Packets: 500",
    "Packets_tcp: 400",
    "Packets_udp: 100",
    "Packets_icmp: 0",
    "Packets_other: 0",
    "Bytes: 60000",
    "Bytes_tcp: 50000",
    "Bytes_udp: 10000",
    "Bytes_icmp: 0",
    "Bytes_other: 0",
]

BREAKDOWN_OUTPUT = [
    "nfdump -s dstport:p",
    "ts,te,td,pr,val,fl,flP,ipkt,ipktP,ibyt,ibytP,ipps,ipbs,ibpp",
    "2024-01-01 00:00:00,2024-01-01 00:04:59,299.000,TCP,80,5,100.0,200,100.0,30000,100.0,0,802,150",
]


class FakeRunner:
    """Scripted stand-in for NfdumpRunner; records every query."""

    def __init__(self, respond: Optional[Callable[[NfdumpQuery], List[str]]] = None) -> None:
        self.queries: List[NfdumpQuery] = []
        self._respond = respond
        self.fail_paths: Dict[str, str] = {}

    def execute(self, query: NfdumpQuery) -> List[str]:
        self.queries.append(query)
        if query.stats_path in self.fail_paths:
            raise ToolInvocationFailure(self.fail_paths[query.stats_path], {"stats_path": query.stats_path})
        if self._respond is not None:
            return self._respond(query)
        return list(TOTALS_OUTPUT if query.totals else BREAKDOWN_OUTPUT)

    def totals_queries(self) -> List[NfdumpQuery]:
        return [q for q in self.queries if q.totals]

    def port_queries(self) -> List[NfdumpQuery]:
        return [q for q in self.queries if not q.totals]


@pytest.fixture
def profiles_root(tmp_path: Path) -> Path:
    root = tmp_path / "profiles-data"
    (root / "live").mkdir(parents=True)
    return root


@pytest.fixture
def make_cfg(profiles_root: Path, tmp_path: Path):
    def _make(**overrides) -> IngestConfig:
        data = dict(
            sources=("gw1",),
            ports=(),
            profiles_data=profiles_root,
            profile="live",
            data_dir=tmp_path / "rrd",
            datasource="memory",
        )
        data.update(overrides)
        return IngestConfig(**data)

    return _make


@pytest.fixture
def cfg(make_cfg) -> IngestConfig:
    return make_cfg()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(step=300)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def add_capture(profiles_root: Path):
    """Create <profiles>/live/<source>/Y/m/d/nfcapd.<stamp> and return its path."""

    def _add(source: str, stamp: str) -> Path:
        day = date(int(stamp[0:4]), int(stamp[4:6]), int(stamp[6:8]))
        d = profiles_root / "live" / source / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}"
        d.mkdir(parents=True, exist_ok=True)
        p = d / f"nfcapd.{stamp}"
        p.write_bytes(b"")
        return p

    return _add
