from __future__ import annotations

from ..config import IngestConfig
from ..ports import TimeSeriesStorePort
from .memory import MemoryStore
from .rrd import RrdStore


def build_store(cfg: IngestConfig) -> TimeSeriesStorePort:
    """Instantiate the series backend selected by `cfg.datasource`."""
    if cfg.datasource == "memory":
        return MemoryStore(step=cfg.step_seconds)
    return RrdStore(
        cfg.data_dir,
        rrdtool_path=cfg.rrdtool_path,
        step=cfg.step_seconds,
        timeout_s=cfg.rrd_timeout_s,
    )
