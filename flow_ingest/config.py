"""
Configuration schema for the flow ingestion pipeline.

One validated, immutable object describes a whole run: which sources and
destination ports are tracked, where the capture files live, how to reach
the external tools, and where the series are stored. It is built once and
passed into every component.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

CONFIG_ENV = "FLOW_INGEST_CONFIG"


class IngestConfig(BaseModel):
    """
    Centralized, validated configuration for one import run.
    All times are UTC seconds since epoch unless otherwise noted.
    """

    model_config = ConfigDict(frozen=True)

    # === What to import ===
    sources: tuple[str, ...] = Field(
        ...,
        min_length=1,
        description="Traffic sources (collector sub-directories), e.g. gateway names.",
    )
    ports: tuple[int, ...] = Field(
        default=(),
        description="Destination ports that get their own breakdown series.",
    )

    # === Capture files ===
    profiles_data: Path = Field(
        default=Path("/var/nfdump/profiles-data"),
        description="Root directory holding one directory per profile.",
    )
    profile: str = Field(
        default="live",
        description="Profile name; capture files live under <profiles_data>/<profile>/<source>/Y/m/d.",
    )

    # === External summarization tool ===
    nfdump_path: str = Field(default="nfdump", description="nfdump binary.")
    nfdump_timeout_s: float = Field(default=120.0, gt=0, description="Timeout for one nfdump call.")

    # === Storage ===
    datasource: Literal["rrd", "memory"] = Field(
        default="rrd",
        description="Series backend. 'memory' keeps everything in-process (dry runs, tests).",
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding one series file per (source, port).",
    )
    rrdtool_path: str = Field(default="rrdtool", description="rrdtool binary.")
    rrd_timeout_s: float = Field(default=30.0, gt=0, description="Timeout for one rrdtool call.")
    step_seconds: int = Field(
        default=300,
        ge=1,
        description="Series step; matches the collector's capture rotation interval.",
    )

    # === Import behavior ===
    process_ports: bool = Field(
        default=True,
        description="Write the combined (all sources) per-port series.",
    )
    process_ports_by_source: bool = Field(
        default=False,
        description="Also write one per-port series per source.",
    )
    check_last_update: bool = Field(
        default=True,
        description="Skip files not newer than the series checkpoint. Disable for backfill/repair runs.",
    )
    import_years: int = Field(
        default=3,
        ge=0,
        description="Catch-up start, in years before today, when no start date is given.",
    )

    # === Logging ===
    log_level: str = Field(default="INFO", description="Level name for the flow_ingest logger.")
    log_file: Optional[Path] = Field(default=None, description="Rotating log file; console only if unset.")

    @field_validator("sources")
    @classmethod
    def _unique_sources(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        names = tuple(s.strip() for s in v)
        if any(not s for s in names):
            raise ValueError("source names must not be empty")
        if any(os.sep in s or ":" in s for s in names):
            raise ValueError("source names must not contain path separators or ':'")
        if len(set(names)) != len(names):
            raise ValueError("duplicate source names")
        return names

    @field_validator("ports")
    @classmethod
    def _valid_ports(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        for p in v:
            if not 1 <= int(p) <= 65535:
                raise ValueError(f"port out of range: {p}")
        if len(set(v)) != len(v):
            raise ValueError("duplicate ports")
        return tuple(int(p) for p in v)

    # --- derived paths ---

    @property
    def profile_dir(self) -> Path:
        return self.profiles_data / self.profile

    def source_dir(self, source: str) -> Path:
        return self.profile_dir / source


def load_config(path: str | os.PathLike | None = None, **overrides: Any) -> IngestConfig:
    """
    Load an IngestConfig from a YAML file.

    The file is taken from `path`, else from $FLOW_INGEST_CONFIG.
    $FLOW_INGEST_LOG_LEVEL and $FLOW_INGEST_LOG_FILE override the logging keys;
    keyword overrides (e.g. from the command line) win over both.
    Relative paths in the file are resolved against the file's directory.
    """
    raw_path = str(path or os.environ.get(CONFIG_ENV) or "").strip()
    if not raw_path:
        raise ConfigError("no configuration file given", {"env": CONFIG_ENV})

    p = Path(raw_path).expanduser().resolve()
    if not p.is_file():
        raise ConfigError("configuration file not found", {"path": str(p)})

    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError("invalid yaml config", {"path": str(p), "error": str(e)})
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping", {"path": str(p)})

    for key in ("profiles_data", "data_dir", "log_file"):
        v = data.get(key)
        if isinstance(v, str) and v.strip():
            candidate = Path(v).expanduser()
            if not candidate.is_absolute():
                data[key] = str((p.parent / candidate).resolve())

    env_level = (os.environ.get("FLOW_INGEST_LOG_LEVEL") or "").strip()
    if env_level:
        data["log_level"] = env_level
    env_log_file = (os.environ.get("FLOW_INGEST_LOG_FILE") or "").strip()
    if env_log_file:
        data["log_file"] = env_log_file

    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return IngestConfig(**data)
    except ValidationError as e:
        raise ConfigError(
            "invalid configuration",
            {"path": str(p), "errors": [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]},
        )
