import pytest

from flow_ingest.config import IngestConfig, load_config
from flow_ingest.errors import ConfigError


def _write(tmp_path, text):
    p = tmp_path / "ingest.yaml"
    p.write_text(text, encoding="utf-8")
    return p


def test_load_resolves_relative_paths_against_file(tmp_path):
    p = _write(
        tmp_path,
        "sources: [gw1, gw2]\n"
        "ports: [80, 443]\n"
        "profiles_data: captures\n"
        "data_dir: rrd\n"
        "datasource: memory\n",
    )
    cfg = load_config(p)
    assert cfg.sources == ("gw1", "gw2")
    assert cfg.ports == (80, 443)
    assert cfg.profiles_data == (tmp_path / "captures").resolve()
    assert cfg.data_dir == (tmp_path / "rrd").resolve()
    assert cfg.source_dir("gw1") == (tmp_path / "captures").resolve() / "live" / "gw1"


def test_env_and_keyword_overrides(tmp_path, monkeypatch):
    p = _write(tmp_path, "sources: [gw1]\nlog_level: INFO\nprocess_ports: true\n")
    monkeypatch.setenv("FLOW_INGEST_CONFIG", str(p))
    monkeypatch.setenv("FLOW_INGEST_LOG_LEVEL", "WARNING")

    cfg = load_config(process_ports=False, check_last_update=None)
    assert cfg.log_level == "WARNING"
    assert cfg.process_ports is False
    assert cfg.check_last_update is True  # None means "not given"

    assert load_config(log_level="DEBUG").log_level == "DEBUG"


def test_defaults():
    cfg = IngestConfig(sources=("gw1",))
    assert cfg.profile == "live"
    assert cfg.step_seconds == 300
    assert cfg.check_last_update is True
    assert cfg.process_ports_by_source is False


@pytest.mark.parametrize(
    "text",
    [
        "sources: []\n",
        "sources: [gw1, gw1]\n",
        "sources: ['a/b']\n",
        "sources: [gw1]\nports: [0]\n",
        "sources: [gw1]\nports: [80, 80]\n",
        "sources: [gw1]\ndatasource: influx\n",
        "- just\n- a list\n",
        "sources: [gw1\n",
    ],
)
def test_invalid_files_raise_config_error(tmp_path, text):
    with pytest.raises(ConfigError) as ei:
        load_config(_write(tmp_path, text))
    assert ei.value.fatal


def test_missing_file_and_missing_env(tmp_path, monkeypatch):
    monkeypatch.delenv("FLOW_INGEST_CONFIG", raising=False)
    with pytest.raises(ConfigError):
        load_config()
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml")


def test_config_is_frozen():
    cfg = IngestConfig(sources=("gw1",))
    with pytest.raises(Exception):
        cfg.sources = ("gw2",)
