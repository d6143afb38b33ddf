"""Tests for configuration models and ConfigLoader."""

import pytest
from pydantic import ValidationError

from fleetperf.config.loader import ConfigLoader
from fleetperf.config.models import (
    GraphiteConfig,
    HostConfig,
    PerfConfig,
    PerfSystemConfig,
    SnapshotConfig,
)

CONFIG_YAML = """
perf:
  collect_mode: Aggressive
  max_workers: 4
graphite:
  server: ${TEST_GRAPHITE_SERVER}
  prefix: .ci.perf.
snapshot:
  enabled: true
  log_dated_dir: /var/log/run-42
hosts:
  - name: agent-1
    platform: centos-7-x86_64
    hostname: agent-1.delivery.example.net
  - name: agent-2
    platform: windows-2019-x64
    hostname: agent-2.delivery.example.net
    address: 10.0.0.2
    port: 2222
"""


class TestConfigLoader:
    """YAML loading."""

    def test_load_from_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_GRAPHITE_SERVER", "graphite.example.net")
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)

        config = ConfigLoader.load_from_file(str(path))

        assert config.perf.aggressive
        assert config.perf.max_workers == 4
        assert config.graphite.server == "graphite.example.net"
        assert config.graphite.prefix == "ci.perf"
        assert config.graphite.port == 2003
        assert config.graphite.enabled
        assert str(config.snapshot.resolve_path()) == "/var/log/run-42/perf_data.json"
        assert [h.name for h in config.hosts] == ["agent-1", "agent-2"]
        assert config.hosts[1].ssh_address == "10.0.0.2"
        assert config.hosts[0].ssh_address == "agent-1.delivery.example.net"

    def test_unset_env_var_disables_export(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TEST_GRAPHITE_SERVER", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML)

        config = ConfigLoader.load_from_file(str(path))

        assert not config.graphite.enabled

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load_from_file(str(tmp_path / "absent.yaml"))

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        config = ConfigLoader.load_from_file(str(path))

        assert config.perf.collect_mode == "normal"
        assert config.hosts == []
        assert not config.snapshot.enabled

    def test_collect_mode_override_is_validated(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("perf:\nhosts: []\n")

        assert ConfigLoader.load_from_file(str(path), collect_mode="AGGRESSIVE").perf.aggressive
        with pytest.raises(ValidationError):
            ConfigLoader.load_from_file(str(path), collect_mode="sometimes")

    def test_env_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("TEST_GRAPHITE_PORT", raising=False)
        monkeypatch.setenv("TEST_PREFIX", "ci.perf")

        raw = ConfigLoader.substitute_env_vars({
            "graphite": {"port": "${TEST_GRAPHITE_PORT:-2004}", "prefix": "${TEST_PREFIX:-other}"},
        })

        assert raw == {"graphite": {"port": "2004", "prefix": "ci.perf"}}


class TestModels:
    """Validation rules."""

    @pytest.mark.parametrize("value,expected", [
        ("off", "off"), ("NORMAL", "normal"), ("aggressive", "aggressive"), (None, "off"), (False, "off"),
    ])
    def test_collect_mode_values(self, value, expected):
        assert PerfConfig(collect_mode=value).collect_mode == expected

    def test_invalid_collect_mode(self):
        with pytest.raises(ValidationError):
            PerfConfig(collect_mode="sometimes")

    def test_mode_flags(self):
        assert not PerfConfig(collect_mode="off").enabled
        assert PerfConfig(collect_mode="normal").enabled
        assert not PerfConfig(collect_mode="normal").aggressive

    def test_max_workers_positive(self):
        with pytest.raises(ValidationError):
            PerfConfig(max_workers=0)

    def test_graphite_server_requires_prefix(self):
        with pytest.raises(ValidationError):
            GraphiteConfig(server="graphite.example.net")

    def test_graphite_port_range(self):
        with pytest.raises(ValidationError):
            GraphiteConfig(server="g", prefix="p", port=70000)

    def test_graphite_disabled_without_server(self):
        assert not GraphiteConfig(prefix="ci.perf").enabled

    def test_snapshot_needs_destination(self):
        with pytest.raises(ValidationError):
            SnapshotConfig(enabled=True)

    def test_duplicate_hostnames_rejected(self):
        host = {"name": "a", "platform": "centos-7", "hostname": "a.example.net"}
        with pytest.raises(ValidationError):
            PerfSystemConfig(hosts=[host, dict(host, name="b")])

    def test_key_path_expanded(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/ci")
        host = HostConfig(name="a", platform="centos-7", hostname="a", ssh_key_path="~/.ssh/id_rsa")
        assert host.ssh_key_path == "/home/ci/.ssh/id_rsa"
