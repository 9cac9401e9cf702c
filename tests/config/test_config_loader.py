from pathlib import Path
import textwrap

import pytest

from hostprep.config.loader import load_config
from hostprep.errors import ConfigError


def test_defaults_describe_standard_server():
    cfg = load_config()
    assert cfg.timezone == "Asia/Kolkata"
    assert "mysql-server" in cfg.packages
    assert cfg.firewall.ssh_allow_from == ["45.122.120.72", "115.241.91.27", "150.129.237.38"]
    assert cfg.firewall.open_tcp_ports == [80, 443, 2222, 3000, 8000]
    assert cfg.swap.size_gib == 3
    assert cfg.apt_repos[0].list_path == "/etc/apt/sources.list.d/mongodb-org-7.0.list"
    assert cfg.apt_repos[0].keyring_path == "/usr/share/keyrings/mongodb-org-7.0.gpg"
    assert cfg.user("rahul").groups == ["sudo"]


def test_yaml_overrides_merge_over_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("HOSTPREP_TZ", "Europe/Berlin")
    f = tmp_path / "host.yaml"
    f.write_text(textwrap.dedent("""
        timezone: ${HOSTPREP_TZ}
        firewall:
          open_tcp_ports: [80, 443]
        swap:
          size_gib: 1
    """))

    cfg = load_config(f)

    assert cfg.timezone == "Europe/Berlin"
    assert cfg.firewall.open_tcp_ports == [80, 443]
    # sibling keys keep their defaults
    assert cfg.firewall.ssh_port == 22
    assert cfg.swap.path == "/swapfile"
    assert cfg.swap.size_gib == 1


def test_config_path_from_environment(tmp_path: Path, monkeypatch):
    f = tmp_path / "env.yaml"
    f.write_text("timezone: UTC\n")
    monkeypatch.setenv("HOSTPREP_CONFIG", str(f))
    assert load_config().timezone == "UTC"


def test_invalid_values_raise_config_error(tmp_path: Path):
    f = tmp_path / "bad.yaml"
    f.write_text("firewall:\n  open_tcp_ports: [70000]\n")
    with pytest.raises(ConfigError, match="invalid TCP ports"):
        load_config(f)


def test_missing_file_and_bad_yaml(tmp_path: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.yaml")
    f = tmp_path / "broken.yaml"
    f.write_text("timezone: [unclosed\n")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(f)
