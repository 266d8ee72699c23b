from __future__ import annotations

from pathlib import Path

import pytest

from logreader.config.app_config import AppPaths
from logreader.config.runtime import (
    ConnectionConfig,
    LogReaderConfig,
    apply_env_overrides,
    config_from_mapping,
    load_config,
)
from logreader.core.errors import ConfigError


def test_defaults_match_the_adapter() -> None:
    cfg = ConnectionConfig()

    assert cfg.host == "192.168.43.1"
    assert cfg.port == 22
    assert cfg.username == "root"
    assert cfg.password == ""
    assert cfg.remote_path == "/tmp/ttyLog"
    assert cfg.connect_timeout_s == 2.0
    assert cfg.max_attempts == 10
    assert cfg.retry_interval_s == 2.0
    assert cfg.target == "root@192.168.43.1:22"


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    assert load_config(tmp_path / "nope.yaml") == load_config(None)


def test_yaml_sections_are_applied(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "connection:\n"
        "  host: 10.0.0.7\n"
        "  port: '2200'\n"
        "  max_attempts: 3\n"
        "  retry_interval_s: 0.5\n"
        "  unknown_key: ignored\n"
        "buffer:\n"
        "  capacity: 500\n"
        "recording:\n"
        f"  directory: {tmp_path / 'logs'}\n"
        "  max_files: 4\n",
        encoding="utf-8",
    )

    cfg = load_config(path)

    assert cfg.connection.host == "10.0.0.7"
    assert cfg.connection.port == 2200
    assert cfg.connection.max_attempts == 3
    assert cfg.connection.retry_interval_s == 0.5
    assert cfg.buffer.capacity == 500
    assert cfg.recording.directory == tmp_path / "logs"
    assert cfg.recording.max_files == 4


def test_empty_yaml_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path).connection == ConnectionConfig()


@pytest.mark.parametrize(
    "text",
    [
        "connection: [1, 2]\n",
        "- just\n- a list\n",
        "connection:\n  port: not-a-number\n",
        "connection:\n  max_attempts: 0\n",
        "connection:\n  max_attempts: 2.5\n",
        "connection:\n  port: true\n",
        "buffer:\n  capacity: 1.5\n",
        "recording:\n  max_files: 3.7\n",
        "connection:\n  host_key_policy: trust-me\n",
        "connection: {host: [unclosed\n",
    ],
)
def test_invalid_files_raise_config_error(tmp_path: Path, text: str) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(path)


def test_validation_rejects_bad_values() -> None:
    with pytest.raises(ConfigError):
        ConnectionConfig(port=0)
    with pytest.raises(ConfigError):
        ConnectionConfig(retry_interval_s=-1)
    with pytest.raises(ConfigError):
        ConnectionConfig(host="")


def test_whole_number_floats_are_accepted() -> None:
    cfg = config_from_mapping({"connection": {"max_attempts": 4.0}, "buffer": {"capacity": 200.0}})

    assert cfg.connection.max_attempts == 4
    assert isinstance(cfg.connection.max_attempts, int)
    assert cfg.buffer.capacity == 200


def test_fractional_attempts_are_not_truncated() -> None:
    with pytest.raises(ConfigError, match="max_attempts"):
        config_from_mapping({"connection": {"max_attempts": 2.5}})


def test_env_overrides_replace_connection_fields() -> None:
    env = {
        "LOGREADER_HOST": "172.16.0.9",
        "LOGREADER_PORT": "2022",
        "LOGREADER_USER": "admin",
        "LOGREADER_PASSWORD": "",
        "LOGREADER_REMOTE_FILE": "/var/log/messages",
    }

    cfg = apply_env_overrides(LogReaderConfig(), env).connection

    assert cfg.host == "172.16.0.9"
    assert cfg.port == 2022
    assert cfg.username == "admin"
    assert cfg.password == ""
    assert cfg.remote_path == "/var/log/messages"


def test_empty_env_values_are_ignored() -> None:
    base = config_from_mapping({"connection": {"host": "10.9.9.9"}})
    assert apply_env_overrides(base, {"LOGREADER_HOST": ""}) is base


def test_bad_env_port_raises() -> None:
    with pytest.raises(ConfigError):
        apply_env_overrides(LogReaderConfig(), {"LOGREADER_PORT": "twenty-two"})


def test_app_paths_follow_environment(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LOGREADER_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("LOGREADER_LOG_DIR", raising=False)

    paths = AppPaths()
    paths.ensure()

    assert paths.logs == tmp_path / "home" / "logs"
    assert paths.config_file == tmp_path / "home" / "config.yaml"
    assert paths.logs.is_dir()

    monkeypatch.setenv("LOGREADER_LOG_DIR", str(tmp_path / "elsewhere"))
    assert AppPaths().logs == tmp_path / "elsewhere"
