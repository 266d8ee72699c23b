"""Runtime configuration for the SSH log capture.

Everything is plain dataclasses with defaults that match the adapter's
fixed address, so an empty or missing YAML file still produces a working
configuration.

Expected YAML layout (all keys optional):

.. code-block:: yaml

    connection:
      host: 192.168.43.1
      port: 22
      username: root
      password: ""
      remote_path: /tmp/ttyLog
      connect_timeout_s: 2.0
      max_attempts: 10
      retry_interval_s: 2.0
      host_key_policy: auto-add
    buffer:
      capacity: 10000
      subscriber_capacity: 1000
    recording:
      directory: ~/logreader/logs
      max_file_bytes: 10485760
      max_files: 20
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

import yaml

from ..core.errors import ConfigError
from .app_config import AppPaths

HOST_KEY_POLICIES = ("auto-add", "warn", "reject")

_ENV_OVERRIDES = {
    "LOGREADER_HOST": ("host", str),
    "LOGREADER_PORT": ("port", int),
    "LOGREADER_USER": ("username", str),
    "LOGREADER_PASSWORD": ("password", str),
    "LOGREADER_REMOTE_FILE": ("remote_path", str),
}


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Where to connect and how hard to try.

    ``host_key_policy`` defaults to ``auto-add``: the adapter sits at a fixed
    local address and regenerates its host key on reflash, so any host key
    is accepted. Use ``warn`` or ``reject`` to verify against the system
    known-hosts file (plus ``known_hosts`` when given).
    """

    host: str = "192.168.43.1"
    port: int = 22
    username: str = "root"
    password: str = ""
    remote_path: str = "/tmp/ttyLog"
    connect_timeout_s: float = 2.0
    max_attempts: int = 10
    retry_interval_s: float = 2.0
    host_key_policy: str = "auto-add"
    known_hosts: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.host:
            raise ConfigError("host must not be empty")
        if not 1 <= int(self.port) <= 65535:
            raise ConfigError(f"port out of range: {self.port}")
        if int(self.max_attempts) < 1:
            raise ConfigError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if float(self.connect_timeout_s) <= 0:
            raise ConfigError("connect_timeout_s must be positive")
        if float(self.retry_interval_s) < 0:
            raise ConfigError("retry_interval_s must not be negative")
        if self.host_key_policy not in HOST_KEY_POLICIES:
            raise ConfigError(
                f"host_key_policy must be one of {', '.join(HOST_KEY_POLICIES)}; "
                f"got {self.host_key_policy!r}"
            )
        if not self.remote_path:
            raise ConfigError("remote_path must not be empty")

    @property
    def target(self) -> str:
        return f"{self.username}@{self.host}:{self.port}"


@dataclass(frozen=True)
class BufferConfig:
    """Sizes of the display buffer and of each line subscriber's queue."""

    capacity: int = 10000
    subscriber_capacity: int = 1000

    def __post_init__(self) -> None:
        if int(self.capacity) <= 0 or int(self.subscriber_capacity) <= 0:
            raise ConfigError("buffer capacities must be positive")


@dataclass(frozen=True)
class RecordingConfig:
    """Rotation limits for recordings written to disk."""

    directory: Path = field(default_factory=lambda: AppPaths().logs)
    max_file_bytes: int = 10 * 1024 * 1024
    max_files: int = 20
    file_prefix: str = "adapter_tty"

    def __post_init__(self) -> None:
        if int(self.max_file_bytes) <= 0:
            raise ConfigError("max_file_bytes must be positive")
        if int(self.max_files) < 1:
            raise ConfigError("max_files must be >= 1")


@dataclass(frozen=True)
class LogReaderConfig:
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    buffer: BufferConfig = field(default_factory=BufferConfig)
    recording: RecordingConfig = field(default_factory=RecordingConfig)


def _section(data: Mapping[str, Any], name: str) -> MutableMapping[str, Any]:
    block = data.get(name)
    if block is None:
        return {}
    if not isinstance(block, Mapping):
        raise ConfigError(f"Section {name!r} must be a mapping, got {type(block).__name__}")
    return dict(block)


def _known(cls, data: Mapping[str, Any]) -> dict[str, Any]:
    """Keep only the keys that ``cls`` declares (unknown keys are ignored)."""
    names = {f.name for f in fields(cls)}
    return {key: data[key] for key in data.keys() & names}


def _build(cls, data: Mapping[str, Any]):
    try:
        return cls(**_known(cls, data))
    except (TypeError, ValueError) as exc:
        if isinstance(exc, ConfigError):
            raise
        raise ConfigError(f"Invalid {cls.__name__}: {exc}") from exc


def config_from_mapping(data: Mapping[str, Any] | None) -> LogReaderConfig:
    """Build :class:`LogReaderConfig` from a parsed YAML mapping."""
    if not data:
        return LogReaderConfig()

    connection = _section(data, "connection")
    _coerce_ints(connection, ("port", "max_attempts"))
    for key in ("connect_timeout_s", "retry_interval_s"):
        if key in connection:
            connection[key] = _coerce(float, connection[key], key)
    if connection.get("password") is None:
        connection.pop("password", None)

    buffer = _section(data, "buffer")
    _coerce_ints(buffer, ("capacity", "subscriber_capacity"))

    recording = _section(data, "recording")
    _coerce_ints(recording, ("max_file_bytes", "max_files"))
    if "directory" in recording:
        recording["directory"] = Path(str(recording["directory"])).expanduser()

    return LogReaderConfig(
        connection=_build(ConnectionConfig, connection),
        buffer=_build(BufferConfig, buffer),
        recording=_build(RecordingConfig, recording),
    )


def _coerce(kind, value: Any, key: str):
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key}: cannot convert {value!r} to {kind.__name__}") from exc


def _coerce_int(value: Any, key: str) -> int:
    """Like ``int()`` but refuses values it would have to truncate."""
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ConfigError(f"{key}: expected a whole number, got {value!r}")
    return _coerce(int, value, key)


def _coerce_ints(section: MutableMapping[str, Any], keys) -> None:
    for key in keys:
        if key in section:
            section[key] = _coerce_int(section[key], key)


def load_config(path: str | Path | None) -> LogReaderConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to the defaults.
    """
    if path is None:
        return LogReaderConfig()
    cfg_path = Path(path).expanduser()
    if not cfg_path.exists():
        return LogReaderConfig()
    try:
        with cfg_path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse {cfg_path}: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


def apply_env_overrides(
    cfg: LogReaderConfig,
    environ: Mapping[str, str] | None = None,
) -> LogReaderConfig:
    """Return a copy of *cfg* with ``LOGREADER_*`` variables applied."""
    env = os.environ if environ is None else environ
    changes: dict[str, Any] = {}
    for var, (key, kind) in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value is None or (value == "" and key != "password"):
            continue
        changes[key] = _coerce_int(value, var) if kind is int else _coerce(kind, value, var)
    if not changes:
        return cfg
    return replace(cfg, connection=replace(cfg.connection, **changes))


__all__ = [
    "HOST_KEY_POLICIES",
    "ConnectionConfig",
    "BufferConfig",
    "RecordingConfig",
    "LogReaderConfig",
    "config_from_mapping",
    "load_config",
    "apply_env_overrides",
]
