"""Configuration objects and loaders for the log reader.

:mod:`runtime` holds the typed dataclasses (connection target, retry policy,
buffer sizes, recording limits) and the YAML/environment loaders;
:mod:`app_config` knows where files live on disk.
"""

from .app_config import AppPaths
from .runtime import (
    HOST_KEY_POLICIES,
    BufferConfig,
    ConnectionConfig,
    LogReaderConfig,
    RecordingConfig,
    apply_env_overrides,
    config_from_mapping,
    load_config,
)

__all__ = [
    "AppPaths",
    "HOST_KEY_POLICIES",
    "BufferConfig",
    "ConnectionConfig",
    "LogReaderConfig",
    "RecordingConfig",
    "apply_env_overrides",
    "config_from_mapping",
    "load_config",
]
