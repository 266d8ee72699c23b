"""Default application paths."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_HOME = Path("~/.logreader")


@dataclass
class AppPaths:
    """
    Commonly used paths for the log reader.

    ``LOGREADER_HOME`` moves the whole tree; ``LOGREADER_LOG_DIR`` overrides
    only the directory that recordings and exports are written to.
    """

    root: Path = field(init=False)
    logs: Path = field(init=False)
    config_file: Path = field(init=False)

    def __post_init__(self) -> None:
        env_home = os.environ.get("LOGREADER_HOME")
        self.root = Path(env_home).expanduser() if env_home else DEFAULT_HOME.expanduser()

        env_logs_dir = os.environ.get("LOGREADER_LOG_DIR")
        if env_logs_dir:
            self.logs = Path(env_logs_dir).expanduser()
        else:
            self.logs = self.root / "logs"

        self.config_file = self.root / "config.yaml"

    def ensure(self) -> None:
        """Create directories if they do not yet exist."""
        for path in (self.root, self.logs):
            path.mkdir(parents=True, exist_ok=True)
