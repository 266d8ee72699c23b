"""logreader - live SSH log capture from the adapter.

Follows the adapter's TTY log with ``tail -f`` over SSH, reconnecting
automatically with a bounded number of attempts, and fans the lines out to
an in-memory display buffer and optional rotating log files.
"""

__version__ = "0.1.0"

from .config import (
    BufferConfig,
    ConnectionConfig,
    LogReaderConfig,
    RecordingConfig,
    load_config,
)
from .core import (
    Connected,
    Connecting,
    ConnectError,
    ConnectionState,
    Disconnected,
    Error,
    LogEntry,
    Reconnecting,
)
from .core.connection_manager import LogStreamManager
from .data import LogBuffer
from .dataio import LogRecorder
from .service import LoggingService

__all__ = [
    "__version__",
    "BufferConfig",
    "ConnectionConfig",
    "LogReaderConfig",
    "RecordingConfig",
    "load_config",
    "Connected",
    "Connecting",
    "ConnectError",
    "ConnectionState",
    "Disconnected",
    "Error",
    "LogEntry",
    "Reconnecting",
    "LogStreamManager",
    "LogBuffer",
    "LogRecorder",
    "LoggingService",
]
