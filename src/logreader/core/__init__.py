"""Streaming core: connection state, line fan-out, reader and retry loop.

The retry loop lives in :mod:`connection_manager` and is re-exported from the
top-level :mod:`logreader` package; this package only pulls in the
dependency-free pieces so configuration and transport modules can import
from it without cycles.
"""

from .broadcast import DEFAULT_SUBSCRIBER_CAPACITY, LineBroadcaster, Subscription
from .errors import ConfigError, ConnectError, LogReaderError
from .models import LogEntry
from .state import (
    Connected,
    Connecting,
    ConnectionState,
    Disconnected,
    Error,
    Reconnecting,
    StateCell,
)
from .stream_reader import Cancelled, EndOfStream, ReadError, read_lines

__all__ = [
    "DEFAULT_SUBSCRIBER_CAPACITY",
    "LineBroadcaster",
    "Subscription",
    "ConfigError",
    "ConnectError",
    "LogReaderError",
    "LogEntry",
    "Connected",
    "Connecting",
    "ConnectionState",
    "Disconnected",
    "Error",
    "Reconnecting",
    "StateCell",
    "Cancelled",
    "EndOfStream",
    "ReadError",
    "read_lines",
]
