"""Exception types shared across the log reader."""

from __future__ import annotations


class LogReaderError(Exception):
    """Base class for all log reader failures."""


class ConfigError(LogReaderError, ValueError):
    """Invalid or unreadable configuration."""


class ConnectError(LogReaderError):
    """A single connection attempt failed.

    The original exception (DNS lookup, authentication, timeout, channel
    open) is chained as ``__cause__``; callers only log it and retry.
    """

    def __init__(self, message: str, *, host: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.host = host


__all__ = ["LogReaderError", "ConfigError", "ConnectError"]
