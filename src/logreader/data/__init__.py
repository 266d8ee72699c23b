"""In-memory buffers that consume the live line stream."""

from .log_buffer import DEFAULT_BUFFER_CAPACITY, LogBuffer

__all__ = ["DEFAULT_BUFFER_CAPACITY", "LogBuffer"]
