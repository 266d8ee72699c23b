"""Bounded in-memory history of recent log entries for display."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Iterable, List, Optional

from ..core.models import LogEntry

DEFAULT_BUFFER_CAPACITY = 10000


class LogBuffer:
    """Drop-oldest ring of :class:`LogEntry` guarded by a lock.

    A consumer thread appends while the UI (or an exporter) takes
    snapshots; neither ever sees a half-updated buffer.
    """

    def __init__(self, capacity: int = DEFAULT_BUFFER_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.RLock()
        self._total = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def total_added(self) -> int:
        """Entries added since creation or the last :meth:`clear`, including evicted ones."""
        with self._lock:
            return self._total

    def add(self, entry: LogEntry) -> None:
        with self._lock:
            self._entries.append(entry)
            self._total += 1

    def extend(self, entries: Iterable[LogEntry]) -> None:
        with self._lock:
            for entry in entries:
                self._entries.append(entry)
                self._total += 1

    def add_line(self, line: str) -> LogEntry:
        """Wrap a raw line in a new :class:`LogEntry` and add it."""
        entry = LogEntry.create(line)
        self.add(entry)
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._total = 0

    def snapshot(self) -> List[LogEntry]:
        """Return a copy of the buffered entries, oldest first."""
        with self._lock:
            return list(self._entries)

    def latest(self) -> Optional[LogEntry]:
        with self._lock:
            return self._entries[-1] if self._entries else None

    def export_as_text(self) -> str:
        with self._lock:
            return "\n".join(entry.to_export_line() for entry in self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
