"""Shared dataclasses for captured log lines."""

from __future__ import annotations

import itertools
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

_id_lock = threading.Lock()
_id_counter: Iterator[int] = itertools.count(1)


def next_entry_id() -> int:
    """Return the next process-wide entry id."""
    with _id_lock:
        return next(_id_counter)


@dataclass(frozen=True)
class LogEntry:
    """One decoded line from the remote log, stamped on arrival."""

    id: int
    timestamp: float
    line: str

    @classmethod
    def create(cls, line: str, entry_id: Optional[int] = None) -> "LogEntry":
        if entry_id is None:
            entry_id = next_entry_id()
        return cls(id=entry_id, timestamp=time.time(), line=line)

    def formatted_time(self) -> str:
        """Return the arrival time as ``HH:MM:SS.mmm`` in local time."""
        stamp = datetime.fromtimestamp(self.timestamp)
        return stamp.strftime("%H:%M:%S.") + f"{stamp.microsecond // 1000:03d}"

    def to_export_line(self) -> str:
        return f"[{self.formatted_time()}] {self.line}"
