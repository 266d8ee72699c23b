"""Lossy fan-out of log entries to any number of consumers.

Each :class:`Subscription` owns a bounded queue. :meth:`LineBroadcaster.publish`
never blocks: when a subscriber's queue is full the incoming entry is dropped
for that subscriber only and counted in :attr:`Subscription.dropped`.
"""

from __future__ import annotations

import logging
import threading
from queue import Empty, Full, Queue
from typing import Iterator, List, Optional

from .models import LogEntry

logger = logging.getLogger(__name__)

DEFAULT_SUBSCRIBER_CAPACITY = 1000

_CLOSED = object()


class Subscription:
    """Per-consumer view of the line stream.

    Iterate to receive entries in production order; iteration ends once
    :meth:`close` is called (from any thread) or the broadcaster shuts down.
    """

    def __init__(self, broadcaster: "LineBroadcaster", capacity: int, name: str = "") -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._broadcaster = broadcaster
        # One extra slot so the close marker always fits.
        self._queue: Queue = Queue(maxsize=capacity + 1)
        self._capacity = capacity
        self._lock = threading.Lock()
        self._closed = False
        self.name = name
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, entry: LogEntry) -> bool:
        """Queue *entry* without blocking; return False if it was dropped."""
        with self._lock:
            if self._closed:
                return False
            if self._queue.qsize() >= self._capacity:
                self.dropped += 1
                if self.dropped == 1 or self.dropped % 1000 == 0:
                    logger.warning(
                        "Subscriber %s is full; %d line(s) dropped so far",
                        self.name or hex(id(self)),
                        self.dropped,
                    )
                return False
            try:
                self._queue.put_nowait(entry)
            except Full:
                self.dropped += 1
                return False
            return True

    def get(self, timeout: Optional[float] = None) -> Optional[LogEntry]:
        """Return the next entry, or ``None`` on timeout or after close."""
        try:
            item = self._queue.get(timeout=timeout)
        except Empty:
            return None
        if item is _CLOSED:
            # Leave the marker in place for any other reader of this queue.
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def drain(self) -> List[LogEntry]:
        """Return every entry queued right now without blocking."""
        items: List[LogEntry] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except Empty:
                return items
            if item is _CLOSED:
                self._queue.put_nowait(_CLOSED)
                return items
            items.append(item)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put_nowait(_CLOSED)
        self._broadcaster._remove(self)

    def __iter__(self) -> Iterator[LogEntry]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._queue.put_nowait(_CLOSED)
                return
            yield item

    def __len__(self) -> int:
        return self._queue.qsize()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class LineBroadcaster:
    """Multi-subscriber broadcast point for :class:`LogEntry` values."""

    def __init__(self, subscriber_capacity: int = DEFAULT_SUBSCRIBER_CAPACITY) -> None:
        if subscriber_capacity <= 0:
            raise ValueError("subscriber_capacity must be positive")
        self._capacity = subscriber_capacity
        self._subscribers: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, name: str = "", capacity: Optional[int] = None) -> Subscription:
        """Register a consumer that sees every entry published from now on."""
        sub = Subscription(self, capacity or self._capacity, name=name)
        with self._lock:
            self._subscribers.append(sub)
        logger.debug("Line subscriber %s added", name or hex(id(sub)))
        return sub

    def publish(self, entry: LogEntry) -> int:
        """Offer *entry* to every subscriber; return how many accepted it."""
        with self._lock:
            subscribers = list(self._subscribers)
        delivered = 0
        for sub in subscribers:
            if sub.offer(entry):
                delivered += 1
        return delivered

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def close(self) -> None:
        """Close every subscription so blocked consumers return."""
        with self._lock:
            subscribers = list(self._subscribers)
        for sub in subscribers:
            sub.close()

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            try:
                self._subscribers.remove(sub)
            except ValueError:
                pass


__all__ = ["DEFAULT_SUBSCRIBER_CAPACITY", "LineBroadcaster", "Subscription"]
