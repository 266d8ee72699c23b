"""Qt bridge that re-emits connection state and batched lines as signals."""

from __future__ import annotations

import time
from typing import Optional

from PySide6.QtCore import QObject, Signal, Slot

from ..core.broadcast import Subscription
from ..core.connection_manager import LogStreamManager


class LogStreamBridge(QObject):
    """QObject-based worker that turns the line stream into Qt signals.

    It is meant to live in its own QThread: ``start`` blocks, pulling lines
    from a subscription and emitting them to the GUI in small batches via
    ``lines_batch``. State transitions are forwarded on ``state_changed``
    from whichever thread produced them; connect with the default
    AutoConnection so widgets receive them on the GUI thread.
    """

    state_changed = Signal(object)  # ConnectionState
    lines_batch = Signal(list)  # list[LogEntry]
    finished = Signal()

    def __init__(
        self,
        manager: LogStreamManager,
        *,
        batch_size: int = 50,
        max_latency_ms: int = 100,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._manager = manager
        self._batch_size = max(1, int(batch_size))
        self._max_latency_s = max(0.0, float(max_latency_ms)) / 1000.0
        self._subscription: Optional[Subscription] = None
        self._stopped = False
        self._state_sub = manager.subscribe_state(self.state_changed.emit)

    @Slot()
    def start(self) -> None:
        """Entry point for the QThread: drain the line stream and emit batches."""
        sub = self._manager.subscribe_lines(name="qt-bridge")
        self._subscription = sub
        if self._stopped:
            sub.close()
        buffer: list = []
        last_emit = time.monotonic()

        try:
            while True:
                wait = None
                if buffer:
                    wait = max(0.0, self._max_latency_s - (time.monotonic() - last_emit))
                entry = sub.get(timeout=wait)
                if entry is not None:
                    buffer.append(entry)
                elif sub.closed:
                    break

                now = time.monotonic()
                # Emit when the batch is full or its oldest line has waited
                # longer than max_latency_ms.
                should_emit = len(buffer) >= self._batch_size
                if not should_emit and buffer:
                    should_emit = (now - last_emit) >= self._max_latency_s
                if should_emit:
                    self.lines_batch.emit(list(buffer))
                    buffer.clear()
                    last_emit = now

            if buffer:
                self.lines_batch.emit(list(buffer))
        finally:
            self._subscription = None
            self.finished.emit()

    @Slot()
    def stop(self) -> None:
        """Request the draining loop to terminate."""
        self._stopped = True
        sub = self._subscription
        if sub is not None:
            sub.close()

    def close(self) -> None:
        """Stop and detach from the manager's state updates."""
        self.stop()
        self._state_sub.close()
