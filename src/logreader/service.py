"""Capture service: wires the connection manager to the buffer and recorder.

:class:`LoggingService` is what a front end (CLI or GUI) talks to. It keeps
the display :class:`~logreader.data.log_buffer.LogBuffer` fed while capture is
running and, on request, tees the same lines into a
:class:`~logreader.dataio.log_recorder.LogRecorder`.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .config.runtime import LogReaderConfig
from .core.broadcast import Subscription
from .core.connection_manager import LogStreamManager
from .core.models import LogEntry
from .data.log_buffer import LogBuffer
from .dataio import file_paths, log_exporter
from .dataio.log_recorder import LogRecorder
from .remote.ssh_client import SessionFactory, open_session

logger = logging.getLogger(__name__)


@dataclass
class ConsumerHandle:
    """A daemon thread draining one line subscription into a handler."""

    thread: threading.Thread
    subscription: Subscription

    def stop(self, *, join: bool = True, timeout: Optional[float] = None) -> None:
        # Entries already queued are still handled before the thread exits.
        self.subscription.close()
        if join and self.thread is not threading.current_thread():
            self.thread.join(timeout)

    def is_alive(self) -> bool:
        return self.thread.is_alive()


def start_consumer(
    subscription: Subscription,
    handler: Callable[[LogEntry], None],
    *,
    thread_name: Optional[str] = None,
) -> ConsumerHandle:
    """Start a background thread that calls *handler* for every entry."""

    def _target() -> None:
        for entry in subscription:
            try:
                handler(entry)
            except Exception:
                logger.exception("Line consumer %s failed on entry %d", subscription.name, entry.id)

    thread = threading.Thread(
        target=_target,
        name=thread_name or f"logreader-{subscription.name or 'consumer'}",
        daemon=True,
    )
    thread.start()
    return ConsumerHandle(thread=thread, subscription=subscription)


class LoggingService:
    """Start/stop capture and recording for one adapter."""

    def __init__(
        self,
        config: LogReaderConfig | None = None,
        *,
        session_factory: SessionFactory = open_session,
    ) -> None:
        self.config = config or LogReaderConfig()
        self.manager = LogStreamManager(
            self.config.connection,
            session_factory=session_factory,
            subscriber_capacity=self.config.buffer.subscriber_capacity,
        )
        self.buffer = LogBuffer(self.config.buffer.capacity)
        rec = self.config.recording
        self.recorder = LogRecorder(
            rec.directory,
            max_file_bytes=rec.max_file_bytes,
            max_files=rec.max_files,
            prefix=rec.file_prefix,
        )
        self._lock = threading.Lock()
        self._buffer_consumer: Optional[ConsumerHandle] = None
        self._recorder_consumer: Optional[ConsumerHandle] = None

    # ------------------------------------------------------------------ capture
    def start_capture(self) -> None:
        """Begin feeding the buffer and connect (no-op if already running)."""
        with self._lock:
            if self._buffer_consumer is None:
                sub = self.manager.subscribe_lines(name="buffer")
                self._buffer_consumer = start_consumer(sub, self.buffer.add)
        self.manager.connect()

    def stop_capture(self) -> None:
        """Disconnect, finish any recording and stop feeding the buffer."""
        self.manager.disconnect()
        self.stop_recording()
        with self._lock:
            consumer, self._buffer_consumer = self._buffer_consumer, None
        if consumer is not None:
            consumer.stop(timeout=2.0)

    @property
    def capturing(self) -> bool:
        return self._buffer_consumer is not None

    # ------------------------------------------------------------------ recording
    def start_recording(self) -> Optional[Path]:
        """Tee live lines into a new rotating recording; return its first file."""
        with self._lock:
            path = self.recorder.start_recording()
            if path is None:
                return None
            if self._recorder_consumer is None:
                sub = self.manager.subscribe_lines(name="recorder")
                self._recorder_consumer = start_consumer(sub, self.recorder.write_line)
            return path

    def stop_recording(self) -> Optional[Path]:
        """Stop recording and return the last file written (``None`` if idle)."""
        with self._lock:
            consumer, self._recorder_consumer = self._recorder_consumer, None
        if consumer is not None:
            consumer.stop(timeout=2.0)
        return self.recorder.stop_recording()

    @property
    def recording(self) -> bool:
        return self.recorder.is_recording

    # ------------------------------------------------------------------ saved logs
    def save_buffer(self) -> Path:
        """Write the current buffer contents to a new file in the log directory."""
        rec = self.config.recording
        path = log_exporter.save_buffer(
            self.buffer, rec.directory, max_files=rec.max_files, prefix=rec.file_prefix
        )
        logger.info("Saved %d buffered lines to %s", len(self.buffer), path)
        return path

    def saved_logs(self) -> List[Path]:
        return file_paths.list_log_files(self.config.recording.directory)

    # ------------------------------------------------------------------ lifecycle
    def close(self) -> None:
        self.stop_capture()
        self.manager.close()

    def __enter__(self) -> "LoggingService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["ConsumerHandle", "LoggingService", "start_consumer"]
