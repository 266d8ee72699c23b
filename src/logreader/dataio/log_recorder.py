"""Streaming recorder that writes log lines to size-limited rotating files."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional, TextIO, Union

from ..core.models import LogEntry
from . import file_paths

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_FILES = 20
FLUSH_EVERY_BYTES = 100 * 1024


class LogRecorder:
    """
    Append captured lines to ``<prefix>_<HHMMSS_DDMONYY>.log`` files.

    - A line that would push a file past ``max_file_bytes`` starts a fresh
      file instead (a single oversized line still gets written whole).
    - At most ``max_files`` logs are kept in ``directory``; the oldest are
      deleted before a new file is created.

    All public methods are serialized by one lock so a consumer thread can
    write while another thread stops the recording.
    """

    def __init__(
        self,
        directory: Path,
        *,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        max_files: int = DEFAULT_MAX_FILES,
        prefix: str = file_paths.DEFAULT_PREFIX,
    ) -> None:
        if max_file_bytes <= 0:
            raise ValueError("max_file_bytes must be positive")
        if max_files < 1:
            raise ValueError("max_files must be >= 1")
        self.directory = Path(directory)
        self.max_file_bytes = int(max_file_bytes)
        self.max_files = int(max_files)
        self.prefix = prefix

        self._lock = threading.Lock()
        self._file: Optional[Path] = None
        self._writer: Optional[TextIO] = None
        self._header_size = 0
        self._size = 0
        self._unflushed = 0

    # ------------------------------------------------------------------ state
    @property
    def is_recording(self) -> bool:
        return self._writer is not None

    @property
    def current_file(self) -> Optional[Path]:
        return self._file

    @property
    def current_file_size(self) -> int:
        return self._size

    # ------------------------------------------------------------------ control
    def start_recording(self) -> Optional[Path]:
        """Open a new file; return its path, or ``None`` if it could not be created."""
        with self._lock:
            if self._writer is not None:
                logger.warning("Already recording, stopping previous session")
                self._close_locked()
            try:
                self._open_locked()
            except OSError as exc:
                logger.error("Failed to start recording: %s", exc)
                self._writer = None
                self._file = None
                return None
            logger.info("Started recording to: %s", self._file)
            return self._file

    def write_line(self, entry: Union[LogEntry, str]) -> None:
        """Write one line, rotating first if it would overflow the current file."""
        with self._lock:
            if self._writer is None:
                return
            if isinstance(entry, str):
                entry = LogEntry.create(entry)
            text = entry.to_export_line() + "\n"
            nbytes = len(text.encode("utf-8"))
            try:
                if self._size + nbytes > self.max_file_bytes and self._size > self._header_size:
                    logger.debug(
                        "File size limit reached (%d KB), rotating", self._size // 1024
                    )
                    self._rotate_locked()
                self._writer.write(text)
                self._size += nbytes
                self._unflushed += nbytes
                if self._unflushed >= FLUSH_EVERY_BYTES:
                    self._writer.flush()
                    self._unflushed = 0
            except OSError as exc:
                logger.error("Error writing line: %s", exc)

    def stop_recording(self) -> Optional[Path]:
        """Close the current file and return its path (``None`` if idle)."""
        with self._lock:
            if self._writer is None:
                return None
            path = self._file
            self._close_locked()
            return path

    # ------------------------------------------------------------------ internals
    def _open_locked(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        file_paths.enforce_file_count(self.directory, self.max_files)
        path = file_paths.new_log_path(self.directory, self.prefix)
        writer = path.open("a", encoding="utf-8")
        header = file_paths.build_header()
        writer.write(header)
        writer.flush()
        self._file = path
        self._writer = writer
        self._header_size = len(header.encode("utf-8"))
        self._size = self._header_size
        self._unflushed = 0

    def _close_locked(self) -> None:
        writer, self._writer = self._writer, None
        if writer is not None:
            try:
                writer.flush()
                writer.close()
                logger.info(
                    "Stopped recording: %s (%d KB)",
                    self._file.name if self._file else "?",
                    self._size // 1024,
                )
            except OSError as exc:
                logger.error("Error closing writer: %s", exc)
        self._file = None
        self._size = 0
        self._unflushed = 0

    def _rotate_locked(self) -> None:
        previous = self._file
        self._close_locked()
        self._open_locked()
        logger.info(
            "Rotated %s -> %s",
            previous.name if previous else "?",
            self._file.name if self._file else "?",
        )


__all__ = ["DEFAULT_MAX_FILE_BYTES", "DEFAULT_MAX_FILES", "LogRecorder"]
