"""One-shot export of the display buffer to a file or stream."""

from __future__ import annotations

from pathlib import Path
from typing import TextIO

from ..data.log_buffer import LogBuffer
from . import file_paths
from .log_recorder import DEFAULT_MAX_FILES


def write_export(stream: TextIO, buffer: LogBuffer) -> int:
    """Write the header and every buffered entry to *stream*; return the entry count."""
    entries = buffer.snapshot()
    stream.write(file_paths.build_header())
    for entry in entries:
        stream.write(entry.to_export_line())
        stream.write("\n")
    return len(entries)


def save_buffer(
    buffer: LogBuffer,
    directory: Path,
    *,
    max_files: int = DEFAULT_MAX_FILES,
    prefix: str = file_paths.DEFAULT_PREFIX,
) -> Path:
    """
    Save the buffer under *directory* and return the new file's path.

    The directory is trimmed to ``max_files`` logs (oldest first) beforehand.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    file_paths.enforce_file_count(directory, max_files)
    path = file_paths.new_log_path(directory, prefix)
    with path.open("w", encoding="utf-8") as fh:
        write_export(fh, buffer)
    return path
