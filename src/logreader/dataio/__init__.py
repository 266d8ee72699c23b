"""Disk-level helpers for captured logs.

- :mod:`log_recorder` streams live lines into rotating files.
- :mod:`log_exporter` saves a snapshot of the display buffer.
- :mod:`file_paths` centralises file naming, listing and retention.
"""

from .file_paths import delete_log_file, list_log_files
from .log_exporter import save_buffer, write_export
from .log_recorder import LogRecorder

__all__ = ["LogRecorder", "delete_log_file", "list_log_files", "save_buffer", "write_export"]
