"""Naming and retention rules for log files written to disk."""

from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".log"
DEFAULT_PREFIX = "adapter_tty"


def format_file_stamp(when: _dt.datetime) -> str:
    """Return the filename timestamp, e.g. ``142501_19OCT26``."""
    return when.strftime("%H%M%S_%d%b%y").upper()


def new_log_path(
    directory: Path,
    prefix: str = DEFAULT_PREFIX,
    now: Optional[_dt.datetime] = None,
) -> Path:
    """Return a not-yet-existing path like ``adapter_tty_142501_19OCT26.log``.

    Two files created within the same second get ``_1``, ``_2``... suffixes.
    """
    directory = Path(directory)
    stem = f"{prefix}_{format_file_stamp(now or _dt.datetime.now())}"
    candidate = directory / f"{stem}{LOG_SUFFIX}"
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem}_{counter}{LOG_SUFFIX}"
        counter += 1
    return candidate


def list_log_files(directory: Path) -> List[Path]:
    """Return ``*.log`` files in *directory*, newest first."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    files = [p for p in directory.glob(f"*{LOG_SUFFIX}") if p.is_file()]
    return sorted(files, key=lambda p: p.stat().st_mtime, reverse=True)


def enforce_file_count(directory: Path, max_files: int, *, reserve: int = 1) -> List[Path]:
    """Delete the oldest logs so that ``reserve`` new files still fit under *max_files*."""
    files = list_log_files(directory)
    excess = len(files) - max_files + reserve
    deleted: List[Path] = []
    if excess <= 0:
        return deleted
    for path in reversed(files[-excess:]):
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Could not delete old log %s: %s", path.name, exc)
            continue
        logger.debug("Deleted old file: %s", path.name)
        deleted.append(path)
    return deleted


def delete_log_file(path: Path) -> bool:
    """Remove a saved log; return False if it did not exist."""
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return False
    return True


def build_header(title: str = "Adapter TTY Log", started: Optional[_dt.datetime] = None) -> str:
    """Banner written at the top of every recording and export."""
    started = started or _dt.datetime.now()
    rule = "=" * 60
    return (
        f"{rule}\n"
        f"{title}\n"
        f"Started: {started.strftime('%Y-%m-%d %H:%M:%S')}\n"
        f"{rule}\n"
        "\n"
    )
