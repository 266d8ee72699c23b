"""Turn the remote ``tail -f`` byte stream into text lines.

:func:`read_lines` is intended to run on the connection manager's worker
thread. It returns a small outcome object instead of raising, so the caller
can decide between reconnecting (end of stream, read error) and stopping
(cancelled).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional, Union

from ..tools.debug import debug_enabled

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"
LineSink = Callable[[str], None]


@dataclass(frozen=True)
class EndOfStream:
    lines: int = 0


@dataclass(frozen=True)
class ReadError:
    cause: BaseException
    lines: int = 0


@dataclass(frozen=True)
class Cancelled:
    lines: int = 0


ReadOutcome = Union[EndOfStream, ReadError, Cancelled]


def decode_line(raw: bytes, encoding: str = DEFAULT_ENCODING) -> str:
    """Decode one raw line and strip its terminator (``\\n`` or ``\\r\\n``)."""
    text = raw.decode(encoding, errors="replace")
    return text.rstrip("\r\n")


def read_lines(
    stream: BinaryIO,
    sink: LineSink,
    cancel: Optional[threading.Event] = None,
    *,
    encoding: str = DEFAULT_ENCODING,
) -> ReadOutcome:
    """Forward every line of *stream* to *sink* until EOF, error or cancel.

    Lines are passed on as soon as their newline arrives. A trailing partial
    line is delivered when the stream ends. Blank lines are forwarded too:
    the reader does not interpret log content.

    The blocking ``readline`` is interrupted by closing the underlying
    channel; *cancel* is checked between lines so a line read after
    cancellation is never forwarded.
    """
    trace = debug_enabled() or logger.isEnabledFor(logging.DEBUG)
    count = 0
    logger.debug("Started reading from stream")
    while True:
        if cancel is not None and cancel.is_set():
            logger.debug("Reader cancelled after %d lines", count)
            return Cancelled(lines=count)
        try:
            raw = stream.readline()
        except Exception as exc:
            if cancel is not None and cancel.is_set():
                return Cancelled(lines=count)
            logger.warning(
                "Error reading stream after %d lines: %s: %s",
                count,
                type(exc).__name__,
                exc,
            )
            return ReadError(cause=exc, lines=count)

        if not raw:
            if cancel is not None and cancel.is_set():
                return Cancelled(lines=count)
            logger.warning("Stream ended after %d lines", count)
            return EndOfStream(lines=count)

        if cancel is not None and cancel.is_set():
            return Cancelled(lines=count)

        if isinstance(raw, str):
            line = raw.rstrip("\r\n")
        else:
            line = decode_line(raw, encoding)
        count += 1
        if trace and (count <= 5 or count % 100 == 0):
            logger.debug("Received line #%d: %.50s", count, line)
        sink(line)


__all__ = [
    "EndOfStream",
    "ReadError",
    "Cancelled",
    "ReadOutcome",
    "LineSink",
    "decode_line",
    "read_lines",
]
