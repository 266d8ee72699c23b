"""Headless command-line front end.

Connects to the adapter, echoes every captured line to stdout and optionally
records to rotating files until interrupted (Ctrl-C) or until the retry
budget is exhausted.
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path
from typing import Optional, TextIO

from .config.app_config import AppPaths
from .config.runtime import LogReaderConfig, apply_env_overrides, load_config
from .core.errors import ConfigError
from .core.state import ConnectionState, Error
from .service import LoggingService, start_consumer
from .remote.ssh_client import SessionFactory, open_session
from .tools.debug import debug_enabled

logger = logging.getLogger(__name__)

_RECORD_DEFAULT = "__default__"


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logreader",
        description="Follow the adapter's TTY log over SSH with automatic reconnect",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: ~/.logreader/config.yaml)",
    )
    parser.add_argument("--host", help="Adapter address")
    parser.add_argument("--port", type=int, help="SSH port")
    parser.add_argument("--user", help="SSH username")
    parser.add_argument("--remote-file", help="Remote file to follow with tail -f")
    parser.add_argument(
        "--record",
        nargs="?",
        const=_RECORD_DEFAULT,
        default=None,
        metavar="DIR",
        help="Also record to rotating log files (optionally in DIR)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not echo captured lines to stdout",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging (same as LOGREADER_DEBUG=1)",
    )
    return parser


def build_config(args: argparse.Namespace) -> LogReaderConfig:
    """Merge the config file, ``LOGREADER_*`` variables and CLI flags."""
    path = args.config if args.config is not None else AppPaths().config_file
    cfg = apply_env_overrides(load_config(path))

    overrides = {
        "host": args.host,
        "port": args.port,
        "username": args.user,
        "remote_path": args.remote_file,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if overrides:
        cfg = replace(cfg, connection=replace(cfg.connection, **overrides))

    if args.record not in (None, _RECORD_DEFAULT):
        cfg = replace(cfg, recording=replace(cfg.recording, directory=Path(args.record).expanduser()))
    return cfg


def run(
    cfg: LogReaderConfig,
    *,
    record: bool = False,
    echo: bool = True,
    out: TextIO | None = None,
    session_factory: SessionFactory = open_session,
    stop_event: Optional[threading.Event] = None,
) -> int:
    """Capture until *stop_event* is set or the state becomes ``Error``.

    Returns the process exit code: 0 after a requested stop, 1 on ``Error``.
    """
    out = out or sys.stdout
    stop = stop_event or threading.Event()
    failed: list[Error] = []

    def _on_state(state: ConnectionState) -> None:
        logger.info("State: %s", state)
        if isinstance(state, Error):
            failed.append(state)
            stop.set()

    service = LoggingService(cfg, session_factory=session_factory)
    echo_consumer = None
    state_sub = service.manager.subscribe_state(_on_state)
    try:
        if echo:
            sub = service.manager.subscribe_lines(name="stdout")
            echo_consumer = start_consumer(
                sub, lambda entry: print(entry.line, file=out, flush=True)
            )
        if record:
            path = service.start_recording()
            if path is not None:
                logger.info("Recording to %s", path.parent)
        service.start_capture()
        while not stop.wait(0.5):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted, disconnecting")
    finally:
        state_sub.close()
        service.close()
        if echo_consumer is not None:
            echo_consumer.stop(timeout=2.0)

    if failed:
        print(f"logreader: {failed[-1].message}", file=sys.stderr)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_arg_parser().parse_args(list(argv) if argv is not None else None)

    level = logging.DEBUG if (args.verbose or debug_enabled()) else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        cfg = build_config(args)
    except ConfigError as exc:
        print(f"logreader: {exc}", file=sys.stderr)
        return 2

    return run(cfg, record=args.record is not None, echo=not args.quiet)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
