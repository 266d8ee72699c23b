"""SSH transport for following a remote log file with ``tail -f``."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, Callable

import logging
import paramiko
import shlex
import threading

from ..config.runtime import ConnectionConfig
from ..core.errors import ConnectError


logger = logging.getLogger(__name__)

SessionFactory = Callable[[ConnectionConfig], "SessionHandle"]

_POLICIES = {
    "auto-add": paramiko.AutoAddPolicy,
    "warn": paramiko.WarningPolicy,
    "reject": paramiko.RejectPolicy,
}


def build_follow_command(remote_path: str) -> str:
    """Return the remote command that streams appended lines of *remote_path*."""
    return f"tail -f {shlex.quote(remote_path)}"


def make_client(config: ConnectionConfig) -> paramiko.SSHClient:
    """Create an :class:`paramiko.SSHClient` honouring the host-key policy."""
    client = paramiko.SSHClient()
    if config.host_key_policy != "auto-add":
        client.load_system_host_keys()
        if config.known_hosts:
            client.load_host_keys(config.known_hosts)
    client.set_missing_host_key_policy(_POLICIES[config.host_key_policy]())
    return client


@dataclass
class SessionHandle:
    """One live SSH session plus the exec channel running ``tail -f``.

    ``stdout`` is the channel's binary stdout; stderr is never read.
    """

    client: paramiko.SSHClient
    channel: paramiko.Channel
    stdout: BinaryIO
    command: str = ""
    _closed: bool = field(default=False, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Tear down channel then session; failures are logged, never raised.

        Safe to call from another thread while a read is blocked: closing
        the channel makes the pending ``readline`` return.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        logger.debug("Cleaning up session and channel")
        for label, closer in (
            ("stdout", self.stdout.close),
            ("channel", self.channel.close),
            ("session", self.client.close),
        ):
            try:
                closer()
            except Exception as exc:
                logger.warning("Cleanup of %s failed (ignored): %s", label, exc)


def exec_with_deadline(channel: paramiko.Channel, command: str, timeout: float) -> None:
    """Run ``exec_command``, closing *channel* if the server has not answered in time.

    paramiko waits for the exec reply without a timeout of its own; closing
    the channel wakes that wait.
    """
    expired = threading.Event()

    def _expire() -> None:
        expired.set()
        channel.close()

    timer = threading.Timer(timeout, _expire)
    timer.daemon = True
    timer.start()
    try:
        channel.exec_command(command)
    except Exception:
        if expired.is_set():
            raise TimeoutError(f"No reply to exec request within {timeout:.1f}s") from None
        raise
    finally:
        timer.cancel()
    if expired.is_set():
        raise TimeoutError(f"No reply to exec request within {timeout:.1f}s")


def open_session(config: ConnectionConfig) -> SessionHandle:
    """
    Connect, authenticate and start ``tail -f`` on the configured file.

    Connecting, authenticating, opening the channel and the server's reply to
    the exec request are each bounded by ``config.connect_timeout_s``. Reads
    from the returned stream block until data, EOF or :meth:`SessionHandle.close`.
    Any failure is re-raised as :class:`ConnectError` with the original exception chained.
    """
    timeout = float(config.connect_timeout_s)
    command = build_follow_command(config.remote_path)
    client = make_client(config)
    channel = None

    logger.debug("Establishing SSH connection to %s (timeout=%.1fs)", config.target, timeout)
    try:
        client.connect(
            hostname=config.host,
            port=int(config.port),
            username=config.username,
            password=config.password,
            look_for_keys=False,
            allow_agent=False,
            timeout=timeout,
            banner_timeout=timeout,
            auth_timeout=timeout,
        )
        transport = client.get_transport()
        if transport is None or not transport.is_active():
            raise paramiko.SSHException("SSH transport not available after connect")

        logger.debug("Session connected, opening exec channel")
        channel = transport.open_session(timeout=timeout)
        logger.debug("Executing command: %s", command)
        exec_with_deadline(channel, command, timeout)
        stdout = channel.makefile("rb")
    except Exception as exc:
        if channel is not None:
            try:
                channel.close()
            except Exception:
                logger.debug("Channel close after failed connect raised", exc_info=True)
        try:
            client.close()
        except Exception:
            logger.debug("Client close after failed connect raised", exc_info=True)
        message = str(exc) or type(exc).__name__
        raise ConnectError(message, host=config.host) from exc

    logger.debug("Channel connected, ready to read")
    return SessionHandle(client=client, channel=channel, stdout=stdout, command=command)


__all__ = [
    "SessionFactory",
    "SessionHandle",
    "build_follow_command",
    "exec_with_deadline",
    "make_client",
    "open_session",
]
