"""Resilient ``tail -f`` connection: connect, read, retry, reconnect.

:class:`LogStreamManager` owns a single background worker thread. That
thread is the only writer of the connection state and the only owner of the
live :class:`~logreader.remote.ssh_client.SessionHandle`. The public methods
may be called from any thread, including from inside a state listener.

Lifecycle (``N`` = ``max_attempts``)::

    Disconnected --connect()--> Connecting(1, N)
    Connecting(k, N) --open ok--> Connected
    Connecting(k, N) --open fails, k < N--> Connecting(k+1, N)   after retry interval
    Connecting(k, N) --open fails, k == N--> Error
    Connected --stream ends or read error--> Reconnecting(1, N)  after retry interval
    Reconnecting(k, N) behaves like Connecting(k, N)
    any state --disconnect()--> Disconnected
    Error --connect()--> Connecting(1, N)
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Iterator, Optional

from ..config.runtime import ConnectionConfig
from ..remote.ssh_client import SessionFactory, SessionHandle, open_session
from .broadcast import DEFAULT_SUBSCRIBER_CAPACITY, LineBroadcaster, Subscription
from .errors import ConnectError
from .models import LogEntry
from .state import (
    Connected,
    Connecting,
    ConnectionState,
    Disconnected,
    Error,
    Reconnecting,
    StateCell,
    StateListener,
    StateSubscription,
)
from .stream_reader import Cancelled, ReadOutcome, read_lines

logger = logging.getLogger(__name__)

# Extra time allowed for a cancelled worker to finish tearing down.
_JOIN_GRACE_S = 1.0


class LogStreamManager:
    """Keeps one ``tail -f`` stream alive and publishes what it reads.

    Parameters
    ----------
    config:
        Connection target and retry policy.
    session_factory:
        Callable that opens a session or raises :class:`ConnectError`.
        Defaults to :func:`~logreader.remote.ssh_client.open_session`.
    broadcaster:
        Line fan-out shared with consumers. A new one is created when omitted.
    """

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        session_factory: SessionFactory = open_session,
        broadcaster: LineBroadcaster | None = None,
        subscriber_capacity: int = DEFAULT_SUBSCRIBER_CAPACITY,
    ) -> None:
        self.config = config or ConnectionConfig()
        self._session_factory = session_factory
        self._lines = broadcaster or LineBroadcaster(subscriber_capacity)
        self._state = StateCell(Disconnected())
        self._lock = threading.RLock()
        self._cancel = threading.Event()
        self._cancel.set()
        self._worker: Optional[threading.Thread] = None
        self._session: Optional[SessionHandle] = None
        self._ids: Iterator[int] = itertools.count(1)

    # ------------------------------------------------------------------ observation
    @property
    def state(self) -> ConnectionState:
        return self._state.current()

    @property
    def lines(self) -> LineBroadcaster:
        return self._lines

    def subscribe_state(self, listener: StateListener) -> StateSubscription:
        """Call *listener* with the current state now and with every transition."""
        return self._state.subscribe(listener)

    def subscribe_lines(self, name: str = "", capacity: int | None = None) -> Subscription:
        """Receive every line read from now on."""
        return self._lines.subscribe(name=name, capacity=capacity)

    def wait_for_state(
        self,
        predicate: Callable[[ConnectionState], bool],
        timeout: float | None = None,
    ) -> bool:
        return self._state.wait_for(predicate, timeout)

    def is_connected(self) -> bool:
        return isinstance(self._state.current(), Connected)

    # ------------------------------------------------------------------ control
    def connect(self) -> None:
        """Start the connect/retry loop unless one is already running."""
        with self._lock:
            worker = self._worker
            current = self._state.current()
            if (
                worker is not None
                and worker.is_alive()
                and not self._cancel.is_set()
                and not isinstance(current, Error)
            ):
                logger.debug("connect() ignored: already %s", current)
                return

            logger.info("Connecting to %s", self.config.target)
            # A loop that just gave up may still be unwinding.
            self._cancel.set()
            cancel = threading.Event()
            self._cancel = cancel
            self._state.set(Connecting(1, self.config.max_attempts), deliver=False)
            self._worker = threading.Thread(
                target=self._run,
                args=(cancel, worker),
                name="logreader-ssh",
                daemon=True,
            )
            self._worker.start()
        self._state.deliver_pending()

    def disconnect(self, timeout: float | None = None) -> None:
        """Stop reading, tear down the session and suppress reconnects.

        Idempotent: does nothing when already disconnected. *timeout* bounds
        how long to wait for the worker thread to exit (defaults to the
        connect timeout plus a short grace period). Unless called from a
        state listener, ``Disconnected`` has reached every listener on return.
        """
        with self._lock:
            worker = self._worker
            running = worker is not None and worker.is_alive() and not self._cancel.is_set()
            if not running and isinstance(self._state.current(), Disconnected):
                return

            logger.info("disconnect() called (manual)")
            self._cancel.set()
            session, self._session = self._session, None
            if session is not None:
                session.close()
            self._state.set(Disconnected(), deliver=False)

        self._state.deliver_pending()
        if timeout is None:
            timeout = float(self.config.connect_timeout_s) + _JOIN_GRACE_S
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)
            if worker.is_alive():
                logger.warning("Connection worker still finishing after %.1fs", timeout)
        self._state.flush(timeout)

    def close(self) -> None:
        """Disconnect and end every line subscription."""
        self.disconnect()
        self._lines.close()

    def __enter__(self) -> "LogStreamManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------ worker
    def _run(self, cancel: threading.Event, previous: Optional[threading.Thread]) -> None:
        if previous is not None and previous.is_alive():
            # A cancelled loop may still be inside a connect; wait so that at
            # most one session exists at a time.
            previous.join()
        try:
            reconnect = False
            while not cancel.is_set():
                session = self._connect_with_retry(cancel, reconnect)
                if session is None:
                    return
                outcome = self._read(session, cancel)
                if isinstance(outcome, Cancelled) or cancel.is_set():
                    return
                reconnect = True
                logger.info("Stream lost (%s); reconnecting to %s", outcome, self.config.target)
                logger.debug("Waiting %.1fs before reconnecting", self.config.retry_interval_s)
                if self._pause(cancel):
                    return
        except Exception as exc:
            logger.exception("Connection worker crashed")
            self._publish(cancel, Error(f"Unexpected failure: {exc}"))

    def _connect_with_retry(
        self, cancel: threading.Event, reconnect: bool
    ) -> Optional[SessionHandle]:
        max_attempts = int(self.config.max_attempts)
        for attempt in range(1, max_attempts + 1):
            if cancel.is_set():
                return None
            logger.info(
                "Connection attempt %d/%d (reconnect=%s)", attempt, max_attempts, reconnect
            )
            state = Reconnecting if reconnect else Connecting
            if not self._publish(cancel, state(attempt, max_attempts)):
                return None

            try:
                session = self._session_factory(self.config)
            except ConnectError as exc:
                logger.warning(
                    "Connection attempt %d failed: %s: %s",
                    attempt,
                    type(exc.__cause__ or exc).__name__,
                    exc,
                )
                if attempt >= max_attempts:
                    message = f"Failed after {attempt} attempts: {exc}"
                    logger.error(message)
                    self._publish(cancel, Error(message))
                    return None
                if self._pause(cancel):
                    return None
                continue

            with self._lock:
                if cancel.is_set():
                    session.close()
                    return None
                self._session = session
                self._state.set(Connected(), deliver=False)
            self._state.deliver_pending()
            logger.info("Connection established to %s", self.config.target)
            return session
        return None

    def _read(self, session: SessionHandle, cancel: threading.Event) -> ReadOutcome:
        try:
            return read_lines(session.stdout, lambda line: self._emit(line, cancel), cancel)
        finally:
            with self._lock:
                if self._session is session:
                    self._session = None
            session.close()

    def _emit(self, line: str, cancel: threading.Event) -> None:
        if cancel.is_set():
            return
        self._lines.publish(LogEntry.create(line, next(self._ids)))

    def _pause(self, cancel: threading.Event) -> bool:
        """Wait one retry interval; return True if cancelled meanwhile."""
        return cancel.wait(float(self.config.retry_interval_s))

    def _publish(self, cancel: threading.Event, state: ConnectionState) -> bool:
        """Publish *state* unless this loop was cancelled; return False if so.

        The cancel check and the write happen under the lock; listeners run
        after it is released.
        """
        with self._lock:
            if cancel.is_set():
                return False
            self._state.set(state, deliver=False)
        self._state.deliver_pending()
        return True


__all__ = ["LogStreamManager"]
