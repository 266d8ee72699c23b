from __future__ import annotations

import queue
import threading
from typing import List, Optional, Union

import pytest

from logreader.config.runtime import ConnectionConfig
from logreader.core.errors import ConnectError


class FakeStream:
    """Binary stream whose ``readline`` blocks until the test feeds it."""

    def __init__(self) -> None:
        self._items: queue.Queue = queue.Queue()
        self.closed = False

    def feed(self, *lines: bytes) -> None:
        for line in lines:
            self._items.put(line)

    def end(self) -> None:
        self._items.put(b"")

    def fail(self, exc: BaseException) -> None:
        self._items.put(exc)

    def readline(self) -> bytes:
        item = self._items.get()
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.closed = True
        self._items.put(b"")


class FakeSession:
    """Stands in for :class:`logreader.remote.ssh_client.SessionHandle`."""

    def __init__(self, factory: Optional["FakeSessionFactory"] = None) -> None:
        self.stdout = FakeStream()
        self.close_calls = 0
        self._factory = factory
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def close(self) -> None:
        with self._lock:
            self.close_calls += 1
            first = self.close_calls == 1
        if first:
            self.stdout.close()
            if self._factory is not None:
                self._factory._released()


Outcome = Union[str, BaseException, FakeSession]


class FakeSessionFactory:
    """Plays back a script of connect outcomes.

    ``"ok"`` opens a new :class:`FakeSession`, ``"fail"`` raises a network
    style :class:`ConnectError`, an exception instance is raised as-is.
    Once the script runs out every call fails. When *gate* is given, each
    call blocks until it is set, like a connect that has not completed yet.
    """

    def __init__(self, *outcomes: Outcome, gate: Optional[threading.Event] = None) -> None:
        self.gate = gate
        self.entered = threading.Event()
        self._outcomes: List[Outcome] = list(outcomes)
        self._lock = threading.Lock()
        self.calls = 0
        self.sessions: List[FakeSession] = []
        self.live = 0
        self.max_live = 0
        self.opened = threading.Event()

    def __call__(self, config: ConnectionConfig) -> FakeSession:
        with self._lock:
            self.calls += 1
            outcome = self._outcomes.pop(0) if self._outcomes else "fail"
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(5.0)
        if outcome == "fail":
            try:
                raise OSError("network down")
            except OSError as exc:
                raise ConnectError(str(exc), host=config.host) from exc
        if isinstance(outcome, BaseException):
            raise outcome
        session = outcome if isinstance(outcome, FakeSession) else FakeSession()
        session._factory = self
        with self._lock:
            self.sessions.append(session)
            self.live += 1
            self.max_live = max(self.max_live, self.live)
        self.opened.set()
        return session

    def _released(self) -> None:
        with self._lock:
            self.live -= 1

    def push(self, *outcomes: Outcome) -> None:
        with self._lock:
            self._outcomes.extend(outcomes)


@pytest.fixture
def fast_config() -> ConnectionConfig:
    return ConnectionConfig(
        host="10.0.0.1",
        max_attempts=3,
        retry_interval_s=0.01,
        connect_timeout_s=0.5,
    )
