"""Connection lifecycle states and the observable cell that publishes them.

Only :class:`~logreader.core.connection_manager.LogStreamManager` writes to a
:class:`StateCell`; everybody else reads :meth:`StateCell.current` or
subscribes. Subscribers are called in transition order, with no lock held,
and receive the value current at subscription time first.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Disconnected:
    """No session; initial state and the result of :meth:`disconnect`."""

    def __str__(self) -> str:
        return "Disconnected"


@dataclass(frozen=True)
class Connecting:
    attempt: int
    max_attempts: int

    def __str__(self) -> str:
        return f"Connecting ({self.attempt}/{self.max_attempts})"


@dataclass(frozen=True)
class Connected:
    def __str__(self) -> str:
        return "Connected"


@dataclass(frozen=True)
class Reconnecting:
    attempt: int
    max_attempts: int

    def __str__(self) -> str:
        return f"Reconnecting ({self.attempt}/{self.max_attempts})"


@dataclass(frozen=True)
class Error:
    """Retries exhausted; stays here until the next explicit connect."""

    message: str

    def __str__(self) -> str:
        return f"Error: {self.message}"


ConnectionState = Union[Disconnected, Connecting, Connected, Reconnecting, Error]
StateListener = Callable[[ConnectionState], None]


class StateSubscription:
    """Handle returned by :meth:`StateCell.subscribe`."""

    def __init__(self, cell: "StateCell", listener: StateListener) -> None:
        self._cell = cell
        self.listener = listener
        self.active = True

    def close(self) -> None:
        self.active = False
        self._cell._remove(self)

    def __enter__(self) -> "StateSubscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# (value, recipients, sequence); replays carry sequence 0.
_Pending = Tuple[ConnectionState, List[StateSubscription], int]


class StateCell:
    """Latest-value holder with replay-on-subscribe.

    Equal consecutive values are conflated, so setting the current value
    again notifies nobody.

    Listeners are never called with a lock held. Values are queued in
    publication order and handed out by one delivering thread at a time; a
    listener may therefore call back into whatever publishes to this cell.
    """

    def __init__(self, initial: Optional[ConnectionState] = None) -> None:
        self._value: ConnectionState = initial if initial is not None else Disconnected()
        self._settled: ConnectionState = self._value
        self._cond = threading.Condition(threading.Lock())
        self._subscribers: List[StateSubscription] = []
        self._pending: Deque[_Pending] = deque()
        self._published = 0
        self._delivered = 0
        self._deliverer: Optional[int] = None

    def current(self) -> ConnectionState:
        with self._cond:
            return self._value

    def set(self, value: ConnectionState, *, deliver: bool = True) -> bool:
        """Publish *value*; return False when it equals the current state.

        With ``deliver=False`` the value is only queued: the caller must run
        :meth:`deliver_pending` once it has released its own locks.
        """
        with self._cond:
            if value == self._value:
                return False
            self._value = value
            self._published += 1
            self._pending.append((value, list(self._subscribers), self._published))
            logger.debug("Connection state -> %s", value)
        if deliver:
            self.deliver_pending()
        return True

    def subscribe(self, listener: StateListener) -> StateSubscription:
        with self._cond:
            sub = StateSubscription(self, listener)
            self._subscribers.append(sub)
            self._pending.append((self._value, [sub], 0))
        self.deliver_pending()
        return sub

    def deliver_pending(self) -> None:
        """Hand queued values to their listeners, in order.

        Returns at once if another thread (or an outer frame of this one) is
        already delivering; that thread picks up everything queued so far.
        """
        with self._cond:
            if self._deliverer is not None:
                return
            self._deliverer = threading.get_ident()
        try:
            while True:
                with self._cond:
                    if not self._pending:
                        self._deliverer = None
                        self._cond.notify_all()
                        return
                    value, recipients, seq = self._pending.popleft()
                for sub in recipients:
                    if sub.active:
                        self._deliver(sub, value)
                if seq:
                    with self._cond:
                        self._settled = value
                        self._delivered = seq
                        self._cond.notify_all()
        except BaseException:
            with self._cond:
                self._deliverer = None
                self._cond.notify_all()
            raise

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every value published so far reached its listeners.

        Returns False on timeout, or immediately when called from inside a
        listener (waiting there could never finish).
        """
        with self._cond:
            if self._deliverer == threading.get_ident():
                return False
            target = self._published
            return self._cond.wait_for(lambda: self._delivered >= target, timeout)

    def wait_for(
        self,
        predicate: Callable[[ConnectionState], bool],
        timeout: Optional[float] = None,
    ) -> bool:
        """Block until a delivered value satisfies *predicate* or *timeout* expires.

        Listeners have seen the value by the time this returns True.
        """
        with self._cond:
            return self._cond.wait_for(lambda: predicate(self._settled), timeout)

    def _remove(self, sub: StateSubscription) -> None:
        with self._cond:
            try:
                self._subscribers.remove(sub)
            except ValueError:
                pass

    @staticmethod
    def _deliver(sub: StateSubscription, value: ConnectionState) -> None:
        try:
            sub.listener(value)
        except Exception:
            logger.exception("State listener %r failed for %s", sub.listener, value)



__all__ = [
    "ConnectionState",
    "Disconnected",
    "Connecting",
    "Connected",
    "Reconnecting",
    "Error",
    "StateCell",
    "StateSubscription",
    "StateListener",
]
