from __future__ import annotations

import threading

import pytest

from logreader.core.broadcast import LineBroadcaster
from logreader.core.models import LogEntry


def _entries(count: int, start: int = 1) -> list[LogEntry]:
    return [LogEntry.create(f"line {i}", i) for i in range(start, start + count)]


def test_every_subscriber_sees_every_entry_in_order() -> None:
    hub = LineBroadcaster()
    first = hub.subscribe("first")
    second = hub.subscribe("second")

    for entry in _entries(3):
        assert hub.publish(entry) == 2

    assert [e.id for e in first.drain()] == [1, 2, 3]
    assert [e.id for e in second.drain()] == [1, 2, 3]


def test_publish_without_subscribers_is_a_noop() -> None:
    hub = LineBroadcaster()
    assert hub.publish(LogEntry.create("nobody listening", 1)) == 0


def test_slow_subscriber_drops_newest_without_affecting_others() -> None:
    hub = LineBroadcaster()
    slow = hub.subscribe("slow", capacity=2)
    fast = hub.subscribe("fast", capacity=100)

    for entry in _entries(5):
        hub.publish(entry)

    assert [e.id for e in slow.drain()] == [1, 2]
    assert slow.dropped == 3
    assert [e.id for e in fast.drain()] == [1, 2, 3, 4, 5]
    assert fast.dropped == 0


def test_late_subscriber_only_sees_later_entries() -> None:
    hub = LineBroadcaster()
    early = hub.subscribe("early")
    hub.publish(LogEntry.create("before", 1))

    late = hub.subscribe("late")
    hub.publish(LogEntry.create("after", 2))

    assert [e.line for e in early.drain()] == ["before", "after"]
    assert [e.line for e in late.drain()] == ["after"]


def test_close_ends_iteration_after_queued_entries() -> None:
    hub = LineBroadcaster()
    sub = hub.subscribe("reader")
    for entry in _entries(3):
        hub.publish(entry)
    sub.close()

    assert [e.id for e in sub] == [1, 2, 3]
    assert sub.get(timeout=0.01) is None
    assert hub.subscriber_count == 0
    assert hub.publish(LogEntry.create("ignored", 4)) == 0


def test_close_wakes_a_blocked_consumer() -> None:
    hub = LineBroadcaster()
    sub = hub.subscribe("blocked")
    received: list[LogEntry] = []

    thread = threading.Thread(target=lambda: received.extend(sub), daemon=True)
    thread.start()
    hub.publish(LogEntry.create("one", 1))
    hub.close()
    thread.join(1.0)

    assert not thread.is_alive()
    assert [e.line for e in received] == ["one"]


def test_get_times_out_with_none() -> None:
    sub = LineBroadcaster().subscribe()
    assert sub.get(timeout=0.01) is None


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        LineBroadcaster(subscriber_capacity=0)
