"""Timed-block instrumentation: publish measurements, subscribe by name.

The duration-oriented side of the house. Code wraps a block in
instrument(), and every subscriber of that exact name receives a TimedEvent
when the block finishes (normally or by raising):

    with instrument("sql.active_record", {"statement": sql}) as payload:
        payload["rows"] = run(sql)

Subscriptions live on a dedicated pyventus EventLinker, so they stay
isolated from any other pyventus usage in the process. Delivery does not
go through a pyventus EventEmitter: its processing services defer
callbacks to tasks inside a running event loop, and subscribers here must
run before instrument() returns, in the caller's thread and context.
Bridges (herald.bridge) turn these measurements into reporter events.
"""

from __future__ import annotations

import sys
import threading
import time
import uuid
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pyventus.events import EventLinker

if TYPE_CHECKING:
    from pyventus.events import EventSubscriber


class InstrumentationLinker(EventLinker):
    """Isolated event namespace for timed-block notifications."""

    pass


@dataclass(frozen=True)
class TimedEvent:
    """One finished instrumented block."""

    name: str
    transaction_id: str
    payload: dict[str, Any] = field(repr=False)
    start: int  # wall clock ns
    finish: int  # wall clock ns
    duration: float  # ms, monotonic
    cpu_time: float  # ms spent on this thread's CPU
    allocations: int  # net allocated blocks

    @property
    def idle_time(self) -> float:
        """ms spent waiting rather than computing."""
        return max(self.duration - self.cpu_time, 0.0)

    @property
    def failed(self) -> bool:
        return "exception" in self.payload


# linker subscriber -> the plain callable it was registered with
_callbacks: dict[EventSubscriber, Callable[[TimedEvent], Any]] = {}
_lock = threading.Lock()


def subscribe(name: str, callback: Callable[[TimedEvent], Any]) -> EventSubscriber:
    """Deliver every TimedEvent published under `name` to callback.

    Returns a handle for unsubscribe().
    """
    with _lock:
        handle = InstrumentationLinker.subscribe(name, event_callback=callback)
        _callbacks[handle] = callback
    return handle


def unsubscribe(handle: EventSubscriber) -> bool:
    with _lock:
        _callbacks.pop(handle, None)
        return InstrumentationLinker.remove_subscriber(handle)


def is_listening(name: str) -> bool:
    return bool(InstrumentationLinker.get_registry().get(name))


def publish(event: TimedEvent) -> None:
    """Call every subscriber of event.name synchronously, in the caller's context.

    Subscriber errors propagate; Bridge isolates its own handlers.
    """
    subscribers = InstrumentationLinker.get_subscribers_from_events(event.name)
    for handle in subscribers:
        callback = _callbacks.get(handle)
        if callback is not None:
            callback(event)


@contextmanager
def instrument(name: str, payload: Mapping[str, Any] | None = None) -> Iterator[dict[str, Any]]:
    """Measure the block and publish a TimedEvent named `name`.

    Yields the payload dict so the block can add results. If the block
    raises, the payload records ("exception", (type, message)) and
    "exception_object" before the error propagates.
    """
    data: dict[str, Any] = dict(payload or {})
    if not is_listening(name):
        yield data
        return

    transaction_id = uuid.uuid4().hex
    start = time.time_ns()
    t0 = time.perf_counter_ns()
    cpu0 = time.thread_time_ns()
    blocks0 = sys.getallocatedblocks()
    try:
        yield data
    except Exception as exc:
        data["exception"] = (type(exc).__name__, str(exc))
        data["exception_object"] = exc
        raise
    finally:
        elapsed = time.perf_counter_ns() - t0
        event = TimedEvent(
            name=name,
            transaction_id=transaction_id,
            payload=data,
            start=start,
            finish=start + elapsed,
            duration=elapsed / 1_000_000,
            cpu_time=(time.thread_time_ns() - cpu0) / 1_000_000,
            allocations=max(sys.getallocatedblocks() - blocks0, 0),
        )
        publish(event)


def reset() -> None:
    """Drop every instrumentation subscription (tests)."""
    with _lock:
        InstrumentationLinker.remove_all()
        _callbacks.clear()
