"""Test helpers: collect reported events and assert on them.

    def test_signup(reporter):
        with assert_event_reported("user.signup", payload={"id": 7}, reporter=reporter):
            signup(7)
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from herald.event import Event, Level


class EventCollector:
    """Subscriber that keeps every event it receives."""

    def __init__(self) -> None:
        self._events: list[Event] = []
        self._lock = threading.Lock()

    def emit(self, event: Event) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[Event]:
        with self._lock:
            return list(self._events)

    def names(self) -> list[str]:
        return [e.name for e in self.events]

    def find(self, name: str) -> list[Event]:
        return [e for e in self.events if e.name == name]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        return len(self.events)


def _resolve_reporter(reporter: Any) -> Any:
    if reporter is None:
        from herald.emitter import get_reporter

        return get_reporter()
    return reporter


@contextmanager
def capture_events(
    reporter: Any = None, *, levels: Iterable[Level] | None = None
) -> Iterator[EventCollector]:
    """Subscribe a collector for the duration of the block."""
    reporter = _resolve_reporter(reporter)
    collector = EventCollector()
    handle = reporter.subscribe(collector, levels=levels)
    try:
        yield collector
    finally:
        reporter.unsubscribe(handle)


def _subset(expected: Mapping[str, Any] | None, actual: Mapping[str, Any]) -> bool:
    if expected is None:
        return True
    return all(k in actual and actual[k] == v for k, v in expected.items())


def matches(
    event: Event,
    name: str,
    payload: Mapping[str, Any] | None = None,
    tags: Mapping[str, Any] | None = None,
    context: Mapping[str, Any] | None = None,
) -> bool:
    if event.name != name:
        return False
    return (
        _subset(payload, event.payload_dict())
        and _subset(tags, event.tags)
        and _subset(context, event.context)
    )


@contextmanager
def assert_event_reported(
    name: str,
    payload: Mapping[str, Any] | None = None,
    tags: Mapping[str, Any] | None = None,
    context: Mapping[str, Any] | None = None,
    *,
    reporter: Any = None,
) -> Iterator[EventCollector]:
    """Fail unless the block reports a matching event (payload/tags/context as subsets)."""
    with capture_events(reporter) as collector:
        yield collector
    if not any(matches(e, name, payload, tags, context) for e in collector.events):
        reported = ", ".join(collector.names()) or "none"
        raise AssertionError(
            f"Expected event {name!r} matching payload={payload!r} tags={tags!r} "
            f"context={context!r}; reported: {reported}"
        )


@contextmanager
def assert_no_events_reported(
    name: str | None = None, *, reporter: Any = None
) -> Iterator[EventCollector]:
    """Fail if the block reports any event (or any event with this name)."""
    with capture_events(reporter) as collector:
        yield collector
    offending = collector.find(name) if name else collector.events
    if offending:
        raise AssertionError(
            f"Expected no events{f' named {name!r}' if name else ''}; "
            f"reported: {', '.join(e.name for e in offending)}"
        )
