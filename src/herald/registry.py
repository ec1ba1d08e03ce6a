"""Subscription registry: ordered, copy-on-write, dispatch without locks.

Writers (subscribe/unsubscribe) swap in a new tuple under a lock. Readers
(dispatch) grab whatever tuple is current and iterate it, so dispatch never
blocks registration, never sees a half-updated list, and never holds a
lock while a subscriber runs.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from herald.errors import (
    ErrorReporter,
    InvalidSubscription,
    LoggingErrorReporter,
    safe_report,
)
from herald.event import Event, Level

EventFilter = Callable[[Event], bool]

ALL_LEVELS: frozenset[Level] = frozenset(Level)


@runtime_checkable
class Subscriber(Protocol):
    """Anything with emit(event). Should handle its own failures."""

    def emit(self, event: Event) -> None: ...


@dataclass(frozen=True)
class Subscription:
    id: int
    subscriber: Any
    filter: EventFilter | None = None
    levels: frozenset[Level] = ALL_LEVELS

    def accepts(self, event: Event) -> bool:
        if event.level not in self.levels:
            return False
        return self.filter is None or bool(self.filter(event))


class SubscriptionRegistry:
    def __init__(
        self,
        error_reporter: ErrorReporter | None = None,
        *,
        raise_on_error: bool = False,
    ) -> None:
        self.error_reporter: ErrorReporter = error_reporter or LoggingErrorReporter()
        self.raise_on_error = raise_on_error
        self._subscriptions: tuple[Subscription, ...] = ()
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    @property
    def subscriptions(self) -> tuple[Subscription, ...]:
        return self._subscriptions

    def __len__(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        subscriber: Any,
        filter: EventFilter | None = None,
        *,
        levels: Iterable[Level] | None = None,
    ) -> int:
        """Register a subscriber; returns a handle for unsubscribe()."""
        if not callable(getattr(subscriber, "emit", None)):
            raise InvalidSubscription(
                f"{type(subscriber).__name__} must define an emit(event) method"
            )
        if filter is not None and not callable(filter):
            raise InvalidSubscription(f"Filter must be callable, got {filter!r}")
        level_set = frozenset(levels) if levels is not None else ALL_LEVELS
        if not level_set or not all(isinstance(lv, Level) for lv in level_set):
            raise InvalidSubscription(f"levels must be a non-empty set of Level, got {levels!r}")

        with self._lock:
            sub = Subscription(
                id=next(self._ids), subscriber=subscriber, filter=filter, levels=level_set
            )
            self._subscriptions = (*self._subscriptions, sub)
        return sub.id

    def unsubscribe(self, handle: int | Any) -> None:
        """Remove by handle, or every subscription of the given subscriber."""
        with self._lock:
            if isinstance(handle, int):
                kept = tuple(s for s in self._subscriptions if s.id != handle)
            else:
                kept = tuple(s for s in self._subscriptions if s.subscriber is not handle)
            self._subscriptions = kept

    def clear(self) -> None:
        with self._lock:
            self._subscriptions = ()

    def accepts(self, level: Level) -> bool:
        """Whether any subscription takes events of this level."""
        return any(level in s.levels for s in self._subscriptions)

    def dispatch(self, event: Event) -> int:
        """Deliver to every accepting subscription in registration order.

        Returns the number of subscribers that received the event.
        """
        delivered = 0
        first_error: BaseException | None = None
        for sub in self._subscriptions:
            try:
                if not sub.accepts(event):
                    continue
                sub.subscriber.emit(event)
                delivered += 1
            except Exception as exc:
                safe_report(
                    self.error_reporter,
                    exc,
                    source="herald.dispatch",
                    event_name=event.name,
                    subscriber=type(sub.subscriber).__name__,
                )
                if first_error is None:
                    first_error = exc
        if first_error is not None and self.raise_on_error:
            raise first_error
        return delivered
