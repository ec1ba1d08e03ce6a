"""Reporter facade: notify/debug/tagged/set_context/subscribe.

Composes the context stack, the event builder, the redactor and the
subscription registry. Holds no per-call state of its own.

    reporter = Reporter()
    reporter.subscribe(MySubscriber())
    with reporter.tagged("checkout"):
        reporter.notify("order.placed", {"order_id": 42}, total=19.99)
"""

from __future__ import annotations

import contextvars
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from herald import context
from herald.config import ReporterConfig
from herald.errors import ErrorReporter, RedactionError
from herald.event import Event, Level, Normalizable, build_event, name_for, validate_name
from herald.redaction import Redactor
from herald.registry import EventFilter, SubscriptionRegistry

_debug_override: contextvars.ContextVar[bool | None] = contextvars.ContextVar(
    "herald_debug_override", default=None
)


class Reporter:
    def __init__(
        self,
        config: ReporterConfig | None = None,
        *,
        redactor: Callable[[Mapping[str, Any]], Mapping[str, Any]] | None = None,
        error_reporter: ErrorReporter | None = None,
    ) -> None:
        self.config = config or ReporterConfig()
        self.redactor = redactor if redactor is not None else Redactor.from_config(self.config)
        self.registry = SubscriptionRegistry(
            error_reporter, raise_on_error=self.config.raise_on_error
        )
        self._debug_mode = self.config.debug

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def error_reporter(self) -> ErrorReporter:
        return self.registry.error_reporter

    @property
    def raise_on_error(self) -> bool:
        return self.registry.raise_on_error

    @raise_on_error.setter
    def raise_on_error(self, value: bool) -> None:
        self.registry.raise_on_error = value

    @property
    def debug_mode(self) -> bool:
        override = _debug_override.get()
        return self._debug_mode if override is None else override

    @debug_mode.setter
    def debug_mode(self, value: bool) -> None:
        self._debug_mode = value

    @contextmanager
    def with_debug(self) -> Iterator[None]:
        """Enable debug events for the current execution context only."""
        token = _debug_override.set(True)
        try:
            yield
        finally:
            _debug_override.reset(token)

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def notify(
        self,
        name_or_event: str | Any,
        payload: Any = None,
        *,
        caller_depth: int = 1,
        **extra: Any,
    ) -> None:
        """Report an info-level event.

        notify("user.signup", {"id": 7}, plan="pro")  -- map payload merged with extra
        notify("user.signup", UserSignup(...))        -- object payload, no extra allowed
        notify(UserSignup(...))                       -- name derived from the type
        """
        name, payload = _resolve(name_or_event, payload, extra)
        if not self.registry.accepts(Level.INFO):
            return
        self._emit(name, payload, Level.INFO, caller_depth)

    def debug(
        self,
        name_or_event: str | Any,
        payload: Any = None,
        *,
        caller_depth: int = 1,
        **extra: Any,
    ) -> None:
        """Report a debug-level event.

        Does nothing unless debug mode is on and a subscription accepts
        debug events. Pass a zero-argument callable as payload to defer
        building it until then:

            reporter.debug("sql.plan", lambda: {"plan": explain(query)})
        """
        if isinstance(name_or_event, str):
            validate_name(name_or_event)
        if not (self.debug_mode and self.registry.accepts(Level.DEBUG)):
            return
        if callable(payload) and not isinstance(payload, (Mapping, Normalizable, type)):
            payload = payload()
        name, payload = _resolve(name_or_event, payload, extra)
        self._emit(name, payload, Level.DEBUG, caller_depth)

    def _emit(self, name: str, payload: Any, level: Level, caller_depth: int) -> None:
        # +2: this frame and notify()/debug()
        event = build_event(name, payload, level, caller_depth + 2)
        event = self._redact(event)
        self.registry.dispatch(event)

    def _redact(self, event: Event) -> Event:
        if event.is_object_payload:
            return event
        if isinstance(self.redactor, Redactor) and not self.redactor.enabled:
            return event
        try:
            redacted = self.redactor(event.payload)
        except Exception as exc:
            raise RedactionError(
                f"Redactor {type(self.redactor).__name__} failed for event {event.name!r}"
            ) from exc
        return event.with_payload(redacted)

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def tagged(self, *tags: str | Mapping[str, Any], **kwtags: Any):
        return context.tagged(*tags, **kwtags)

    def current_tags(self) -> dict[str, Any]:
        return context.current_tags()

    def set_context(self, values: Mapping[str, Any] | None = None, **kw: Any) -> None:
        context.set_context(values, **kw)

    def with_context(self, values: Mapping[str, Any] | None = None, **kw: Any):
        return context.with_context(values, **kw)

    def current_context(self) -> dict[str, Any]:
        return context.current_context()

    def reset_context(self) -> None:
        context.reset_context()

    def capture(self) -> context.ContextSnapshot:
        return context.capture()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        subscriber: Any,
        filter: EventFilter | None = None,
        *,
        levels: Iterable[Level] | None = None,
    ) -> int:
        return self.registry.subscribe(subscriber, filter, levels=levels)

    def unsubscribe(self, handle: int | Any) -> None:
        self.registry.unsubscribe(handle)

    def is_silenced(self, level: Level = Level.INFO) -> bool:
        """True when an event of this level would reach nobody."""
        if level is Level.DEBUG and not self.debug_mode:
            return True
        return not self.registry.accepts(level)


def _resolve(name_or_event: Any, payload: Any, extra: dict[str, Any]) -> tuple[str, Any]:
    """Split notify() arguments into (name, payload), rejecting bad combinations."""
    if not isinstance(name_or_event, str):
        if payload is not None or extra:
            raise TypeError(
                "An event object carries its own payload; "
                "pass neither payload nor keyword fields with it"
            )
        return name_for(name_or_event), name_or_event

    name = validate_name(name_or_event)
    if payload is None:
        return name, dict(extra)
    if isinstance(payload, Mapping):
        return name, {**payload, **extra}
    if extra:
        raise TypeError(
            f"Keyword fields cannot be merged into a {type(payload).__name__} payload"
        )
    return name, payload
