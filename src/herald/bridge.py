"""Bridge: turn timed-block notifications into reporter events.

A bridge declares handlers with @handles and attaches to a namespace.
Each handler receives the TimedEvent for "<handler>.<namespace>" and calls
emit_event() to report a structured event:

    class ControllerBridge(Bridge):
        @handles()
        def start_processing(self, event):
            self.emit_event("request_started", controller=event.payload["controller"])

        @handles(debug=True)
        def render_template(self, event):
            self.emit_event("template_rendered", duration_ms=event.duration)

    ControllerBridge.attach_to("action_controller")
    # "start_processing.action_controller" -> notify("action_controller.request_started", ...)

The handler table is built once per class from the decorated methods; a
notification without a handler is never subscribed to, so it costs nothing.
Handler errors are reported and swallowed: a broken exporter must not
break the instrumented code path.
"""

from __future__ import annotations

import contextvars
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar, TypeVar

from herald import instrumentation
from herald.errors import safe_report
from herald.event import Level, validate_name
from herald.instrumentation import TimedEvent
from herald.logging import get_logger

F = TypeVar("F", bound=Callable[..., Any])

_HANDLER_ATTR = "__herald_handler__"

_in_debug_handler: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "herald_in_debug_handler", default=False
)


@dataclass(frozen=True)
class HandlerSpec:
    event: str  # notification name before the namespace
    method: str
    debug: bool = False


def handles(event: str | None = None, *, debug: bool = False) -> Callable[[F], F]:
    """Mark a bridge method as the handler for "<event>.<namespace>".

    event defaults to the method name. debug=True reports through
    Reporter.debug() and skips the handler entirely while debug is off.
    """

    def decorator(fn: F) -> F:
        setattr(fn, _HANDLER_ATTR, HandlerSpec(event or fn.__name__, fn.__name__, debug))
        return fn

    return decorator


class Bridge:
    """Base class for instrumentation-to-event adapters."""

    handlers: ClassVar[dict[str, HandlerSpec]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        table: dict[str, HandlerSpec] = {}
        # Base classes first so subclasses can override a handler
        for klass in reversed(cls.__mro__):
            for attr in vars(klass).values():
                spec = getattr(attr, _HANDLER_ATTR, None)
                if isinstance(spec, HandlerSpec):
                    table[spec.event] = spec
        cls.handlers = table

    def __init__(self, namespace: str, reporter: Any = None) -> None:
        validate_name(namespace)
        self.namespace = namespace
        self._reporter = reporter
        self._subscriptions: list[Any] = []

    @property
    def reporter(self) -> Any:
        if self._reporter is None:
            from herald.emitter import get_reporter

            return get_reporter()
        return self._reporter

    # ------------------------------------------------------------------
    # Attachment
    # ------------------------------------------------------------------

    @classmethod
    def attach_to(cls, namespace: str, reporter: Any = None, **kwargs: Any) -> Bridge:
        bridge = cls(namespace, reporter, **kwargs)
        bridge.attach()
        return bridge

    def attach(self) -> None:
        if self._subscriptions:
            return
        for spec in self.handlers.values():
            name = f"{spec.event}.{self.namespace}"
            self._subscriptions.append(
                instrumentation.subscribe(name, self._make_callback(spec))
            )
        _attached.append(self)
        get_logger("herald.bridge").debug(
            "bridge.attached",
            bridge=type(self).__name__,
            namespace=self.namespace,
            handlers=sorted(self.handlers),
        )

    def detach(self) -> None:
        for handle in self._subscriptions:
            instrumentation.unsubscribe(handle)
        self._subscriptions.clear()
        if self in _attached:
            _attached.remove(self)

    @classmethod
    def detach_from(cls, namespace: str) -> None:
        for bridge in [b for b in _attached if type(b) is cls and b.namespace == namespace]:
            bridge.detach()

    @property
    def attached(self) -> bool:
        return bool(self._subscriptions)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _make_callback(self, spec: HandlerSpec) -> Callable[[TimedEvent], None]:
        def _callback(event: TimedEvent) -> None:
            self.call(spec, event)

        return _callback

    def silenced(self, spec: HandlerSpec) -> bool:
        return self.reporter.is_silenced(Level.DEBUG if spec.debug else Level.INFO)

    def call(self, spec: HandlerSpec, event: TimedEvent) -> None:
        """Run one handler, isolating its failures from the instrumented code."""
        reporter = self.reporter
        if self.silenced(spec):
            return
        token = _in_debug_handler.set(spec.debug)
        try:
            getattr(self, spec.method)(event)
        except Exception as exc:
            safe_report(
                reporter.error_reporter,
                exc,
                source="herald.bridge",
                bridge=type(self).__name__,
                notification=event.name,
            )
            if reporter.raise_on_error:
                raise
        finally:
            _in_debug_handler.reset(token)

    # ------------------------------------------------------------------
    # Helpers for handlers
    # ------------------------------------------------------------------

    def qualify(self, name: str) -> str:
        if name.startswith(f"{self.namespace}."):
            return name
        return f"{self.namespace}.{name}"

    def emit_event(self, name: str, **fields: Any) -> None:
        """Report "<namespace>.<name>"; debug handlers report at debug level."""
        level = Level.DEBUG if _in_debug_handler.get() else Level.INFO
        self._report(level, name, fields)

    def emit_debug_event(self, name: str, **fields: Any) -> None:
        self._report(Level.DEBUG, name, fields)

    def _report(self, level: Level, name: str, fields: dict[str, Any]) -> None:
        send = self.reporter.debug if level is Level.DEBUG else self.reporter.notify
        # 3: this frame, emit_event(), then the handler itself
        send(self.qualify(name), fields, caller_depth=3)


_attached: list[Bridge] = []


def detach_all() -> None:
    """Detach every attached bridge (tests, shutdown)."""
    for bridge in list(_attached):
        bridge.detach()
