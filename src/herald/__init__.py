"""herald: structured event reporting with tags, context and subscribers.

Public API:
    notify(name, payload, **extra)  -- Report an info event to matching subscribers
    debug(name, payload)            -- Report a debug event (lazy payload, debug mode only)
    tagged(*tags, **kwtags)         -- Scoped tags merged into events in the block
    set_context(**kw)               -- Execution-scoped context merged into events
    subscribe(sub, filter)          -- Register a subscriber with emit(event)
    configure(cfg)                  -- Initialize the process reporter (call once at startup)
    reset()                         -- Reset for testing

Instrumentation bridge:
    instrument(name, payload)       -- Measure a block, publish a TimedEvent
    Bridge / handles                -- Turn TimedEvents into reporter events

Logging (swappable formatter x destination):
    get_logger(name)                -- Get a structured logger
"""

from herald.bridge import Bridge, handles
from herald.config import ReporterConfig
from herald.context import (
    ContextSnapshot,
    capture,
    current_context,
    current_tags,
    reset_context,
    set_context,
    tagged,
    with_context,
)
from herald.emitter import (
    configure,
    debug,
    get_reporter,
    is_configured,
    notify,
    reset,
    subscribe,
    unsubscribe,
    with_debug,
)
from herald.errors import (
    ContextError,
    ErrorReporter,
    HeraldError,
    InvalidEventName,
    InvalidSubscription,
    LoggingErrorReporter,
    RedactionError,
)
from herald.event import Event, Level, Normalizable, SourceLocation
from herald.instrumentation import TimedEvent, instrument
from herald.logging import get_logger
from herald.redaction import Redactor
from herald.reporter import Reporter

__all__ = [
    # Core API
    "notify",
    "debug",
    "with_debug",
    "subscribe",
    "unsubscribe",
    "configure",
    "get_reporter",
    "is_configured",
    "reset",
    "Reporter",
    "ReporterConfig",
    # Context
    "tagged",
    "current_tags",
    "set_context",
    "with_context",
    "current_context",
    "reset_context",
    "capture",
    "ContextSnapshot",
    # Events
    "Event",
    "Level",
    "Normalizable",
    "SourceLocation",
    # Redaction
    "Redactor",
    # Errors
    "HeraldError",
    "InvalidEventName",
    "InvalidSubscription",
    "ContextError",
    "RedactionError",
    "ErrorReporter",
    "LoggingErrorReporter",
    # Instrumentation
    "instrument",
    "TimedEvent",
    "Bridge",
    "handles",
    # Logging
    "get_logger",
]
