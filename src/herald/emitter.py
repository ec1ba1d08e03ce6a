"""Process reporter: configure once, notify everywhere.

The module-level functions are the API application code uses. They all
delegate to one Reporter created by configure(); get_reporter() configures
with defaults on first use.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from herald.reporter import Reporter

if TYPE_CHECKING:
    from herald.config import ReporterConfig
    from herald.errors import ErrorReporter
    from herald.event import Level
    from herald.registry import EventFilter

_reporter: Reporter | None = None
_configured: bool = False


def _attach_bundled_subscribers(reporter: Reporter, cfg: ReporterConfig) -> None:
    from herald.logging import get_logger

    if cfg.log_events:
        from herald.subscribers.log import LogSubscriber

        reporter.subscribe(LogSubscriber())

    if cfg.events_path:
        from herald.subscribers.sink import SinkSubscriber

        reporter.subscribe(SinkSubscriber.jsonl(cfg.events_path))

    if cfg.otel_enabled:
        try:
            from herald.subscribers.otel import SpanEventSubscriber

            reporter.subscribe(SpanEventSubscriber())
        except ImportError:
            get_logger("herald").warning(
                "otel_enabled but opentelemetry not installed",
                hint="pip install herald[otel]",
            )


def configure(
    config: ReporterConfig | None = None,
    *,
    error_reporter: ErrorReporter | None = None,
    redactor: Callable[[Mapping[str, Any]], Mapping[str, Any]] | None = None,
) -> Reporter:
    """Initialize the process reporter and its bundled subscribers.

    Called once at startup. Idempotent -- second call returns the existing reporter.
    """
    global _reporter, _configured

    if _configured and _reporter is not None:
        return _reporter

    from herald.config import ReporterConfig
    from herald.logging import get_logger, setup_logging

    cfg = config or ReporterConfig.load()
    setup_logging(cfg)

    reporter = Reporter(cfg, redactor=redactor, error_reporter=error_reporter)
    _attach_bundled_subscribers(reporter, cfg)

    _reporter = reporter
    _configured = True

    get_logger("herald").info(
        "herald.configured",
        debug=cfg.debug,
        raise_on_error=cfg.raise_on_error,
        subscribers=len(reporter.registry),
        filter_parameters=len(cfg.filter_parameters),
    )
    return reporter


def get_reporter() -> Reporter:
    if _reporter is None:
        return configure()
    return _reporter


def is_configured() -> bool:
    return _configured


def reset() -> None:
    """Reset for testing."""
    global _reporter, _configured

    from herald.logging import shutdown_logging

    shutdown_logging()

    _reporter = None
    _configured = False


# ---------------------------------------------------------------------------
# Module-level facade
# ---------------------------------------------------------------------------


def notify(name_or_event: Any, payload: Any = None, *, caller_depth: int = 1, **extra: Any) -> None:
    get_reporter().notify(name_or_event, payload, caller_depth=caller_depth + 1, **extra)


def debug(name_or_event: Any, payload: Any = None, *, caller_depth: int = 1, **extra: Any) -> None:
    get_reporter().debug(name_or_event, payload, caller_depth=caller_depth + 1, **extra)


def with_debug():
    return get_reporter().with_debug()


def subscribe(
    subscriber: Any,
    filter: EventFilter | None = None,
    *,
    levels: Iterable[Level] | None = None,
) -> int:
    return get_reporter().subscribe(subscriber, filter, levels=levels)


def unsubscribe(handle: Any) -> None:
    get_reporter().unsubscribe(handle)
