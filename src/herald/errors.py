"""Exception types and the error-reporting collaborator.

Usage errors (bad event name, bad subscription, unbalanced tag frames,
failing redactor) are raised to the caller. Everything a subscriber or a
bridge handler raises is isolated and handed to an ErrorReporter instead.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


class HeraldError(Exception):
    """Base class for herald errors."""


class InvalidEventName(HeraldError, ValueError):
    """Event name is empty or not a dot-segmented identifier."""


class InvalidSubscription(HeraldError, TypeError):
    """Subscriber lacks emit() or the filter is not callable."""


class ContextError(HeraldError, RuntimeError):
    """Tag frames popped out of order or from another execution context."""


class RedactionError(HeraldError):
    """The configured redactor failed; the event is not dispatched."""


@runtime_checkable
class ErrorReporter(Protocol):
    """Where isolated subscriber and handler failures go."""

    def report(
        self, error: BaseException, *, handled: bool = True, source: str = "", **context: Any
    ) -> None: ...


def safe_report(
    reporter: ErrorReporter, error: BaseException, *, source: str, **context: Any
) -> None:
    """Hand an isolated error to the reporter; a failing reporter is only logged."""
    try:
        reporter.report(error, handled=True, source=source, **context)
    except Exception:
        from herald.logging import get_logger

        get_logger("herald.errors").warning(
            "herald.error_reporter_failed",
            reporter=type(reporter).__name__,
            source=source,
            exc_info=True,
        )


class LoggingErrorReporter:
    """Default: log isolated failures through the configured logger."""

    def __init__(self, logger_name: str = "herald.errors") -> None:
        self._logger_name = logger_name

    def report(
        self, error: BaseException, *, handled: bool = True, source: str = "", **context: Any
    ) -> None:
        from herald.logging import get_logger

        get_logger(self._logger_name).error(
            "herald.error_reported",
            error_type=type(error).__name__,
            error=str(error),
            handled=handled,
            source=source,
            exc_info=error,
            **context,
        )
