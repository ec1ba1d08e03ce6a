"""herald's own structured logging: formatter x destination, picked by config.

herald logs its diagnostics here (configure, isolated subscriber failures,
bridge attachment). Events reach a log only when the host subscribes a
LogSubscriber.

A LogFormatter decides how records look, a LogDestination decides where
the handler writes. setup_logging() builds both from the registries below
and installs one herald-owned handler on the root logger, leaving every
other handler (pytest's caplog, the host's own) alone:

    HERALD_LOG_FORMATTER=structlog   (default)
    HERALD_LOG_DESTINATION=stderr    (default) | jsonl
    HERALD_LOG_FORMAT=json           (default) | console

Extra formatters and destinations are factories keyed by name:

    register_destination("syslog", lambda config: SyslogDestination(config.log_path))
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import structlog

if TYPE_CHECKING:
    from herald.config import ReporterConfig

_MANAGED = "_herald_managed"


@runtime_checkable
class LogFormatter(Protocol):
    def setup(self, config: ReporterConfig) -> logging.Formatter: ...

    def get_logger(self, name: str, **kwargs: Any) -> Any: ...


@runtime_checkable
class LogDestination(Protocol):
    def create_handler(self, formatter: logging.Formatter) -> logging.Handler: ...

    def shutdown(self) -> None: ...


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------


class StructlogFormatter:
    """structlog processor chain, rendered by a stdlib ProcessorFormatter.

    Records from plain logging.getLogger() loggers run through the same
    chain, so the host's own log lines come out in the same shape.
    """

    def _chain(self) -> list[Any]:
        return [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
        ]

    def setup(self, config: ReporterConfig) -> logging.Formatter:
        chain = self._chain()
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *chain,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        renderer: Any = (
            structlog.dev.ConsoleRenderer()
            if config.log_format == "console"
            else structlog.processors.JSONRenderer(default=str)
        )
        return structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )

    def get_logger(self, name: str, **kwargs: Any) -> Any:
        return structlog.get_logger(name, **kwargs)


class _KwargsLogger:
    """logger.info("event", key=value) on a stdlib logger, before setup_logging().

    Keyword fields ride on the record as `_structured`.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _log(self, level: int, event: str, exc_info: Any = None, **fields: Any) -> None:
        self._logger.log(level, event, exc_info=exc_info, extra={"_structured": fields})

    def debug(self, event: str, **fields: Any) -> None:
        self._log(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self._log(logging.INFO, event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._log(logging.WARNING, event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._log(logging.ERROR, event, **fields)


# ---------------------------------------------------------------------------
# Destinations
# ---------------------------------------------------------------------------


class StderrDestination:
    def create_handler(self, formatter: logging.Formatter) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        return handler

    def shutdown(self) -> None:
        pass


class JsonlFileDestination:
    """One rendered record per line, appended to config.log_path."""

    def __init__(self, config: ReporterConfig) -> None:
        self.path = Path(config.log_path or "herald.log.jsonl")
        self._handler: logging.FileHandler | None = None

    def create_handler(self, formatter: logging.Formatter) -> logging.Handler:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handler = logging.FileHandler(self.path, mode="a", encoding="utf-8")
        self._handler.setFormatter(formatter)
        return self._handler

    def shutdown(self) -> None:
        if self._handler is not None:
            self._handler.close()
            self._handler = None


# ---------------------------------------------------------------------------
# Registries and setup
# ---------------------------------------------------------------------------

FormatterFactory = Callable[[], LogFormatter]
DestinationFactory = Callable[["ReporterConfig"], LogDestination]

_FORMATTERS: dict[str, FormatterFactory] = {"structlog": StructlogFormatter}
_DESTINATIONS: dict[str, DestinationFactory] = {
    "stderr": lambda config: StderrDestination(),
    "jsonl": JsonlFileDestination,
}


def register_formatter(name: str, factory: FormatterFactory) -> None:
    _FORMATTERS[name] = factory


def register_destination(name: str, factory: DestinationFactory) -> None:
    """factory receives the ReporterConfig and returns a LogDestination."""
    _DESTINATIONS[name] = factory


def _lookup(registry: dict[str, Any], name: str, kind: str) -> Any:
    try:
        return registry[name]
    except KeyError:
        raise ValueError(
            f"Unknown log {kind}: {name!r}. Registered: {sorted(registry)}"
        ) from None


_formatter: LogFormatter | None = None
_destination: LogDestination | None = None


def _detach_managed_handlers() -> None:
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _MANAGED, False)]:
        root.removeHandler(handler)


def setup_logging(config: ReporterConfig) -> None:
    """Install herald's handler on the root logger, replacing a previous one."""
    global _formatter, _destination

    formatter = _lookup(_FORMATTERS, config.log_formatter, "formatter")()
    destination = _lookup(_DESTINATIONS, config.log_destination, "destination")(config)
    handler = destination.create_handler(formatter.setup(config))
    setattr(handler, _MANAGED, True)

    shutdown_logging()
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(config.log_level.upper(), logging.INFO))

    _formatter = formatter
    _destination = destination


def get_logger(name: str = "", **kwargs: Any) -> Any:
    """Structured logger from the active formatter, or a kwargs-aware stdlib one."""
    if _formatter is None:
        return _KwargsLogger(logging.getLogger(name))
    return _formatter.get_logger(name, **kwargs)


def shutdown_logging() -> None:
    global _formatter, _destination

    _detach_managed_handlers()
    if _destination is not None:
        _destination.shutdown()
    _formatter = None
    _destination = None
