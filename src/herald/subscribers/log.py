"""Routes events to structured log lines via the configured LogFormatter.

Uses get_logger() from herald.logging, so it follows whichever formatter
is active. Info events log at INFO, debug events at DEBUG.
"""

from __future__ import annotations

from typing import Any

from herald.event import Event, Level
from herald.logging import get_logger


class LogSubscriber:
    def __init__(self, logger_name: str = "herald.events") -> None:
        self.logger_name = logger_name

    def _get_logger(self) -> Any:
        """Lazy logger -- always reflects the active formatter, not stale init-time state."""
        return get_logger(self.logger_name)

    def emit(self, event: Event) -> None:
        fields: dict[str, Any] = {"payload": event.to_dict()["payload"]}
        if event.tags:
            fields["tags"] = dict(event.tags)
        if event.context:
            fields["context"] = dict(event.context)
        if event.source_location is not None:
            fields["source"] = (
                f"{event.source_location.filepath}:{event.source_location.lineno}"
            )
        logger = self._get_logger()
        if event.level is Level.DEBUG:
            logger.debug(event.name, **fields)
        else:
            logger.info(event.name, **fields)
