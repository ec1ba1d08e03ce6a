"""No-op sink."""

from __future__ import annotations


class NoOpSink:
    """Discards all events."""

    def write(self, event_dict: dict) -> None:
        pass
