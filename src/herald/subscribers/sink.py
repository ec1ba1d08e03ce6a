"""Sink subscriber: writes every event to an EventSink as a plain dict.

Loki-ready when paired with JsonlSink: each line is a complete JSON object
with name, payload, timestamp, source_location, tags, context and level.
"""

from __future__ import annotations

from pathlib import Path

from herald.event import Event
from herald.sinks.base import EventSink
from herald.sinks.jsonl_sink import JsonlSink


class SinkSubscriber:
    def __init__(self, sink: EventSink) -> None:
        self.sink = sink

    @classmethod
    def jsonl(cls, path: str | Path) -> SinkSubscriber:
        return cls(JsonlSink(Path(path)))

    def emit(self, event: Event) -> None:
        self.sink.write(event.to_dict())
