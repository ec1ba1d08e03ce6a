"""Event sinks: where subscriber output lands."""

from herald.sinks.base import EventSink
from herald.sinks.jsonl_sink import JsonlSink
from herald.sinks.noop_sink import NoOpSink
from herald.sinks.stdout_sink import StdoutSink

__all__ = ["EventSink", "JsonlSink", "StdoutSink", "NoOpSink"]
