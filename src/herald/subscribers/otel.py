"""OpenTelemetry subscriber: records events as span events on the current span.

Requires herald[otel] (opentelemetry-api). The host owns the tracer
provider and exporters; this only annotates whatever span is active when
the event is reported. Events outside a recording span are dropped.

Attribute naming:
    payload fields -> "<key>"
    tags           -> "tag.<key>"
    context        -> "context.<key>"
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from herald.event import Event

_SCALARS = (str, bool, int, float)


def _attribute(value: Any) -> Any:
    """Coerce to an OTel attribute value (scalar or homogeneous sequence)."""
    if isinstance(value, _SCALARS):
        return value
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    return str(value)


def event_attributes(event: Event) -> dict[str, Any]:
    attrs: dict[str, Any] = {"herald.level": event.level.value}
    payload = event.payload_dict()
    for key, value in payload.items():
        if value is not None:
            attrs[str(key)] = _attribute(value)
    for key, value in event.tags.items():
        attrs[f"tag.{key}"] = _attribute(value)
    for key, value in event.context.items():
        if value is not None and not isinstance(value, Mapping):
            attrs[f"context.{key}"] = _attribute(value)
    if event.source_location is not None:
        attrs["code.filepath"] = event.source_location.filepath
        attrs["code.lineno"] = event.source_location.lineno
        attrs["code.function"] = event.source_location.label
    return attrs


class SpanEventSubscriber:
    def __init__(self) -> None:
        from opentelemetry import trace

        self._trace = trace

    def emit(self, event: Event) -> None:
        span = self._trace.get_current_span()
        if not span.is_recording():
            return
        span.add_event(
            event.name,
            attributes=event_attributes(event),
            timestamp=event.timestamp,
        )
