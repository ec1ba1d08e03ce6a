"""Event records and the builder that snapshots ambient state into them.

Events are frozen dataclasses. Mapping payloads, tags and context are
copied at build time and exposed read-only, so every subscriber sees the
same record no matter what the caller (or another subscriber) does next.
"""

from __future__ import annotations

import dataclasses
import enum
import re
import sys
import time
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

from herald import context
from herald.errors import InvalidEventName

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


class Level(enum.Enum):
    INFO = "info"
    DEBUG = "debug"


@runtime_checkable
class Normalizable(Protocol):
    """Object payloads that can render themselves as a plain mapping.

    The object is responsible for leaving sensitive fields out.
    """

    def normalize(self) -> Mapping[str, Any]: ...


@dataclass(frozen=True)
class SourceLocation:
    filepath: str
    lineno: int
    label: str  # function name at the call site

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.filepath, "line": self.lineno, "label": self.label}


@dataclass(frozen=True)
class Event:
    name: str
    payload: Any  # read-only mapping, or the original object
    timestamp: int  # ns since epoch
    source_location: SourceLocation | None
    tags: Mapping[str, Any]
    context: Mapping[str, Any]
    level: Level = Level.INFO

    @property
    def is_object_payload(self) -> bool:
        return not isinstance(self.payload, Mapping)

    def payload_dict(self) -> dict[str, Any]:
        """The payload as a plain dict, normalizing object payloads."""
        return payload_to_dict(self.payload)

    def with_payload(self, payload: Any) -> Event:
        """Copy of this event carrying a different payload (used by redaction)."""
        if isinstance(payload, Mapping):
            payload = freeze(payload)
        return dataclasses.replace(self, payload=payload)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "payload": _thaw(self.payload_dict()),
            "timestamp_ns": self.timestamp,
            "source_location": (
                self.source_location.to_dict() if self.source_location else None
            ),
            "tags": dict(self.tags),
            "context": _thaw(self.context),
            "level": self.level.value,
        }


def payload_to_dict(payload: Any) -> dict[str, Any]:
    if isinstance(payload, Mapping):
        return dict(payload)
    if isinstance(payload, Normalizable):
        return dict(payload.normalize())
    if dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        return dataclasses.asdict(payload)
    raise TypeError(
        f"{type(payload).__name__} payload has no normalize() and is not a dataclass"
    )


def validate_name(name: Any) -> str:
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise InvalidEventName(
            f"Event name must be a non-empty dot-segmented identifier, got {name!r}"
        )
    return name


def name_for(obj: Any) -> str:
    """Event name derived from an event object's type: module.QualName."""
    cls = type(obj)
    module = cls.__module__
    if module in ("__main__", "builtins"):
        return cls.__qualname__
    return f"{module}.{cls.__qualname__}"


def capture_location(depth: int) -> SourceLocation | None:
    """Source location `depth` frames above the caller of this function."""
    try:
        frame = sys._getframe(depth + 1)
    except ValueError:
        return None
    code = frame.f_code
    return SourceLocation(filepath=code.co_filename, lineno=frame.f_lineno, label=code.co_name)


def build_event(
    name: str,
    payload: Any = None,
    level: Level = Level.INFO,
    caller_depth: int = 1,
) -> Event:
    """Build an event, snapshotting tags and context of the current execution context.

    caller_depth=1 attributes the event to whoever called build_event();
    wrappers add one per layer so the event points at their own caller.
    """
    validate_name(name)
    if payload is None:
        payload = {}
    if isinstance(payload, Mapping):
        payload = freeze(payload)

    return Event(
        name=name,
        payload=payload,
        timestamp=time.time_ns(),
        source_location=capture_location(caller_depth),
        tags=MappingProxyType(context.current_tags()),
        context=freeze(context.current_context()),
        level=level,
    )


def freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value
