"""Redaction of sensitive keys in mapping payloads.

Patterns:
    "passw"              -- case-insensitive substring of any key
    "credit_card.code"   -- dotted path of nested keys (suffix match)
    re.compile(r"^ssn$") -- regex searched against the key
    callable(key, value) -- arbitrary predicate

Matched values are replaced by the mask. Redacting twice is a no-op.
Object payloads are never inspected; they redact themselves in normalize().
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from herald.config import ReporterConfig

FILTERED = "[FILTERED]"

Pattern = str | re.Pattern | Callable[[str, Any], bool]


class Redactor:
    """Pure mapping -> mapping transform over configured key patterns."""

    def __init__(self, patterns: Iterable[Pattern] = (), mask: str = FILTERED) -> None:
        self.mask = mask
        self._substrings: list[str] = []
        self._paths: list[tuple[str, ...]] = []
        self._regexes: list[re.Pattern] = []
        self._predicates: list[Callable[[str, Any], bool]] = []
        for pattern in patterns:
            if isinstance(pattern, re.Pattern):
                self._regexes.append(pattern)
            elif isinstance(pattern, str):
                if "." in pattern:
                    self._paths.append(tuple(pattern.lower().split(".")))
                else:
                    self._substrings.append(pattern.lower())
            elif callable(pattern):
                self._predicates.append(pattern)
            else:
                raise TypeError(f"Unsupported redaction pattern: {pattern!r}")

    @classmethod
    def from_config(cls, config: ReporterConfig) -> Redactor:
        return cls(config.filter_parameters)

    @property
    def enabled(self) -> bool:
        return bool(self._substrings or self._paths or self._regexes or self._predicates)

    def __call__(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return self.redact(payload)

    def redact(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        if not self.enabled:
            return dict(payload)
        return self._redact_mapping(payload, ())

    def _redact_mapping(self, mapping: Mapping[str, Any], path: tuple[str, ...]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for key, value in mapping.items():
            key_path = (*path, str(key).lower())
            if self._matches(str(key), value, key_path):
                out[key] = self.mask
            else:
                out[key] = self._redact_value(value, key_path)
        return out

    def _redact_value(self, value: Any, path: tuple[str, ...]) -> Any:
        if isinstance(value, Mapping):
            return self._redact_mapping(value, path)
        if isinstance(value, (list, tuple)):
            items = [self._redact_value(v, path) for v in value]
            if hasattr(value, "_fields"):  # namedtuple
                return type(value)(*items)
            if isinstance(value, list):
                return items
            return tuple(items)
        return value

    def _matches(self, key: str, value: Any, path: tuple[str, ...]) -> bool:
        if value == self.mask:
            return False  # already redacted
        lowered = key.lower()
        if any(s in lowered for s in self._substrings):
            return True
        if any(path[-len(p):] == p for p in self._paths if len(p) <= len(path)):
            return True
        if any(r.search(key) for r in self._regexes):
            return True
        return any(pred(key, value) for pred in self._predicates)
