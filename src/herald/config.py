"""Reporter configuration: YAML file + env var overrides.

All settings have safe defaults. Zero config is enough for a working
reporter that dispatches to whatever subscribers the host registers.

Priority: env var > YAML file > default.
YAML file default: ~/.herald/config.yaml

Logging architecture:
    LogFormatter (how records are structured) x LogDestination (where they go)

    Formatter:   HERALD_LOG_FORMATTER=structlog (default) | any registered name
    Destination: HERALD_LOG_DESTINATION=stderr (default) | jsonl
    Renderer:    HERALD_LOG_FORMAT=json (default) | console
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

_TRUTHY = {"1", "true", "on", "yes"}
_DEFAULT_PATH = Path("~/.herald/config.yaml").expanduser()


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in _TRUTHY


def _env_list(name: str) -> list[str]:
    raw = os.environ.get(name, "")
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass
class ReporterConfig:
    """Reporter configuration, env-var driven."""

    # --- Reporter ---
    debug: bool = field(default_factory=lambda: _env_flag("HERALD_DEBUG"))
    raise_on_error: bool = field(
        default_factory=lambda: _env_flag("HERALD_RAISE_ON_ERROR")
    )  # re-raise isolated subscriber errors (test suites)

    # Key patterns redacted from mapping payloads
    filter_parameters: list[str] = field(
        default_factory=lambda: _env_list("HERALD_FILTER_PARAMETERS")
    )

    # --- Logging: formatter x destination ---
    log_formatter: str = field(
        default_factory=lambda: os.environ.get("HERALD_LOG_FORMATTER", "structlog")
    )  # "structlog" or a name passed to register_formatter()

    log_destination: str = field(
        default_factory=lambda: os.environ.get("HERALD_LOG_DESTINATION", "stderr")
    )  # "stderr" | "jsonl"

    log_level: str = field(
        default_factory=lambda: os.environ.get("HERALD_LOG_LEVEL", "INFO")
    )

    log_format: str = field(
        default_factory=lambda: os.environ.get("HERALD_LOG_FORMAT", "json")
    )  # "json" | "console"

    log_path: str | None = field(
        default_factory=lambda: os.environ.get("HERALD_LOG_PATH")
    )

    # --- Bundled subscribers ---
    events_path: str | None = field(
        default_factory=lambda: os.environ.get("HERALD_EVENTS_PATH")
    )
    log_events: bool = field(default_factory=lambda: _env_flag("HERALD_LOG_EVENTS"))
    otel_enabled: bool = field(
        default_factory=lambda: _env_flag("HERALD_OTEL_ENABLED")
    )

    @classmethod
    def load(cls, path: Path | None = None) -> ReporterConfig:
        """Load config from a YAML file, then override with env vars."""
        file_path = path or _DEFAULT_PATH
        file_values: dict[str, Any] = {}

        if file_path.exists():
            raw = yaml.safe_load(file_path.read_text()) or {}
            if isinstance(raw, dict):
                known = {f.name for f in fields(cls)}
                file_values = {k: v for k, v in raw.items() if k in known}

        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            env_key = f"HERALD_{f.name.upper()}"
            if env_key in os.environ:
                # default_factory already reads the env var
                continue
            if f.name in file_values:
                kwargs[f.name] = _coerce(file_values[f.name], f.type)

        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce(value: Any, annotation: Any) -> Any:
    """Coerce YAML scalars to the field's declared shape."""
    kind = str(annotation)
    if kind == "bool":
        if isinstance(value, str):
            return value.lower() in _TRUTHY
        return bool(value)
    if kind.startswith("list"):
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return [str(v) for v in value or []]
    return value
