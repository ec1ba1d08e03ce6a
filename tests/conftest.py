"""Shared fixtures: isolated reporter, collector, clean global state."""

from __future__ import annotations

import pytest
from hypothesis import HealthCheck, settings

from herald.config import ReporterConfig
from herald.reporter import Reporter
from herald.testing import EventCollector

# The autouse reset fixture is function-scoped; it is safe to share across examples.
# No deadline: the first example pays for imports and structlog setup.
settings.register_profile(
    "herald",
    suppress_health_check=[HealthCheck.function_scoped_fixture],
    deadline=None,
)
settings.load_profile("herald")


class RecordingErrorReporter:
    """ErrorReporter that keeps (error, source, context) tuples."""

    def __init__(self) -> None:
        self.reports: list[tuple[BaseException, str, dict]] = []

    def report(self, error, *, handled=True, source="", **context):
        self.reports.append((error, source, context))


def make_config(**overrides) -> ReporterConfig:
    """Explicit config so tests never depend on HERALD_* env vars."""
    values = dict(
        debug=False,
        raise_on_error=False,
        filter_parameters=[],
        log_formatter="structlog",
        log_destination="stderr",
        log_level="INFO",
        log_format="json",
        log_path=None,
        events_path=None,
        log_events=False,
        otel_enabled=False,
    )
    values.update(overrides)
    return ReporterConfig(**values)


@pytest.fixture(autouse=True)
def _reset_herald():
    """Reset the process reporter, instrumentation and context around each test."""
    from herald import bridge, context, emitter, instrumentation

    emitter.reset()
    bridge.detach_all()
    instrumentation.reset()
    context.clear()
    yield
    emitter.reset()
    bridge.detach_all()
    instrumentation.reset()
    context.clear()


@pytest.fixture()
def errors() -> RecordingErrorReporter:
    return RecordingErrorReporter()


@pytest.fixture()
def reporter(errors) -> Reporter:
    return Reporter(make_config(), error_reporter=errors)


@pytest.fixture()
def collector(reporter) -> EventCollector:
    c = EventCollector()
    reporter.subscribe(c)
    return c
