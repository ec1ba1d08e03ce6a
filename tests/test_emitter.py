"""Tests for the process reporter: configure, reset, module-level facade."""

from __future__ import annotations

import json

import pytest

from herald import emitter
from herald.reporter import Reporter
from herald.subscribers.log import LogSubscriber
from herald.subscribers.sink import SinkSubscriber
from herald.testing import EventCollector
from tests.conftest import make_config


@pytest.fixture()
def configured(errors):
    return emitter.configure(make_config(log_level="DEBUG"), error_reporter=errors)


class TestConfigure:
    def test_returns_reporter(self, configured):
        assert isinstance(configured, Reporter)

    def test_idempotent(self):
        r1 = emitter.configure(make_config())
        r2 = emitter.configure(make_config(debug=True))
        assert r1 is r2
        assert r2.debug_mode is False

    def test_is_configured(self):
        assert not emitter.is_configured()
        emitter.configure(make_config())
        assert emitter.is_configured()

    def test_reset_clears_state(self, configured):
        assert emitter.is_configured()
        emitter.reset()
        assert not emitter.is_configured()
        assert emitter.get_reporter() is not configured

    def test_get_reporter_returns_configured(self, configured):
        assert emitter.get_reporter() is configured

    def test_get_reporter_configures_lazily(self, monkeypatch, tmp_path):
        monkeypatch.setattr("herald.config._DEFAULT_PATH", tmp_path / "missing.yaml")
        for var in ("HERALD_EVENTS_PATH", "HERALD_LOG_EVENTS", "HERALD_OTEL_ENABLED"):
            monkeypatch.delenv(var, raising=False)
        reporter = emitter.get_reporter()
        assert emitter.is_configured()
        assert len(reporter.registry) == 0

    def test_error_reporter_passed_through(self, configured, errors):
        assert configured.error_reporter is errors

    def test_unknown_formatter_raises(self):
        with pytest.raises(ValueError, match="Unknown log formatter"):
            emitter.configure(make_config(log_formatter="nonexistent"))
        assert not emitter.is_configured()


class TestBundledSubscribers:
    def test_none_by_default(self, configured):
        assert len(configured.registry) == 0

    def test_log_events(self):
        reporter = emitter.configure(make_config(log_events=True))
        [sub] = reporter.registry.subscriptions
        assert isinstance(sub.subscriber, LogSubscriber)

    def test_events_path(self, tmp_path):
        path = tmp_path / "events.jsonl"
        reporter = emitter.configure(make_config(events_path=str(path)))
        [sub] = reporter.registry.subscriptions
        assert isinstance(sub.subscriber, SinkSubscriber)

        emitter.notify("user.signup", id=7)

        record = json.loads(path.read_text().strip())
        assert record["name"] == "user.signup"
        assert record["payload"] == {"id": 7}

    def test_otel_enabled(self):
        from herald.subscribers.otel import SpanEventSubscriber

        reporter = emitter.configure(make_config(otel_enabled=True))
        assert any(
            isinstance(s.subscriber, SpanEventSubscriber)
            for s in reporter.registry.subscriptions
        )


class TestFacade:
    def test_notify(self, configured):
        c = EventCollector()
        emitter.subscribe(c)
        emitter.notify("user.signup", {"id": 7}, plan="pro")
        [event] = c.events
        assert event.payload == {"id": 7, "plan": "pro"}

    def test_source_location_is_caller(self, configured):
        c = EventCollector()
        emitter.subscribe(c)
        emitter.notify("x")
        loc = c.events[0].source_location
        assert loc.filepath.endswith("test_emitter.py")
        assert loc.label == "test_source_location_is_caller"

    def test_debug_and_with_debug(self, configured):
        c = EventCollector()
        emitter.subscribe(c)
        emitter.debug("off")
        with emitter.with_debug():
            emitter.debug("on")
        assert c.names() == ["on"]
        assert c.events[0].source_location.label == "test_debug_and_with_debug"

    def test_unsubscribe(self, configured):
        c = EventCollector()
        handle = emitter.subscribe(c)
        emitter.unsubscribe(handle)
        emitter.notify("x")
        assert len(c) == 0

    def test_package_exports(self, configured):
        import herald

        c = EventCollector()
        herald.subscribe(c)
        with herald.tagged("api"):
            herald.notify("x")
        assert c.events[0].tags == {"api": True}
