"""Tests for timed-block instrumentation (pyventus-backed)."""

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from herald import instrumentation
from herald.instrumentation import InstrumentationLinker, TimedEvent, instrument


@pytest.fixture()
def received():
    events: list[TimedEvent] = []
    handle = instrumentation.subscribe("sql.active_record", lambda e: events.append(e))
    yield events
    instrumentation.unsubscribe(handle)


class TestInstrument:
    def test_publishes_on_finish(self, received):
        with instrument("sql.active_record", {"statement": "SELECT 1"}) as payload:
            payload["rows"] = 1

        [event] = received
        assert event.name == "sql.active_record"
        assert event.payload == {"statement": "SELECT 1", "rows": 1}
        assert event.transaction_id
        assert not event.failed

    def test_measurements(self, received):
        with instrument("sql.active_record"):
            time.sleep(0.01)

        event = received[0]
        assert event.duration >= 5.0
        assert event.finish > event.start
        assert event.cpu_time >= 0.0
        assert event.idle_time >= 0.0
        assert event.allocations >= 0

    def test_records_exception_and_reraises(self, received):
        with pytest.raises(ValueError, match="bad sql"):
            with instrument("sql.active_record"):
                raise ValueError("bad sql")

        event = received[0]
        assert event.failed
        assert event.payload["exception"] == ("ValueError", "bad sql")
        assert isinstance(event.payload["exception_object"], ValueError)

    def test_only_exact_name_delivered(self, received):
        with instrument("cache_read.active_support"):
            pass
        assert received == []

    def test_no_subscriber_still_yields_payload(self):
        with instrument("nobody.listening", {"a": 1}) as payload:
            payload["b"] = 2
        assert payload == {"a": 1, "b": 2}

    def test_unsubscribe(self):
        events: list = []
        handle = instrumentation.subscribe("x.y", lambda e: events.append(e))
        assert instrumentation.is_listening("x.y")
        instrumentation.unsubscribe(handle)
        assert not instrumentation.is_listening("x.y")

        with instrument("x.y"):
            pass
        assert events == []


def test_linker_is_event_linker():
    from pyventus.events import EventLinker

    assert issubclass(InstrumentationLinker, EventLinker)


def test_reset_drops_subscriptions():
    instrumentation.subscribe("x.y", lambda e: None)
    instrumentation.reset()
    assert not instrumentation.is_listening("x.y")


class TestSynchronousDelivery:
    def test_delivered_before_block_returns_inside_running_loop(self, received):
        async def query():
            with instrument("sql.active_record", {"statement": "SELECT 1"}):
                pass
            return list(received)

        seen = asyncio.run(query())
        assert [e.name for e in seen] == ["sql.active_record"]

    def test_callback_runs_in_caller_thread(self):
        threads = []
        instrumentation.subscribe("x.y", lambda e: threads.append(threading.get_ident()))
        with instrument("x.y"):
            pass
        assert threads == [threading.get_ident()]

    def test_callback_error_propagates(self):
        def broken(event):
            raise RuntimeError("subscriber down")

        instrumentation.subscribe("x.y", broken)
        with pytest.raises(RuntimeError, match="subscriber down"):
            with instrument("x.y"):
                pass
