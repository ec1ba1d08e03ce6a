"""Tests for the Redactor."""

from __future__ import annotations

import re
from collections import namedtuple

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from herald.redaction import FILTERED, Redactor
from herald.reporter import Reporter
from herald.testing import EventCollector
from tests.conftest import make_config


class TestPatterns:
    def test_substring_case_insensitive(self):
        r = Redactor(["passw"])
        out = r.redact({"Password": "hunter2", "password_confirmation": "hunter2", "user": "ann"})
        assert out == {
            "Password": FILTERED,
            "password_confirmation": FILTERED,
            "user": "ann",
        }

    def test_regex(self):
        r = Redactor([re.compile(r"^ssn$")])
        assert r.redact({"ssn": "1", "ssn_last4": "2"}) == {"ssn": FILTERED, "ssn_last4": "2"}

    def test_dotted_path(self):
        r = Redactor(["credit_card.code"])
        out = r.redact({"credit_card": {"code": "123", "number": "4242"}, "code": "promo"})
        assert out == {"credit_card": {"code": FILTERED, "number": "4242"}, "code": "promo"}

    def test_callable(self):
        r = Redactor([lambda key, value: isinstance(value, str) and value.startswith("sk_")])
        assert r.redact({"api": "sk_live_123", "name": "x"}) == {"api": FILTERED, "name": "x"}

    def test_nested_mappings_and_lists(self):
        r = Redactor(["token"])
        out = r.redact({"sessions": [{"token": "a"}, {"token": "b", "id": 1}], "meta": {"token": "c"}})
        assert out == {
            "sessions": [{"token": FILTERED}, {"token": FILTERED, "id": 1}],
            "meta": {"token": FILTERED},
        }

    def test_tuples_preserved(self):
        r = Redactor(["secret"])
        out = r.redact({"items": ({"secret": 1},)})
        assert out == {"items": ({"secret": FILTERED},)}

    def test_namedtuples_rebuilt_field_by_field(self):
        Point = namedtuple("Point", "x y")
        r = Redactor(["password"])

        out = r.redact({"at": Point(1, {"password": "s"}), "password": "s"})

        assert out == {"at": Point(1, {"password": FILTERED}), "password": FILTERED}
        assert type(out["at"]) is Point

    def test_namedtuple_payload_through_reporter(self):
        Point = namedtuple("Point", "x y")
        reporter = Reporter(make_config(filter_parameters=["password"]))
        c = EventCollector()
        reporter.subscribe(c)

        reporter.notify("geo.moved", {"at": Point(1, 2), "password": "s"})

        [event] = c.events
        assert event.payload["at"] == Point(1, 2)
        assert event.payload["password"] == FILTERED

    def test_custom_mask(self):
        assert Redactor(["pin"], mask="***").redact({"pin": 1234}) == {"pin": "***"}

    def test_unsupported_pattern(self):
        with pytest.raises(TypeError):
            Redactor([42])

    def test_input_not_mutated(self):
        payload = {"password": "x", "nested": {"password": "y"}}
        Redactor(["password"]).redact(payload)
        assert payload == {"password": "x", "nested": {"password": "y"}}

    def test_disabled_returns_copy(self):
        r = Redactor()
        payload = {"password": "x"}
        out = r.redact(payload)
        assert not r.enabled
        assert out == payload
        assert out is not payload

    def test_from_config(self):
        r = Redactor.from_config(make_config(filter_parameters=["token"]))
        assert r({"token": "t"}) == {"token": FILTERED}


_keys = st.sampled_from(["password", "token", "name", "id", "secret_key", "note"])
_payloads = st.recursive(
    st.dictionaries(_keys, st.one_of(st.text(max_size=5), st.integers()), max_size=4),
    lambda children: st.dictionaries(
        _keys, st.one_of(children, st.lists(children, max_size=2)), max_size=3
    ),
    max_leaves=10,
)


class TestIdempotence:
    def test_property_runs_without_deadline(self):
        assert settings().deadline is None

    def test_second_pass_is_noop(self):
        r = Redactor(["password"])
        once = r.redact({"password": "hunter2", "user": "ann"})
        assert r.redact(once) == once

    @given(_payloads)
    def test_idempotent_property(self, payload):
        r = Redactor(["passw", "token", re.compile("secret")])
        once = r.redact(payload)
        assert r.redact(once) == once
