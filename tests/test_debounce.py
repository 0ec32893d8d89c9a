"""
Tests for services/debounce.py cancelable delayed recompute
Run with: pytest tests/test_debounce.py -v
"""

import threading
import time

import pytest

from oddsarb.core.calc_config import CalculatorConfig
from oddsarb.services.converter import OddsConverter, debounced_converter
from oddsarb.services.debounce import Debouncer


@pytest.fixture
def debouncer():
    d = Debouncer(delay_seconds=0.05)
    yield d
    d.shutdown(wait=True)


def _wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestDebouncer:
    """Only the latest request of a burst executes."""

    def test_single_request_runs(self, debouncer):
        done = threading.Event()
        debouncer.submit("stream", done.set)
        assert done.wait(3.0)

    def test_burst_runs_only_latest(self, debouncer):
        calls = []
        done = threading.Event()

        def record(value):
            calls.append(value)
            done.set()

        for value in range(5):
            debouncer.submit("stream", record, value)

        assert done.wait(3.0)
        time.sleep(0.2)
        assert calls == [4]

    def test_streams_are_independent(self, debouncer):
        calls = []
        lock = threading.Lock()

        def record(value):
            with lock:
                calls.append(value)

        debouncer.submit("a", record, "a")
        debouncer.submit("b", record, "b")
        assert _wait_for(lambda: len(calls) == 2)
        assert sorted(calls) == ["a", "b"]

    def test_cancel_drops_pending(self):
        d = Debouncer(delay_seconds=0.3)
        try:
            calls = []
            d.submit("stream", calls.append, 1)
            assert d.pending("stream")
            assert d.cancel("stream")
            assert not d.pending("stream")
            time.sleep(0.5)
            assert calls == []
        finally:
            d.shutdown(wait=True)

    def test_cancel_without_pending(self, debouncer):
        assert debouncer.cancel("nothing") is False

    def test_generation_increments(self, debouncer):
        assert debouncer.submit("stream", lambda: None) == 1
        assert debouncer.submit("stream", lambda: None) == 2

    def test_stale_generation_is_dropped(self, debouncer):
        calls = []
        debouncer.submit("stream", lambda: None)
        # a replaced job that was already handed to the executor
        debouncer._run("stream", 0, calls.append, (1,), {})
        assert calls == []

    def test_failing_task_is_logged(self, debouncer, caplog):
        def boom():
            raise RuntimeError("kaboom")

        debouncer._generation["stream"] = 1
        with caplog.at_level("ERROR", logger="oddsarb.services.debounce"):
            debouncer._run("stream", 1, boom, (), {})
        assert any("kaboom" in rec.message for rec in caplog.records)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            Debouncer(delay_seconds=-1)


class TestDebouncedConverter:
    """Keystroke bursts on the converter recompute once, with the last text."""

    def test_last_keystroke_wins(self, debouncer):
        form = OddsConverter(debouncer=debouncer)
        for partial in ("1", "15", "150"):
            form.request("american", partial)

        assert form.text["american"] == "150"
        assert _wait_for(lambda: form.text["decimal"] == "2.50")
        assert form.last_result.source == "american"
        assert form.text["fractional"] == "3/2"

    def test_factory_uses_configured_delay(self):
        form = debounced_converter(CalculatorConfig(debounce_seconds=0.2))
        try:
            assert form.debouncer.delay_seconds == 0.2
            form.request("decimal", "2.5")
            assert form.pending()
            assert _wait_for(lambda: form.text["american"] == "150")
            assert _wait_for(lambda: not form.pending())
        finally:
            form.debouncer.shutdown(wait=True)

    def test_factory_shares_debouncer(self, debouncer):
        form = debounced_converter(debouncer=debouncer)
        assert form.debouncer is debouncer
        assert not form.pending()
