"""
Unit tests for the repeating background ticker.
"""

import threading

import pytest

from scheduler import Ticker


class TestTicker:
    """Test start/stop lifecycle."""

    def test_ticks_until_stopped(self):
        ticked = threading.Event()
        count = []

        def fn():
            count.append(1)
            if len(count) >= 3:
                ticked.set()

        ticker = Ticker(0.01, fn)
        ticker.start()
        assert ticked.wait(2.0)
        ticker.stop()

        stopped_at = len(count)
        assert not ticker.running
        threading.Event().wait(0.05)
        assert len(count) == stopped_at

    def test_start_is_idempotent(self):
        ticker = Ticker(0.5, lambda: None)
        ticker.start()
        thread = ticker._thread
        ticker.start()

        assert ticker._thread is thread
        ticker.stop()

    def test_stop_without_start(self):
        ticker = Ticker(0.5, lambda: None)
        ticker.stop()
        ticker.stop()

        assert not ticker.running

    def test_restart_after_stop(self):
        ticked = threading.Event()
        ticker = Ticker(0.01, ticked.set)
        ticker.start()
        ticker.stop()
        ticked.clear()

        ticker.start()
        assert ticked.wait(2.0)
        ticker.stop()

    def test_exception_does_not_stop_ticking(self):
        calls = []
        done = threading.Event()

        def fn():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            done.set()

        ticker = Ticker(0.01, fn)
        ticker.start()
        assert done.wait(2.0)
        ticker.stop()

    def test_stop_from_own_callback(self):
        stopped = threading.Event()
        holder = {}

        def fn():
            holder["ticker"].stop()
            stopped.set()

        holder["ticker"] = Ticker(0.01, fn)
        holder["ticker"].start()

        assert stopped.wait(2.0)
        assert holder["ticker"]._thread is None

    @pytest.mark.parametrize("interval", [0, -1])
    def test_invalid_interval(self, interval):
        with pytest.raises(ValueError):
            Ticker(interval, lambda: None)
