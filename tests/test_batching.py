"""
Unit tests for request batching on fast devices.
"""

import threading

import pytest

from scheduler import RequestBatcher
from tests.conftest import FAST, MID, SLOW


class FakeTimer:
    """Stands in for threading.Timer; fires only when told to."""

    created = []

    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args)


class BatchRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, base, items):
        self.calls.append((base, list(items)))


@pytest.fixture
def recorder():
    return BatchRecorder()


@pytest.fixture
def batcher(registry):
    FakeTimer.created = []
    return RequestBatcher(registry, enabled=True, timer_factory=FakeTimer)


class TestCanBatch:
    """Test device eligibility."""

    def test_only_fast_devices(self, batcher):
        assert batcher.can_batch(FAST)
        assert batcher.can_batch(MID)
        assert not batcher.can_batch(SLOW)

    def test_disabled(self, registry):
        assert not RequestBatcher(registry, enabled=False).can_batch(FAST)

    def test_offline_device(self, registry, batcher):
        registry.mark_offline(FAST)
        assert not batcher.can_batch(FAST)

    def test_slow_device_is_not_batched(self, batcher, recorder):
        assert not batcher.try_batch(SLOW, "r1", recorder)
        assert batcher.get_status() == {}
        assert recorder.calls == []

    @pytest.mark.parametrize("window,expected", [(1, 10.0), (50, 50.0), (1000, 200.0)])
    def test_window_clamped(self, registry, window, expected):
        assert RequestBatcher(registry, window_ms=window).window_ms == expected

    def test_invalid_sizes(self, registry):
        with pytest.raises(ValueError):
            RequestBatcher(registry, min_batch_size=3, max_batch_size=2)


class TestTryBatch:
    """Test accumulation and flushing."""

    def test_first_request_arms_window(self, batcher, recorder):
        assert batcher.try_batch(FAST, "r1", recorder)

        assert batcher.get_status() == {FAST: {"pending": 1, "has_timer": True}}
        assert len(FakeTimer.created) == 1
        timer = FakeTimer.created[0]
        assert timer.started and timer.daemon
        assert timer.interval == pytest.approx(0.05)
        assert recorder.calls == []

    def test_one_timer_per_window(self, batcher, recorder):
        batcher.try_batch(FAST, "r1", recorder)
        batcher.try_batch(FAST, "r2", recorder)

        assert len(FakeTimer.created) == 1

    def test_window_expiry_flushes_batch(self, batcher, recorder):
        batcher.try_batch(FAST, "r1", recorder)
        batcher.try_batch(FAST, "r2", recorder)
        FakeTimer.created[0].fire()

        assert recorder.calls == [(FAST, ["r1", "r2"])]
        assert batcher.get_status() == {}
        assert batcher.batches_flushed == 1

    def test_lone_request_released_individually(self, batcher, recorder):
        batcher.try_batch(MID, "r1", recorder)
        FakeTimer.created[0].fire()

        assert recorder.calls == [(MID, ["r1"])]
        assert batcher.batches_flushed == 0

    def test_max_size_flushes_immediately(self, batcher, recorder):
        for i in range(4):
            batcher.try_batch(FAST, f"r{i}", recorder)

        assert recorder.calls == [(FAST, ["r0", "r1", "r2", "r3"])]
        assert FakeTimer.created[0].cancelled
        assert batcher.get_status() == {}

    def test_devices_batch_independently(self, batcher, recorder):
        batcher.try_batch(FAST, "f1", recorder)
        batcher.try_batch(MID, "m1", recorder)
        batcher.try_batch(MID, "m2", recorder)

        assert batcher.get_status() == {
            FAST: {"pending": 1, "has_timer": True},
            MID: {"pending": 2, "has_timer": True},
        }

    def test_explicit_flush(self, batcher, recorder):
        batcher.try_batch(FAST, "r1", recorder)
        batcher.try_batch(FAST, "r2", recorder)
        other = BatchRecorder()

        assert batcher.flush(FAST, other) == 2
        assert other.calls == [(FAST, ["r1", "r2"])]
        assert recorder.calls == []
        assert batcher.flush(FAST) == 0

    def test_cancel_all(self, batcher, recorder):
        batcher.try_batch(FAST, "r1", recorder)

        assert batcher.cancel_all() == {FAST: ["r1"]}
        assert FakeTimer.created[0].cancelled
        assert batcher.get_status() == {}


class TestRealTimer:
    """Test the default threading.Timer window."""

    def test_window_expires(self, registry):
        batcher = RequestBatcher(registry, enabled=True, window_ms=10)
        done = threading.Event()
        received = []

        def process(base, items):
            received.append((base, items))
            done.set()

        batcher.try_batch(FAST, "r1", process)
        batcher.try_batch(FAST, "r2", process)

        assert done.wait(2.0)
        assert received == [(FAST, ["r1", "r2"])]
