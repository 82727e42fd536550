"""
Unit tests for queue velocity tracking.
"""

import pytest

from scheduler import QueueVelocityTracker
from tests.conftest import FAST, MID, SLOW


@pytest.fixture
def tracker(clock):
    return QueueVelocityTracker(window_s=5.0, threshold=2.0, clock=clock)


class TestQueueVelocityTracker:
    """Test velocity over the sliding window."""

    def test_single_snapshot_is_zero(self, tracker):
        assert tracker.record(FAST, 3) == 0.0
        assert tracker.velocity(FAST) == 0.0

    def test_growth_rate(self, tracker, clock):
        tracker.record(FAST, 0)
        clock.advance(2.0)

        assert tracker.record(FAST, 6) == pytest.approx(3.0)

    def test_shrinking_queue_is_negative(self, tracker, clock):
        tracker.record(MID, 4)
        clock.advance(1.0)

        assert tracker.record(MID, 2) == pytest.approx(-2.0)

    def test_short_span_is_zero(self, tracker, clock):
        tracker.record(FAST, 0)
        clock.advance(0.2)

        assert tracker.record(FAST, 10) == 0.0

    def test_old_snapshots_expire(self, tracker, clock):
        tracker.record(FAST, 0)
        clock.advance(6.0)

        assert tracker.record(FAST, 10) == 0.0

    def test_unknown_device(self, tracker):
        assert tracker.velocity("http://unknown:1") == 0.0

    def test_all_velocities(self, tracker, clock):
        tracker.record(FAST, 0)
        tracker.record(SLOW, 2)
        clock.advance(1.0)
        tracker.record(FAST, 1)
        tracker.record(SLOW, 2)

        assert tracker.all_velocities() == {FAST: pytest.approx(1.0), SLOW: 0.0}


class TestRecommendations:
    """Test pre-warm recommendations."""

    def test_fast_filling_device(self, tracker, clock):
        tracker.record(FAST, 0)
        clock.advance(1.0)
        tracker.record(FAST, 3)

        recs = tracker.recommendations({FAST: [1, 2, 3]}, {FAST: 4, MID: 2})

        assert len(recs) == 1
        rec = recs[0]
        assert rec.device == FAST
        assert rec.time_to_full == pytest.approx(1 / 3)
        assert rec.to_dict()["action"] == "redistribute"

    def test_below_threshold(self, tracker, clock):
        tracker.record(FAST, 0)
        clock.advance(1.0)
        tracker.record(FAST, 2)

        assert tracker.recommendations({FAST: [1, 2]}, {FAST: 4}) == []

    def test_far_from_full(self, clock):
        tracker = QueueVelocityTracker(threshold=2.0, clock=clock)
        tracker.record(FAST, 0)
        clock.advance(1.0)
        tracker.record(FAST, 3)

        # 97 free slots at 3 items/sec is more than 5 seconds away
        assert tracker.recommendations({FAST: [1, 2, 3]}, {FAST: 100}) == []
