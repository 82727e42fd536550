"""
Unit tests for completion time estimation and completion history.
"""

import pytest

from selector import CompletionTimeEstimator, CompletionHistory
from tests.conftest import FAST, MID, SLOW, FakeClock


class TestCompletionTimeEstimator:
    """Test the queue-depth projection."""

    def test_empty_queue(self, estimator):
        assert estimator.estimate(FAST, 0, 100) == pytest.approx(0.25)

    def test_queued_items_use_running_average(self, estimator):
        # 2 * 50 / 200 + 30 / 200
        assert estimator.estimate(MID, 2, 30) == pytest.approx(0.65)

    def test_offline_device_is_infinite(self, registry, estimator):
        registry.mark_offline(SLOW)
        assert estimator.estimate(SLOW, 0, 10) == float("inf")

    def test_unknown_device_is_infinite(self, estimator):
        assert estimator.estimate("http://unknown:1", 0, 10) == float("inf")

    def test_update_average_tokens(self, estimator):
        assert estimator.update_average_tokens(100) == pytest.approx(65)
        assert estimator.update_average_tokens(100) == pytest.approx(75.5)

    def test_average_is_shared_across_devices(self, registry):
        estimator = CompletionTimeEstimator(registry, avg_tokens_per_request=10, smoothing=0.5)
        estimator.update_average_tokens(30)

        assert estimator.estimate(FAST, 1, 0) == pytest.approx(20 / 400)
        assert estimator.estimate(SLOW, 1, 0) == pytest.approx(20 / 100)


class TestCompletionHistory:
    """Test completion window and performance profiles."""

    def test_window_is_bounded(self, clock):
        history = CompletionHistory(window=3, clock=clock)
        for duration in (100, 200, 300, 400):
            history.record(FAST, duration)

        assert [s.duration_ms for s in history.get_samples(FAST)] == [200, 300, 400]
        assert history.avg_completion_ms(FAST) == pytest.approx(300)

    def test_no_samples(self, clock):
        history = CompletionHistory(clock=clock)

        assert history.avg_completion_ms(FAST) is None
        assert history.processing_rate(FAST) is None

    def test_processing_rate_needs_two_samples(self, clock):
        history = CompletionHistory(clock=clock)
        history.record(FAST, 100)

        assert history.processing_rate(FAST) is None

    def test_processing_rate_short_span(self, clock):
        history = CompletionHistory(clock=clock)
        history.record(FAST, 100)
        clock.advance(0.5)
        history.record(FAST, 100)

        assert history.processing_rate(FAST) == 0.0

    def test_processing_rate(self, clock):
        history = CompletionHistory(clock=clock)
        for _ in range(4):
            history.record(FAST, 100)
            clock.advance(2.0)

        # 4 completions over 6 seconds
        assert history.processing_rate(FAST) == pytest.approx(40.0)

    def test_profile_requires_min_samples(self, clock):
        history = CompletionHistory(profile_min_samples=10, clock=clock)
        for i in range(9):
            history.record(FAST, 100 + i)

        assert history.get_profile(FAST) is None

    def test_profile_percentiles(self, clock):
        history = CompletionHistory(profile_min_samples=10, clock=clock)
        for duration in range(100, 0, -5):
            history.record(FAST, duration, success=duration != 50)

        profile = history.get_profile(FAST)
        assert profile.samples == 20
        assert profile.min == 5
        assert profile.max == 100
        assert profile.p50 == 55
        assert profile.p95 == 100
        assert profile.p99 == 100
        assert profile.avg == pytest.approx(52.5)
        assert profile.success_rate == pytest.approx(19 / 20)

    def test_history_limit_and_clear(self, clock):
        history = CompletionHistory(history_max_entries=5, clock=clock)
        for i in range(8):
            history.record(MID, i)

        assert [r.duration_ms for r in history.get_history(MID, limit=3)] == [5, 6, 7]
        assert history.total_samples() == 5

        history.clear(MID)
        assert history.get_history(MID) == []
