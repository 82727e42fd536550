"""Per-device completion history and performance profiles."""

import time
from collections import deque
from dataclasses import dataclass, asdict
from threading import Lock
from typing import Callable, Deque, Dict, List, Optional


@dataclass
class CompletionSample:
    timestamp: float    # ms since epoch
    duration_ms: float


@dataclass
class PerformanceRecord:
    timestamp: float
    duration_ms: float
    success: bool = True


@dataclass
class PerformanceProfile:
    """Latency distribution for a device.

    Used by operators to compare devices beyond the raw benchmark TPS.
    """
    samples: int
    avg: float
    min: float
    max: float
    p50: float
    p95: float
    p99: float
    success_rate: float
    last_updated: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class CompletionHistory:
    """Sliding window of recent completions plus a longer profiling history.

    The window (default 10 samples) drives the empirical processing rate and
    average completion time. The history (default 1000 entries) drives
    percentile profiles once enough samples have accumulated.
    """

    def __init__(
        self,
        window: int = 10,
        history_max_entries: int = 1000,
        profile_min_samples: int = 10,
        clock: Callable[[], float] = time.time
    ):
        self.window = window
        self.history_max_entries = history_max_entries
        self.profile_min_samples = profile_min_samples
        self._clock = clock

        self._lock = Lock()
        self._samples: Dict[str, Deque[CompletionSample]] = {}
        self._history: Dict[str, Deque[PerformanceRecord]] = {}
        self._profiles: Dict[str, PerformanceProfile] = {}

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def record(self, base: str, duration_ms: float, success: bool = True) -> None:
        now = self._now_ms()
        with self._lock:
            samples = self._samples.get(base)
            if samples is None:
                samples = self._samples[base] = deque(maxlen=self.window)
            samples.append(CompletionSample(timestamp=now, duration_ms=duration_ms))

            history = self._history.get(base)
            if history is None:
                history = self._history[base] = deque(maxlen=self.history_max_entries)
            history.append(PerformanceRecord(timestamp=now, duration_ms=duration_ms, success=success))

            self._update_profile(base, now)

    def _update_profile(self, base: str, now: float) -> None:
        history = self._history[base]
        if len(history) < self.profile_min_samples:
            return

        durations = sorted(h.duration_ms for h in history)
        n = len(durations)
        successes = sum(1 for h in history if h.success)

        self._profiles[base] = PerformanceProfile(
            samples=n,
            avg=sum(durations) / n,
            min=durations[0],
            max=durations[-1],
            p50=durations[int(n * 0.5)],
            p95=durations[int(n * 0.95)],
            p99=durations[int(n * 0.99)],
            success_rate=successes / n,
            last_updated=now
        )

    def get_samples(self, base: str) -> List[CompletionSample]:
        with self._lock:
            return list(self._samples.get(base, ()))

    def processing_rate(self, base: str) -> Optional[float]:
        """Requests per minute from the window, or None with fewer than 2 samples.

        Returns 0.0 when the window spans less than a second.
        """
        samples = self.get_samples(base)
        if len(samples) < 2:
            return None

        span_ms = samples[-1].timestamp - samples[0].timestamp
        if span_ms < 1000:
            return 0.0
        return len(samples) / span_ms * 60000.0

    def avg_completion_ms(self, base: str) -> Optional[float]:
        samples = self.get_samples(base)
        if not samples:
            return None
        return sum(s.duration_ms for s in samples) / len(samples)

    def get_profile(self, base: str) -> Optional[PerformanceProfile]:
        return self._profiles.get(base)

    def get_all_profiles(self) -> Dict[str, PerformanceProfile]:
        with self._lock:
            return dict(self._profiles)

    def get_history(self, base: str, limit: int = 100) -> List[PerformanceRecord]:
        with self._lock:
            history = list(self._history.get(base, ()))
        return history[-limit:] if limit > 0 else []

    def clear(self, base: str) -> None:
        with self._lock:
            self._history.pop(base, None)
            self._profiles.pop(base, None)
        print(f"[profile] Cleared performance history for {base}")

    def total_samples(self) -> int:
        with self._lock:
            return sum(len(h) for h in self._history.values())
