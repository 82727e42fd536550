"""Queue fill velocity tracking for pre-warming decisions."""

import time
from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Deque, Dict, List, Mapping, Sequence, Any, Tuple


@dataclass
class PreWarmRecommendation:
    device: str
    velocity: float         # items/sec, positive = growing
    queue_size: int
    capacity: int
    time_to_full: float     # seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            'device': self.device,
            'velocity': round(self.velocity, 2),
            'queue_size': self.queue_size,
            'capacity': self.capacity,
            'time_to_full': round(self.time_to_full, 1),
            'action': 'redistribute',
        }


class QueueVelocityTracker:
    """Rate of change of each device's queue over a sliding time window."""

    def __init__(
        self,
        window_s: float = 5.0,
        threshold: float = 2.0,
        clock: Callable[[], float] = time.time
    ):
        self.window_s = window_s
        self.threshold = threshold
        self._clock = clock
        self._lock = Lock()
        self._snapshots: Dict[str, Deque[Tuple[float, int]]] = {}
        self._velocity: Dict[str, float] = {}

    def record(self, base: str, size: int) -> float:
        now = self._clock()
        cutoff = now - self.window_s

        with self._lock:
            snapshots = self._snapshots.setdefault(base, deque())
            snapshots.append((now, size))
            while snapshots and snapshots[0][0] <= cutoff:
                snapshots.popleft()

            velocity = 0.0
            if len(snapshots) >= 2:
                (oldest_t, oldest_size), (newest_t, newest_size) = snapshots[0], snapshots[-1]
                span = newest_t - oldest_t
                if span >= 0.5:
                    velocity = (newest_size - oldest_size) / span
            self._velocity[base] = velocity
            return velocity

    def velocity(self, base: str) -> float:
        return self._velocity.get(base, 0.0)

    def all_velocities(self) -> Dict[str, float]:
        with self._lock:
            return dict(self._velocity)

    def recommendations(
        self,
        queues: Mapping[str, Sequence[Any]],
        capacities: Mapping[str, int]
    ) -> List[PreWarmRecommendation]:
        """Devices filling fast enough to hit capacity within 5 seconds."""
        recs = []
        for base, capacity in capacities.items():
            velocity = self.velocity(base)
            if velocity <= self.threshold:
                continue

            size = len(queues.get(base, ()))
            capacity = capacity or 1
            time_to_full = (capacity - size) / velocity
            if time_to_full < 5:
                recs.append(PreWarmRecommendation(
                    device=base,
                    velocity=velocity,
                    queue_size=size,
                    capacity=capacity,
                    time_to_full=time_to_full
                ))
        return recs
