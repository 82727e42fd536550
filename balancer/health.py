"""Queue health and rebalancing reports for operators and monitoring."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence

from core.registry import DeviceRegistry
from selector.estimator import CompletionTimeEstimator
from selector.profile import CompletionHistory
from scheduler.velocity import QueueVelocityTracker


class HealthStatus(Enum):
    AT_CAPACITY = "AT_CAPACITY"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    HEALTHY = "HEALTHY"

    @classmethod
    def from_utilization(cls, utilization: float) -> "HealthStatus":
        if utilization >= 100:
            return cls.AT_CAPACITY
        if utilization >= 75:
            return cls.HIGH
        if utilization >= 50:
            return cls.MODERATE
        return cls.HEALTHY


@dataclass
class DeviceHealth:
    queue_size: int
    capacity: int
    utilization: float      # percent
    rank: Optional[int]
    status: HealthStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            'queue_size': self.queue_size,
            'capacity': self.capacity,
            'utilization': f"{self.utilization:.1f}%",
            'rank': self.rank,
            'status': self.status.value,
        }


@dataclass
class LoadCheck:
    can_handle: bool
    current_load: int
    total_capacity: int
    projected_load: int
    headroom: int

    def __bool__(self) -> bool:
        return self.can_handle


@dataclass
class DeviceRebalanceStats:
    device: str
    queue_size: int
    avg_completion_ms: float
    processing_rate: float  # requests/minute
    tps: float
    velocity: float         # items/sec

    def to_dict(self) -> Dict[str, Any]:
        avg = self.avg_completion_ms
        return {
            'device': self.device,
            'queue_size': self.queue_size,
            'avg_completion_ms': round(avg) if avg != float('inf') else None,
            'processing_rate': round(self.processing_rate, 1),
            'tps': round(self.tps, 1),
            'velocity': round(self.velocity, 2),
        }


class QueueHealthMonitor:
    """Read-only views over registry, completion history and caller queues."""

    def __init__(
        self,
        registry: DeviceRegistry,
        estimator: CompletionTimeEstimator,
        history: CompletionHistory,
        velocity: Optional[QueueVelocityTracker] = None,
        dynamic_concurrency: bool = True,
        target_latency_ms: float = 3000.0
    ):
        self.registry = registry
        self.estimator = estimator
        self.history = history
        self.velocity = velocity
        self.dynamic_concurrency = dynamic_concurrency
        self.target_latency_ms = target_latency_ms
        self.concurrency_adjustments: Dict[str, int] = {}

    def get_queue_health(self, queues: Mapping[str, Sequence[Any]]) -> Dict[str, DeviceHealth]:
        health = {}
        for base, queue in queues.items():
            size = len(queue)
            capacity = self.registry.get_capacity(base)
            utilization = size / (capacity or 1) * 100
            health[base] = DeviceHealth(
                queue_size=size,
                capacity=capacity,
                utilization=utilization,
                rank=self.registry.get_rank(base),
                status=HealthStatus.from_utilization(utilization)
            )
        return health

    def get_total_capacity(self) -> int:
        return self.registry.get_total_capacity()

    def can_handle_load(self, queues: Mapping[str, Sequence[Any]], additional: int) -> LoadCheck:
        current = sum(len(queue) for queue in queues.values())
        total = self.get_total_capacity()
        projected = current + additional
        return LoadCheck(
            can_handle=projected <= total,
            current_load=current,
            total_capacity=total,
            projected_load=projected,
            headroom=total - projected
        )

    def get_processing_rate(self, base: str) -> float:
        """Requests per minute, from recent completions or else from TPS."""
        rate = self.history.processing_rate(base)
        if rate is not None:
            return rate
        tps = self.registry.get_tps(base)
        return tps / self.estimator.avg_tokens_per_request * 60 if tps > 0 else 0.0

    def get_avg_completion_time(self, base: str) -> float:
        """Average completion in ms, from recent completions or else from TPS."""
        avg = self.history.avg_completion_ms(base)
        if avg is not None:
            return avg
        tps = self.registry.get_tps(base)
        if tps <= 0:
            return float('inf')
        return self.estimator.avg_tokens_per_request / tps * 1000

    def get_max_concurrent(self, base: str) -> int:
        """Suggested number of in-flight requests for a device (1..8).

        Starts from TPS and average completion time, then moves one step
        up or down when the p95 latency profile is well under or over
        `target_latency_ms`. Manual adjustments are applied last.
        """
        tps = self.registry.get_tps(base)
        if tps <= 0:
            return 1

        avg_ms = self.get_avg_completion_time(base)
        if tps >= 400 and avg_ms < 2000:
            concurrency = 4
        elif tps >= 200 and avg_ms < 3000:
            concurrency = 3
        elif tps >= 100 and avg_ms < 5000:
            concurrency = 2
        else:
            concurrency = 1

        if not self.dynamic_concurrency:
            return concurrency

        profile = self.history.get_profile(base)
        if profile is not None:
            if profile.p95 < self.target_latency_ms * 0.5:
                concurrency = min(8, concurrency + 1)
            elif profile.p95 > self.target_latency_ms * 1.5:
                concurrency = max(1, concurrency - 1)

        concurrency += self.concurrency_adjustments.get(base, 0)
        return max(1, min(8, concurrency))

    def set_concurrency_adjustment(self, base: str, delta: int) -> None:
        if delta:
            self.concurrency_adjustments[base] = delta
        else:
            self.concurrency_adjustments.pop(base, None)

    def get_rebalance_stats(self, queues: Mapping[str, Sequence[Any]], enabled: bool = True) -> Dict[str, Any]:
        stats = [
            DeviceRebalanceStats(
                device=base,
                queue_size=len(queues.get(base, ())),
                avg_completion_ms=self.get_avg_completion_time(base),
                processing_rate=self.get_processing_rate(base),
                tps=self.registry.get_tps(base),
                velocity=self.velocity.velocity(base) if self.velocity else 0.0
            )
            for base in self.registry.get_online_devices()
        ]
        return {
            'enabled': enabled,
            'devices': stats,
            'total_queued': sum(s.queue_size for s in stats),
        }
