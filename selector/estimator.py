"""Completion time estimation from queue depth and request cost."""

from threading import Lock

from core.registry import DeviceRegistry


class CompletionTimeEstimator:
    """Project how long a new request would take to finish on a device.

    The per-request token cost used for queued items is a single running
    average shared by all devices: response length drives cost, not the
    device that produced it.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        avg_tokens_per_request: float = 50.0,
        smoothing: float = 0.3
    ):
        self.registry = registry
        self.avg_tokens_per_request = avg_tokens_per_request
        self.smoothing = smoothing
        self._lock = Lock()

    def estimate(self, base: str, queue_size: int, estimated_tokens: float) -> float:
        """Expected completion time in seconds (inf for devices with no TPS)."""
        tps = self.registry.get_tps(base)
        if tps <= 0:
            return float('inf')

        queue_time = queue_size * self.avg_tokens_per_request / tps
        request_time = estimated_tokens / tps
        return queue_time + request_time

    def update_average_tokens(self, actual_tokens: float) -> float:
        """Fold a completed request's token count into the running average."""
        with self._lock:
            self.avg_tokens_per_request = (
                self.smoothing * actual_tokens
                + (1 - self.smoothing) * self.avg_tokens_per_request
            )
            return self.avg_tokens_per_request
