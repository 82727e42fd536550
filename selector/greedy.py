"""Greedy selector - picks the device with minimum expected completion time."""

from typing import Optional

from analysis.complexity import ComplexityClassification
from core.registry import DeviceRegistry
from .base import RoutingStrategy, DeviceQueues, BusyMap, queue_size
from .estimator import CompletionTimeEstimator


class GreedySelector(RoutingStrategy):
    """Full scan over online devices in rank order.

    Skips devices at or over capacity. On equal estimated completion
    time an idle device wins over a busy one.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        estimator: CompletionTimeEstimator,
        verbose: bool = False
    ):
        super().__init__(name="greedy", registry=registry, estimator=estimator, verbose=verbose)

    def select(
        self,
        queues: DeviceQueues,
        busy: BusyMap,
        analysis: Optional[ComplexityClassification] = None
    ) -> Optional[str]:
        tokens = self.estimated_tokens(analysis)

        best_device = None
        best_time = float('inf')
        best_busy = False

        for base in self.registry.get_ranked_online():
            size = queue_size(queues, base)
            if not self.registry.can_accept_request(base, size):
                continue

            completion_time = self.estimator.estimate(base, size, tokens)
            is_busy = bool(busy.get(base, False))

            if best_device is None or completion_time < best_time or (
                completion_time == best_time and best_busy and not is_busy
            ):
                best_device = base
                best_time = completion_time
                best_busy = is_busy

        if best_device is not None:
            self.selections += 1
            self._log(
                f"Selected {best_device} (completion time: {best_time:.2f}s, "
                f"TPS: {self.registry.get_tps(best_device):.1f}, busy: {best_busy})"
            )

        return best_device
