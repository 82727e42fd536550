"""Saturation fallback - least utilized device when every queue is full."""

from typing import Optional

from analysis.complexity import ComplexityClassification
from core.registry import DeviceRegistry
from .base import RoutingStrategy, DeviceQueues, BusyMap, queue_size


class SaturationFallbackSelector(RoutingStrategy):
    """Pick the online device with the lowest queue/capacity ratio.

    Ignores capacity limits so that work keeps flowing as long as one
    device is online. Ties go to the better-ranked device.
    """

    def __init__(self, registry: DeviceRegistry, verbose: bool = False):
        super().__init__(name="saturation", registry=registry, verbose=verbose)

    def select(
        self,
        queues: DeviceQueues,
        busy: BusyMap,
        analysis: Optional[ComplexityClassification] = None
    ) -> Optional[str]:
        best_device = None
        best_utilization = float('inf')

        for base in self.registry.get_ranked_online():
            capacity = self.registry.get_capacity(base) or 1
            utilization = queue_size(queues, base) / capacity
            if utilization < best_utilization:
                best_utilization = utilization
                best_device = base

        if best_device is not None:
            self.selections += 1
            self._log(f"All devices at capacity, using {best_device} "
                      f"(utilization: {best_utilization:.0%})")

        return best_device
