"""Complexity-tiered selector - match question difficulty to device speed."""

from typing import List, Optional

from analysis.complexity import Complexity, ComplexityClassification
from core.registry import DeviceRegistry
from .base import RoutingStrategy, DeviceQueues, BusyMap


class ComplexityTieredSelector(RoutingStrategy):
    """Route by complexity tier over devices sorted fastest first.

    - simple: slowest available device
    - high: fastest available device
    - medium: rank-order midpoint device
    - no analysis: fastest available device

    Idle devices are preferred within each tier. When every available
    device is busy the tier's device is returned anyway.
    """

    def __init__(self, registry: DeviceRegistry, verbose: bool = False):
        super().__init__(name="complexity", registry=registry, verbose=verbose)

    def select(
        self,
        queues: DeviceQueues,
        busy: BusyMap,
        analysis: Optional[ComplexityClassification] = None
    ) -> Optional[str]:
        available = self.available_devices(queues)
        if not available:
            return None

        if analysis is None:
            selected = self._first_idle(available, busy) or available[0]
        elif analysis.complexity == Complexity.SIMPLE:
            slowest_first = list(reversed(available))
            selected = self._first_idle(slowest_first, busy) or slowest_first[0]
            self._log(f"Routing simple question to slower device: {selected}")
        elif analysis.complexity == Complexity.HIGH:
            selected = self._first_idle(available, busy) or available[0]
            self._log(f"Routing complex question to fastest device: {selected}")
        else:
            selected = self._select_mid_tier(available, busy)
            self._log(f"Routing medium question to mid-tier device: {selected}")

        self.selections += 1
        return selected

    def _select_mid_tier(self, available: List[str], busy: BusyMap) -> str:
        mid_device = available[len(available) // 2]
        if not busy.get(mid_device, False):
            return mid_device
        return self._first_idle(available, busy) or mid_device

    @staticmethod
    def _first_idle(devices: List[str], busy: BusyMap) -> Optional[str]:
        for base in devices:
            if not busy.get(base, False):
                return base
        return None
