"""Base routing strategy interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

from analysis.complexity import ComplexityClassification
from core.registry import DeviceRegistry
from .estimator import CompletionTimeEstimator

# Caller-owned state: device -> pending work items, device -> currently busy
DeviceQueues = Mapping[str, Sequence[Any]]
BusyMap = Mapping[str, bool]


def queue_size(queues: DeviceQueues, base: str) -> int:
    queue = queues.get(base)
    return len(queue) if queue is not None else 0


class RoutingStrategy(ABC):
    """Abstract base class for device selection strategies.

    Strategies pick which device receives the next unit of work
    (power-of-two, greedy, complexity-tiered, saturation fallback).
    None means no device is currently selectable.
    """

    def __init__(
        self,
        name: str,
        registry: DeviceRegistry,
        estimator: Optional[CompletionTimeEstimator] = None,
        verbose: bool = False
    ):
        self.name = name
        self.registry = registry
        self.estimator = estimator
        self.verbose = verbose
        self.selections = 0

    @abstractmethod
    def select(
        self,
        queues: DeviceQueues,
        busy: BusyMap,
        analysis: Optional[ComplexityClassification] = None
    ) -> Optional[str]:
        """Select a device for a new request.

        Args:
            queues: Current per-device work queues (only lengths are read)
            busy: Whether each device is currently processing
            analysis: Complexity classification of the request, if known

        Returns:
            Selected device identifier, or None
        """
        pass

    def available_devices(self, queues: DeviceQueues) -> List[str]:
        """Online devices with a free queue slot, fastest first."""
        return [
            base for base in self.registry.get_ranked_online()
            if self.registry.can_accept_request(base, queue_size(queues, base))
        ]

    def estimated_tokens(self, analysis: Optional[ComplexityClassification]) -> float:
        if analysis is not None:
            return analysis.estimated_tokens
        return self.estimator.avg_tokens_per_request

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[{self.name}] {message}")

    def get_summary(self) -> Dict[str, Any]:
        return {
            'strategy': self.name,
            'selections': self.selections,
        }
