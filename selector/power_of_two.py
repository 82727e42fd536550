"""Power of Two Choices selector - sample two devices, keep the faster finish."""

import random
from threading import Lock
from typing import List, Optional, Tuple

from analysis.complexity import ComplexityClassification
from core.registry import DeviceRegistry
from .base import RoutingStrategy, DeviceQueues, BusyMap, queue_size
from .estimator import CompletionTimeEstimator


class PowerOfTwoSelector(RoutingStrategy):
    """Randomized selector that compares two sampled candidates.

    Avoids the herd effect of always sending work to the single best
    device while staying O(1) per decision. Sampling is uniform by
    default; with weighted sampling, faster devices are drawn more often
    (probability proportional to tps ** weight_exponent).
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        estimator: CompletionTimeEstimator,
        rng: Optional[random.Random] = None,
        weighted: bool = False,
        weight_exponent: float = 1.5,
        verbose: bool = False
    ):
        super().__init__(name="power-of-two", registry=registry, estimator=estimator, verbose=verbose)
        self.rng = rng or random.Random()
        self.weighted = weighted
        self.weight_exponent = max(1.0, min(3.0, weight_exponent))
        self._rng_lock = Lock()

    def select(
        self,
        queues: DeviceQueues,
        busy: BusyMap,
        analysis: Optional[ComplexityClassification] = None
    ) -> Optional[str]:
        candidates = self.available_devices(queues)

        if not candidates:
            return None
        if len(candidates) == 1:
            self.selections += 1
            return candidates[0]

        first, second = self._sample_pair(candidates)
        tokens = self.estimated_tokens(analysis)
        time_first = self.estimator.estimate(first, queue_size(queues, first), tokens)
        time_second = self.estimator.estimate(second, queue_size(queues, second), tokens)

        selected = first if time_first <= time_second else second
        self.selections += 1
        self._log(
            f"{first} (q:{queue_size(queues, first)}={time_first:.2f}s) vs "
            f"{second} (q:{queue_size(queues, second)}={time_second:.2f}s) -> {selected}"
        )
        return selected

    def _sample_pair(self, candidates: List[str]) -> Tuple[str, str]:
        with self._rng_lock:
            if not self.weighted:
                first, second = self.rng.sample(candidates, 2)
                return first, second

            weights = [self.registry.get_tps(base) ** self.weight_exponent for base in candidates]
            idx_first = self._weighted_index(weights)
            weights[idx_first] = 0.0
            if sum(weights) > 0:
                idx_second = self._weighted_index(weights)
            else:
                # Remaining candidates carry no weight, fall back to uniform
                others = [i for i in range(len(candidates)) if i != idx_first]
                idx_second = self.rng.choice(others)
            return candidates[idx_first], candidates[idx_second]

    def _weighted_index(self, weights: List[float]) -> int:
        remaining = self.rng.random() * sum(weights)
        for index, weight in enumerate(weights):
            if weight <= 0:
                continue
            remaining -= weight
            if remaining <= 0:
                return index
        return max(i for i, w in enumerate(weights) if w > 0)
