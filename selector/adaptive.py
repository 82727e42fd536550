"""Adaptive selector - chains the routing strategies into one decision."""

import random
from typing import Any, Dict, Optional

from analysis.complexity import ComplexityClassifier
from core.registry import DeviceRegistry
from .base import DeviceQueues, BusyMap
from .estimator import CompletionTimeEstimator
from .power_of_two import PowerOfTwoSelector
from .greedy import GreedySelector
from .complexity import ComplexityTieredSelector
from .saturation import SaturationFallbackSelector


class AdaptiveSelector:
    """Composes the strategies in a fixed fallback order.

    1. Power of Two Choices (if enabled and a question was supplied)
    2. Greedy minimum completion time (if enabled and a question was supplied)
    3. Complexity tiers over devices with free capacity
    4. Saturation fallback over all online devices

    Returns None only when no device is online; the caller must queue or
    reject the request.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        estimator: CompletionTimeEstimator,
        classifier: ComplexityClassifier,
        use_greedy: bool = True,
        use_power_of_two: bool = True,
        rng: Optional[random.Random] = None,
        weighted_sampling: bool = False,
        weight_exponent: float = 1.5,
        verbose: bool = False
    ):
        self.registry = registry
        self.classifier = classifier
        self.use_greedy = use_greedy
        self.use_power_of_two = use_power_of_two
        self.verbose = verbose

        self.power_of_two = PowerOfTwoSelector(
            registry, estimator,
            rng=rng,
            weighted=weighted_sampling,
            weight_exponent=weight_exponent,
            verbose=verbose
        )
        self.greedy = GreedySelector(registry, estimator, verbose=verbose)
        self.tiered = ComplexityTieredSelector(registry, verbose=verbose)
        self.saturation = SaturationFallbackSelector(registry, verbose=verbose)

    def select_best_device(
        self,
        queues: DeviceQueues,
        busy: BusyMap,
        question: Optional[str] = None
    ) -> Optional[str]:
        if not self.registry.get_online_devices():
            print("[adaptive] No online devices available!")
            return None

        analysis = self.classifier.analyze_question(question) if question else None
        if analysis is not None and self.verbose:
            print(f"[adaptive] Question analysis: {analysis.question_type.value} "
                  f"({analysis.complexity.value}, ~{analysis.estimated_tokens} tokens)")

        if analysis is not None:
            if self.use_power_of_two:
                choice = self.power_of_two.select(queues, busy, analysis)
                if choice is not None:
                    return choice

            if self.use_greedy:
                choice = self.greedy.select(queues, busy, analysis)
                if choice is not None:
                    return choice

        choice = self.tiered.select(queues, busy, analysis)
        if choice is not None:
            return choice

        return self.saturation.select(queues, busy, analysis)

    def get_strategy(self) -> str:
        if self.use_power_of_two:
            return "Power of Two Choices"
        if self.use_greedy:
            return "Greedy (Minimum Completion Time)"
        return "Complexity-Based Routing"

    def get_summary(self) -> Dict[str, Any]:
        return {
            'strategy': self.get_strategy(),
            'selections': {
                s.name: s.selections
                for s in (self.power_of_two, self.greedy, self.tiered, self.saturation)
            },
        }
