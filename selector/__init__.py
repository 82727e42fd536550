"""Selector module for device routing strategies."""

from .base import RoutingStrategy, DeviceQueues, BusyMap, queue_size
from .estimator import CompletionTimeEstimator
from .profile import CompletionSample, CompletionHistory, PerformanceProfile, PerformanceRecord
from .power_of_two import PowerOfTwoSelector
from .greedy import GreedySelector
from .complexity import ComplexityTieredSelector
from .saturation import SaturationFallbackSelector
from .adaptive import AdaptiveSelector

__all__ = [
    'RoutingStrategy',
    'DeviceQueues',
    'BusyMap',
    'queue_size',
    'CompletionTimeEstimator',
    'CompletionSample',
    'CompletionHistory',
    'PerformanceProfile',
    'PerformanceRecord',
    'PowerOfTwoSelector',
    'GreedySelector',
    'ComplexityTieredSelector',
    'SaturationFallbackSelector',
    'AdaptiveSelector',
]
