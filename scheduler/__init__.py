"""Work-stealing scheduler, request batching and their timers."""

from .ticker import Ticker
from .velocity import QueueVelocityTracker, PreWarmRecommendation
from .stealing import WorkStealingScheduler, dispatch_in_thread
from .batching import RequestBatcher

__all__ = [
    'Ticker',
    'QueueVelocityTracker',
    'PreWarmRecommendation',
    'WorkStealingScheduler',
    'dispatch_in_thread',
    'RequestBatcher',
]
