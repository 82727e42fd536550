"""Adaptive load balancer for heterogeneous inference devices."""

from .health import HealthStatus, DeviceHealth, LoadCheck, DeviceRebalanceStats, QueueHealthMonitor
from .load_balancer import LoadBalancer

__all__ = [
    'LoadBalancer',
    'QueueHealthMonitor',
    'HealthStatus',
    'DeviceHealth',
    'LoadCheck',
    'DeviceRebalanceStats',
]
