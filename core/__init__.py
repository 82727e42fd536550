from .device import DeviceRecord, MetricsSummary, calculate_capacity
from .registry import DeviceRegistry

__all__ = ['DeviceRecord', 'MetricsSummary', 'calculate_capacity', 'DeviceRegistry']
