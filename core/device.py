from dataclasses import dataclass
from typing import Dict, Any, Optional


def calculate_capacity(tps: float, tps_per_person: float) -> int:
    """Max queue slots for a device, one slot per `tps_per_person` tokens/sec.

    Any responsive device gets at least one slot; a device with no
    measured throughput gets none.
    """
    if tps <= 0:
        return 0
    return max(1, int(tps // tps_per_person))


@dataclass
class DeviceRecord:
    """Benchmark state for a single compute device."""

    base: str
    tps: float = 0.0
    capacity: int = 0
    rank: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'base': self.base,
            'tps': self.tps,
            'capacity': self.capacity,
            'rank': self.rank,
        }


@dataclass
class MetricsSummary:
    devices: int
    total_capacity: int
    capacity_by_device: Dict[str, int]
    rankings: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'devices': self.devices,
            'total_capacity': self.total_capacity,
            'capacity_by_device': dict(self.capacity_by_device),
            'rankings': dict(self.rankings),
        }
