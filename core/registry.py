"""Registry of compute devices with TPS-derived capacity and rank."""

from typing import Dict, List, Optional, Iterable, Mapping, Any
from threading import Lock

from .device import DeviceRecord, MetricsSummary, calculate_capacity


class DeviceRegistry:
    """Holds per-device throughput, rank, capacity and online status.

    Two kinds of updates:
    1. Full refresh: update_device_metrics(devices) re-sorts every device
       by TPS, reassigns ranks and rebuilds the online set.
    2. Point updates: mark_offline / mark_online / update_device_tps change
       a single device between refreshes. Rank is left stale until the
       next full refresh.

    The online set is authoritative. A device can be dropped from it on a
    live failure without waiting for the next benchmark.
    """

    def __init__(self, tps_per_person: float = 100.0, tps_smoothing: float = 0.3):
        self.tps_per_person = tps_per_person
        self.tps_smoothing = tps_smoothing

        self._lock = Lock()
        self._devices: Dict[str, DeviceRecord] = {}
        self._online: Dict[str, None] = {}  # insertion-ordered set

    def update_device_metrics(self, devices: Iterable[Mapping[str, Any]]) -> MetricsSummary:
        """Replace all device records from a benchmark pass.

        Args:
            devices: Iterable of {'base': str, 'tps': float} mappings

        Returns:
            Summary of the new device metrics
        """
        ranked = sorted(devices, key=lambda d: d['tps'], reverse=True)

        with self._lock:
            self._devices = {}
            self._online = {}
            for index, device in enumerate(ranked):
                base = device['base']
                tps = float(device['tps'])
                record = DeviceRecord(
                    base=base,
                    tps=tps,
                    capacity=calculate_capacity(tps, self.tps_per_person),
                    rank=index + 1
                )
                self._devices[base] = record
                if tps > 0:
                    self._online[base] = None

                status = "online" if tps > 0 else "offline"
                print(f"[registry] {base} - Rank #{record.rank}, TPS: {tps:.2f}, "
                      f"Max Queue: {record.capacity}, {status}")

            print(f"[registry] Online devices: {len(self._online)}/{len(self._devices)}")

        return self.get_metrics_summary()

    def can_accept_request(self, base: str, current_queue_size: int) -> bool:
        return current_queue_size < self.get_capacity(base)

    def mark_offline(self, base: str) -> None:
        """Take a device out of rotation after a live failure."""
        with self._lock:
            if base not in self._online:
                return
            del self._online[base]
            record = self._devices[base]
            record.tps = 0.0
            record.capacity = 0
            remaining = len(self._online)

        print(f"[registry] Device marked offline: {base}")
        print(f"[registry] Online devices: {remaining}")

    def mark_online(self, base: str, tps: float) -> None:
        """Bring a device back without a full refresh. Rank is not recomputed."""
        if tps <= 0:
            return

        with self._lock:
            if base in self._online:
                return
            record = self._devices.get(base)
            if record is None:
                record = DeviceRecord(base=base)
                self._devices[base] = record
            record.tps = float(tps)
            record.capacity = calculate_capacity(record.tps, self.tps_per_person)
            self._online[base] = None

        print(f"[registry] Device came online: {base} (TPS: {tps:.2f})")

    def update_device_tps(self, base: str, actual_tps: float) -> None:
        """Blend a live TPS measurement into the stored value (EMA)."""
        if actual_tps <= 0:
            return

        with self._lock:
            if base not in self._online:
                return
            record = self._devices[base]
            old_tps = record.tps or actual_tps
            new_tps = self.tps_smoothing * actual_tps + (1 - self.tps_smoothing) * old_tps
            old_capacity = record.capacity
            record.tps = new_tps
            record.capacity = calculate_capacity(new_tps, self.tps_per_person)

        # Only significant (>10%) changes are worth a log line
        if abs(new_tps - old_tps) / old_tps > 0.10:
            print(f"[registry] TPS updated for {base}: {old_tps:.1f} -> {new_tps:.1f} "
                  f"(capacity: {old_capacity} -> {record.capacity})")

    def is_online(self, base: str) -> bool:
        return base in self._online

    def get_online_devices(self) -> List[str]:
        with self._lock:
            return list(self._online)

    def get_ranked_online(self) -> List[str]:
        """Online devices, fastest (rank 1) first.

        Devices brought online individually that never appeared in a full
        refresh have no rank and sort last.
        """
        with self._lock:
            return sorted(
                self._online,
                key=lambda base: self._devices[base].rank or float('inf')
            )

    def get_record(self, base: str) -> Optional[DeviceRecord]:
        return self._devices.get(base)

    def get_tps(self, base: str) -> float:
        record = self._devices.get(base)
        return record.tps if record else 0.0

    def get_capacity(self, base: str) -> int:
        record = self._devices.get(base)
        return record.capacity if record else 0

    def get_rank(self, base: str) -> Optional[int]:
        record = self._devices.get(base)
        return record.rank if record else None

    def list_all(self) -> List[str]:
        return list(self._devices.keys())

    def get_total_capacity(self) -> int:
        with self._lock:
            return sum(record.capacity for record in self._devices.values())

    def get_metrics_summary(self) -> MetricsSummary:
        with self._lock:
            records = list(self._devices.values())
        return MetricsSummary(
            devices=len(records),
            total_capacity=sum(r.capacity for r in records),
            capacity_by_device={r.base: r.capacity for r in records},
            rankings={r.base: r.rank for r in records if r.rank is not None}
        )
