"""Work-stealing rebalancer for caller-owned device queues."""

from threading import RLock, Thread
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from core.registry import DeviceRegistry
from .ticker import Ticker
from .velocity import QueueVelocityTracker

# device -> pending work items; items are moved with pop()/append()
MutableQueues = MutableMapping[str, List[Any]]
ProcessQueueFn = Callable[[str], Any]
Dispatch = Callable[[ProcessQueueFn, str], None]


def _process_safely(fn: ProcessQueueFn, base: str) -> None:
    try:
        fn(base)
    except Exception as e:
        print(f"[scheduler] Processing queue for {base} failed: {e}")


def dispatch_in_thread(fn: ProcessQueueFn, base: str) -> None:
    """Fire-and-forget: run fn(base) on a daemon thread without waiting."""
    Thread(target=_process_safely, args=(fn, base), daemon=True).start()


class WorkStealingScheduler:
    """Moves queued work from overloaded devices to idle ones.

    Two triggers share the same relocation rule (pop from the donor's
    tail, append to the idle device's queue):
    - rebalance_queues: periodic pass, one item per idle device per tick
    - try_steal_work: reactive steal the moment a device's queue drains

    Every pop/push pair runs under `queue_lock`. Callers that mutate the
    queues from other threads must hold the same lock.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        interval_ms: float = 500,
        steal_threshold: int = 1,
        enabled: bool = True,
        dispatch: Optional[Dispatch] = None,
        queue_lock: Optional[RLock] = None,
        velocity: Optional[QueueVelocityTracker] = None,
        pre_warming: bool = False,
        verbose: bool = False
    ):
        if steal_threshold < 1:
            raise ValueError(f"Steal threshold must be at least 1, got {steal_threshold}")

        self.registry = registry
        self.interval_ms = interval_ms
        self.steal_threshold = steal_threshold
        self.enabled = enabled
        self.dispatch = dispatch or dispatch_in_thread
        self.queue_lock = queue_lock or RLock()
        self.velocity = velocity
        self.pre_warming = pre_warming
        self.verbose = verbose

        self._ticker: Optional[Ticker] = None
        self._queues: Optional[MutableQueues] = None
        self._process_queue_fn: Optional[ProcessQueueFn] = None

        # Counters
        self.total_rebalanced = 0
        self.total_proactive = 0
        self.total_pre_warmed = 0

    @property
    def running(self) -> bool:
        return self._ticker is not None and self._ticker.running

    def start_rebalancing(self, queues: MutableQueues, process_queue_fn: Optional[ProcessQueueFn]) -> None:
        self.stop_rebalancing(quiet=True)

        self._queues = queues
        self._process_queue_fn = process_queue_fn
        self._ticker = Ticker(self.interval_ms / 1000.0, self._tick, name="scheduler")
        self._ticker.start()
        print(f"[scheduler] Starting work-stealing rebalancer (every {self.interval_ms:g}ms)")

    def stop_rebalancing(self, quiet: bool = False) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is None:
            return
        ticker.stop()
        if not quiet:
            print("[scheduler] Stopped work-stealing rebalancer")

    def set_rebalancing_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        print(f"[scheduler] Work-stealing: {'ENABLED' if enabled else 'DISABLED'}")

    def _tick(self) -> None:
        if self.enabled and self._queues is not None:
            self.rebalance_queues(self._queues, self._process_queue_fn)

    def _notify(self, process_queue_fn: Optional[ProcessQueueFn], base: str) -> None:
        if process_queue_fn is not None:
            self.dispatch(process_queue_fn, base)

    def rebalance_queues(self, queues: MutableQueues, process_queue_fn: Optional[ProcessQueueFn] = None) -> int:
        """Give every idle online device one item from the busiest donor.

        Returns:
            Number of items moved by stealing (pre-warming not included)
        """
        online = self.registry.get_online_devices()
        if len(online) < 2:
            return 0

        targets: List[str] = []
        with self.queue_lock:
            sizes = {base: len(queues.get(base, ())) for base in online}

            if self.velocity is not None:
                for base in online:
                    self.velocity.record(base, sizes[base])

            if self.pre_warming and self.velocity is not None:
                self.pre_warm(queues, process_queue_fn)
                sizes = {base: len(queues.get(base, ())) for base in online}

            idle = [b for b in online if sizes[b] == 0 and self.registry.get_tps(b) > 0]
            donors = sorted(
                (b for b in online if sizes[b] >= self.steal_threshold),
                key=lambda b: sizes[b],
                reverse=True
            )
            if not idle or not donors:
                return 0

            for target in idle:
                eligible = [d for d in donors if d != target and len(queues[d]) >= self.steal_threshold]
                if not eligible:
                    break
                # Re-evaluated per target so each steal sees the donor's reduced queue
                source = max(eligible, key=lambda d: len(queues[d]))
                item = queues[source].pop()
                queues.setdefault(target, []).append(item)
                targets.append(target)

                if self.verbose:
                    print(f"[scheduler] Work stolen: {source} (queue:{len(queues[source])}) -> "
                          f"{target} (was idle, TPS:{self.registry.get_tps(target):.0f})")

        for target in targets:
            self._notify(process_queue_fn, target)

        if targets:
            self.total_rebalanced += len(targets)
            if self.verbose:
                print(f"[scheduler] Rebalanced {len(targets)} request(s) to idle devices")
        return len(targets)

    def try_steal_work(
        self,
        idle_base: str,
        queues: MutableQueues,
        process_queue_fn: Optional[ProcessQueueFn] = None
    ) -> bool:
        """Pull one item for a device whose queue just drained.

        Returns:
            True if an item was moved to `idle_base`
        """
        if not self.enabled or not self.registry.is_online(idle_base):
            return False

        with self.queue_lock:
            source = None
            max_size = 0
            for base in self.registry.get_online_devices():
                if base == idle_base:
                    continue
                size = len(queues.get(base, ()))
                if size > max_size:
                    source, max_size = base, size

            if source is None:
                return False

            item = queues[source].pop()
            queues.setdefault(idle_base, []).append(item)
            remaining = len(queues[source])

        self.total_proactive += 1
        if self.verbose:
            print(f"[scheduler] Proactive steal: {source} (queue:{remaining}) -> {idle_base} (just finished)")
        self._notify(process_queue_fn, idle_base)
        return True

    def pre_warm(self, queues: MutableQueues, process_queue_fn: Optional[ProcessQueueFn] = None) -> int:
        """Move up to two items off each fast-filling device to a lightly loaded one."""
        if self.velocity is None:
            return 0

        online = self.registry.get_online_devices()
        capacities = {base: self.registry.get_capacity(base) for base in online}
        moved_total = 0

        with self.queue_lock:
            recs = self.velocity.recommendations(queues, capacities)
            if not recs:
                return 0

            light = [
                base for base in online
                if len(queues.get(base, ())) < (capacities[base] or 1) * 0.3
            ]
            if not light:
                return 0
            target = light[0]

            for rec in recs:
                source = rec.device
                if source == target:
                    continue
                moved = 0
                while moved < 2 and queues.get(source):
                    queues.setdefault(target, []).append(queues[source].pop())
                    moved += 1
                if moved:
                    moved_total += moved
                    print(f"[scheduler] Pre-warming: moved {moved} requests from {source} "
                          f"(velocity:{rec.velocity:.2f}/s) to {target}")
                    self._notify(process_queue_fn, target)

        self.total_pre_warmed += moved_total
        return moved_total

    def get_summary(self) -> Dict[str, Any]:
        return {
            'enabled': self.enabled,
            'running': self.running,
            'interval_ms': self.interval_ms,
            'steal_threshold': self.steal_threshold,
            'pre_warming': self.pre_warming,
            'total_rebalanced': self.total_rebalanced,
            'total_proactive': self.total_proactive,
            'total_pre_warmed': self.total_pre_warmed,
        }
