"""Short-window request batching for fast devices."""

from threading import Lock, Timer
from typing import Any, Callable, Dict, List, Optional

from core.registry import DeviceRegistry

ProcessBatchFn = Callable[[str, List[Any]], Any]


class RequestBatcher:
    """Accumulates requests bound for a fast device and releases them together.

    The first request for a device opens a window of `window_ms`. The pending
    requests are flushed when the window expires or as soon as
    `max_batch_size` have accumulated. Fewer than `min_batch_size` pending
    requests are released one by one.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        enabled: bool = False,
        window_ms: float = 50,
        min_batch_size: int = 2,
        max_batch_size: int = 4,
        min_tps: float = 200,
        timer_factory: Callable[..., Timer] = Timer,
        verbose: bool = False
    ):
        if min_batch_size < 1 or max_batch_size < min_batch_size:
            raise ValueError(f"Invalid batch sizes: min={min_batch_size}, max={max_batch_size}")

        self.registry = registry
        self.enabled = enabled
        self.window_ms = max(10.0, min(200.0, window_ms))
        self.min_batch_size = min_batch_size
        self.max_batch_size = max_batch_size
        self.min_tps = min_tps
        self.verbose = verbose
        self._timer_factory = timer_factory

        self._lock = Lock()
        self._pending: Dict[str, List[Any]] = {}
        self._callbacks: Dict[str, ProcessBatchFn] = {}
        self._timers: Dict[str, Timer] = {}

        self.batches_flushed = 0

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        print(f"[batcher] Request batching: {'ON' if enabled else 'OFF'}")

    def can_batch(self, base: str) -> bool:
        return self.enabled and self.registry.get_tps(base) >= self.min_tps

    def try_batch(self, base: str, request: Any, process_batch_fn: ProcessBatchFn) -> bool:
        """Add a request to the device's pending batch.

        Returns:
            False if the device does not batch and the caller should process
            the request itself
        """
        if not self.can_batch(base):
            return False

        with self._lock:
            pending = self._pending.setdefault(base, [])
            pending.append(request)
            self._callbacks[base] = process_batch_fn
            full = len(pending) >= self.max_batch_size

            if not full and base not in self._timers:
                timer = self._timer_factory(self.window_ms / 1000.0, self.flush, args=(base,))
                timer.daemon = True
                self._timers[base] = timer
                timer.start()

        if full:
            self.flush(base)
        return True

    def flush(self, base: str, process_batch_fn: Optional[ProcessBatchFn] = None) -> int:
        """Release the device's pending requests now.

        Returns:
            Number of requests released
        """
        with self._lock:
            timer = self._timers.pop(base, None)
            batch = self._pending.pop(base, [])
            stored = self._callbacks.pop(base, None)
        callback = process_batch_fn or stored

        if timer is not None:
            timer.cancel()
        if not batch or callback is None:
            return 0

        if len(batch) < self.min_batch_size:
            for request in batch:
                callback(base, [request])
            return len(batch)

        self.batches_flushed += 1
        if self.verbose:
            print(f"[batcher] Batch ready: {base} processing {len(batch)} requests together")
        callback(base, batch)
        return len(batch)

    def get_status(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {
                base: {'pending': len(batch), 'has_timer': base in self._timers}
                for base, batch in self._pending.items()
            }

    def cancel_all(self) -> Dict[str, List[Any]]:
        """Stop every window timer and hand back the requests still pending."""
        with self._lock:
            timers = list(self._timers.values())
            dropped = self._pending
            self._timers = {}
            self._pending = {}
            self._callbacks = {}

        for timer in timers:
            timer.cancel()
        return dropped

    def get_summary(self) -> Dict[str, Any]:
        return {
            'enabled': self.enabled,
            'window_ms': self.window_ms,
            'min_batch_size': self.min_batch_size,
            'max_batch_size': self.max_batch_size,
            'min_tps': self.min_tps,
            'batches_flushed': self.batches_flushed,
            'pending': self.get_status(),
        }
