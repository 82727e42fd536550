"""Load balancer facade over registry, routing, estimation and work stealing."""

import random
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from analysis.complexity import ComplexityClassification, ComplexityClassifier
from config.loader import BalancerConfig, load_config
from core.device import MetricsSummary
from core.registry import DeviceRegistry
from selector.adaptive import AdaptiveSelector
from selector.base import BusyMap, DeviceQueues
from selector.estimator import CompletionTimeEstimator
from selector.profile import CompletionHistory, PerformanceProfile, PerformanceRecord
from scheduler.stealing import Dispatch, MutableQueues, ProcessQueueFn, WorkStealingScheduler
from scheduler.velocity import PreWarmRecommendation, QueueVelocityTracker
from scheduler.batching import ProcessBatchFn, RequestBatcher
from .health import DeviceHealth, LoadCheck, QueueHealthMonitor


class LoadBalancer:
    """Adaptive request router and work-stealing scheduler for a device pool.

    The caller owns the per-device work queues and busy flags. It asks the
    balancer where to send new work (select_best_device), reports
    completions and device failures back, and lets the scheduler relocate
    queued items from overloaded devices to idle ones.

    Example:
        lb = LoadBalancer.from_config("balancer.yaml")
        lb.update_device_metrics([{"base": "http://gpu-1:11434", "tps": 400}])
        device = lb.select_best_device(queues, busy, question)
        if device is None:
            ...  # nothing online; queue or reject
    """

    def __init__(
        self,
        config: Optional[BalancerConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        dispatch: Optional[Dispatch] = None
    ):
        self.config = (config or BalancerConfig()).validate()
        cfg = self.config

        self.registry = DeviceRegistry(tps_per_person=cfg.tps_per_person, tps_smoothing=cfg.tps_smoothing)
        self.classifier = ComplexityClassifier(max_size=cfg.cache_max_size)
        self.estimator = CompletionTimeEstimator(
            self.registry,
            avg_tokens_per_request=cfg.avg_tokens_per_request,
            smoothing=cfg.token_smoothing
        )
        self.history = CompletionHistory(
            window=cfg.completion_window,
            history_max_entries=cfg.history_max_entries,
            profile_min_samples=cfg.profile_min_samples,
            clock=clock
        )
        self.velocity = QueueVelocityTracker(
            window_s=cfg.velocity_window_s,
            threshold=cfg.pre_warm_threshold,
            clock=clock
        )
        self.selector = AdaptiveSelector(
            self.registry, self.estimator, self.classifier,
            use_greedy=cfg.use_greedy,
            use_power_of_two=cfg.use_power_of_two,
            rng=rng,
            weighted_sampling=cfg.weighted_sampling,
            weight_exponent=cfg.weight_exponent,
            verbose=cfg.verbose
        )
        self.scheduler = WorkStealingScheduler(
            self.registry,
            interval_ms=cfg.rebalance_interval_ms,
            steal_threshold=cfg.min_steal_threshold,
            enabled=cfg.rebalance_enabled,
            dispatch=dispatch,
            velocity=self.velocity,
            pre_warming=cfg.pre_warming,
            verbose=cfg.verbose
        )
        self.batcher = RequestBatcher(
            self.registry,
            enabled=cfg.batching_enabled,
            window_ms=cfg.batch_window_ms,
            min_batch_size=cfg.min_batch_size,
            max_batch_size=cfg.max_batch_size,
            min_tps=cfg.batch_min_tps,
            verbose=cfg.verbose
        )
        self.monitor = QueueHealthMonitor(
            self.registry, self.estimator, self.history, self.velocity,
            dynamic_concurrency=cfg.dynamic_concurrency,
            target_latency_ms=cfg.target_latency_ms
        )

        if cfg.devices:
            self.update_device_metrics(cfg.devices)

    @classmethod
    def from_config(cls, config_path: Optional[str] = None, **kwargs) -> "LoadBalancer":
        return cls(load_config(config_path), **kwargs)

    @property
    def queue_lock(self):
        """Lock guarding caller queues against concurrent steals."""
        return self.scheduler.queue_lock

    # ---- device registry ------------------------------------------------

    def update_device_metrics(self, devices: Iterable[Mapping[str, Any]]) -> MetricsSummary:
        summary = self.registry.update_device_metrics(devices)
        print(f"[balancer] Strategy: {self.get_strategy()}")
        return summary

    def can_accept_request(self, base: str, current_queue_size: int) -> bool:
        return self.registry.can_accept_request(base, current_queue_size)

    def mark_offline(self, base: str) -> None:
        self.registry.mark_offline(base)

    def mark_online(self, base: str, tps: float) -> None:
        self.registry.mark_online(base, tps)

    def update_device_tps(self, base: str, actual_tps: float) -> None:
        self.registry.update_device_tps(base, actual_tps)

    def is_online(self, base: str) -> bool:
        return self.registry.is_online(base)

    def get_online_devices(self) -> List[str]:
        return self.registry.get_online_devices()

    def set_tps_per_person(self, ratio: float) -> None:
        """Change the TPS-per-slot ratio. Applies from the next capacity update."""
        if ratio <= 0:
            raise ValueError(f"TPS per person must be positive, got {ratio}")
        print(f"[balancer] Adjusting TPS ratio: {self.registry.tps_per_person:g} -> {ratio:g}")
        self.registry.tps_per_person = ratio
        self.config.tps_per_person = ratio

    # ---- routing ---------------------------------------------------------

    def analyze_question(self, question: Any) -> ComplexityClassification:
        return self.classifier.analyze_question(question)

    def select_best_device(
        self,
        queues: DeviceQueues,
        busy: BusyMap,
        question: Optional[str] = None
    ) -> Optional[str]:
        return self.selector.select_best_device(queues, busy, question)

    def set_greedy_mode(self, enabled: bool) -> None:
        print(f"[balancer] Greedy algorithm: {'ENABLED' if enabled else 'DISABLED'}")
        self.selector.use_greedy = enabled
        self.config.use_greedy = enabled

    def set_power_of_two_mode(self, enabled: bool) -> None:
        print(f"[balancer] Power of Two Choices: {'ENABLED' if enabled else 'DISABLED'}")
        self.selector.use_power_of_two = enabled
        self.config.use_power_of_two = enabled

    def get_strategy(self) -> str:
        return self.selector.get_strategy()

    # ---- completion feedback --------------------------------------------

    def record_completion(self, base: str, duration_ms: float, success: bool = True) -> None:
        self.history.record(base, duration_ms, success=success)

    def update_average_tokens(self, actual_tokens: float) -> float:
        return self.estimator.update_average_tokens(actual_tokens)

    @property
    def avg_tokens_per_request(self) -> float:
        return self.estimator.avg_tokens_per_request

    # ---- work stealing ---------------------------------------------------

    def start_rebalancing(self, queues: MutableQueues, process_queue_fn: Optional[ProcessQueueFn]) -> None:
        self.scheduler.start_rebalancing(queues, process_queue_fn)

    def stop_rebalancing(self) -> None:
        self.scheduler.stop_rebalancing()

    def rebalance_queues(self, queues: MutableQueues, process_queue_fn: Optional[ProcessQueueFn] = None) -> int:
        return self.scheduler.rebalance_queues(queues, process_queue_fn)

    def try_steal_work(
        self,
        idle_base: str,
        queues: MutableQueues,
        process_queue_fn: Optional[ProcessQueueFn] = None
    ) -> bool:
        return self.scheduler.try_steal_work(idle_base, queues, process_queue_fn)

    def set_rebalancing_enabled(self, enabled: bool) -> None:
        self.scheduler.set_rebalancing_enabled(enabled)
        self.config.rebalance_enabled = enabled

    def get_queue_velocity(self, base: str) -> float:
        return self.velocity.velocity(base)

    def check_pre_warming(self, queues: DeviceQueues) -> List[PreWarmRecommendation]:
        capacities = {base: self.registry.get_capacity(base) for base in self.registry.get_online_devices()}
        return self.velocity.recommendations(queues, capacities)

    # ---- batching and concurrency ---------------------------------------

    def can_batch(self, base: str) -> bool:
        return self.batcher.can_batch(base)

    def try_batch_request(self, base: str, request: Any, process_batch_fn: ProcessBatchFn) -> bool:
        return self.batcher.try_batch(base, request, process_batch_fn)

    def flush_batch(self, base: str, process_batch_fn: Optional[ProcessBatchFn] = None) -> int:
        return self.batcher.flush(base, process_batch_fn)

    def get_batch_status(self) -> Dict[str, Dict[str, Any]]:
        return self.batcher.get_status()

    def set_batching_enabled(self, enabled: bool) -> None:
        self.batcher.set_enabled(enabled)
        self.config.batching_enabled = enabled

    def get_max_concurrent(self, base: str) -> int:
        return self.monitor.get_max_concurrent(base)

    def set_concurrency_adjustment(self, base: str, delta: int) -> None:
        self.monitor.set_concurrency_adjustment(base, delta)

    # ---- observability ---------------------------------------------------

    def get_queue_health(self, queues: Mapping[str, Sequence[Any]]) -> Dict[str, DeviceHealth]:
        return self.monitor.get_queue_health(queues)

    def get_total_capacity(self) -> int:
        return self.monitor.get_total_capacity()

    def can_handle_load(self, queues: Mapping[str, Sequence[Any]], additional: int) -> LoadCheck:
        return self.monitor.can_handle_load(queues, additional)

    def get_rebalance_stats(self, queues: Mapping[str, Sequence[Any]]) -> Dict[str, Any]:
        return self.monitor.get_rebalance_stats(queues, enabled=self.scheduler.enabled)

    def get_processing_rate(self, base: str) -> float:
        return self.monitor.get_processing_rate(base)

    def get_avg_completion_time(self, base: str) -> float:
        return self.monitor.get_avg_completion_time(base)

    def get_metrics_summary(self) -> MetricsSummary:
        return self.registry.get_metrics_summary()

    def get_performance_profile(self, base: str) -> Optional[PerformanceProfile]:
        return self.history.get_profile(base)

    def get_all_performance_profiles(self) -> Dict[str, PerformanceProfile]:
        return self.history.get_all_profiles()

    def get_performance_history(self, base: str, limit: int = 100) -> List[PerformanceRecord]:
        return self.history.get_history(base, limit)

    def clear_performance_history(self, base: str) -> None:
        self.history.clear(base)

    def export_performance_data(self) -> Dict[str, Any]:
        return {
            'profiles': {base: p.to_dict() for base, p in self.get_all_performance_profiles().items()},
            'history': {
                base: [vars(r) for r in self.history.get_history(base)]
                for base in self.registry.list_all()
            },
            'velocities': self.velocity.all_velocities(),
        }

    def get_feature_status(self) -> Dict[str, Any]:
        return {
            'strategy': self.get_strategy(),
            'greedy': self.selector.use_greedy,
            'power_of_two': self.selector.use_power_of_two,
            'weighted_sampling': {
                'enabled': self.selector.power_of_two.weighted,
                'exponent': self.selector.power_of_two.weight_exponent,
            },
            'rebalancing': self.scheduler.get_summary(),
            'pre_warming': {
                'enabled': self.scheduler.pre_warming,
                'threshold': self.velocity.threshold,
                'velocities': self.velocity.all_velocities(),
            },
            'batching': self.batcher.get_summary(),
            'dynamic_concurrency': {
                'enabled': self.monitor.dynamic_concurrency,
                'target_latency_ms': self.monitor.target_latency_ms,
                'adjustments': dict(self.monitor.concurrency_adjustments),
                'max_concurrent': {
                    base: self.monitor.get_max_concurrent(base)
                    for base in self.registry.get_online_devices()
                },
            },
            'profiling': {
                'devices_tracked': len(self.history.get_all_profiles()),
                'total_samples': self.history.total_samples(),
            },
            'selections': self.selector.get_summary()['selections'],
        }
