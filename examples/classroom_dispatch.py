"""Classroom dispatcher driving the load balancer.

The dispatcher owns per-device queues and busy flags, the way a request
layer in front of a pool of inference servers would. Inference is faked
with sleeps proportional to tokens / TPS; one device fails midway and
comes back a little later.

Run with:
    python -m examples.classroom_dispatch
"""

import random
import time
from dataclasses import dataclass
from threading import Lock
from typing import Dict, List, Optional

from balancer import LoadBalancer
from config import BalancerConfig

DEVICES = [
    {"base": "http://lab-gpu-1:11434", "tps": 400},
    {"base": "http://lab-gpu-2:11434", "tps": 200},
    {"base": "http://lab-laptop:11434", "tps": 100},
]

QUESTIONS = [
    "Is the moon a planet?",
    "What is 17 + 25",
    "Define osmosis",
    "Explain why leaves change colour in autumn",
    "Compare mitosis and meiosis",
    "Tell me about volcanoes",
    "Name three noble gases",
]


@dataclass
class Job:
    student: str
    question: str
    tokens: int


class ClassroomDispatcher:
    """Owns device queues and runs each device's queue on worker threads."""

    def __init__(self, lb: LoadBalancer, failing_device: Optional[str] = None):
        self.lb = lb
        self.queues: Dict[str, List[Job]] = {d["base"]: [] for d in DEVICES}
        self.busy: Dict[str, bool] = {d["base"]: False for d in DEVICES}
        self.failing_device = failing_device
        self.completed = 0
        self._stats_lock = Lock()

    def submit(self, job: Job) -> Optional[str]:
        with self.lb.queue_lock:
            device = self.lb.select_best_device(self.queues, self.busy, job.question)
            if device is None:
                print(f"[dispatch] No device for {job.student}, request dropped")
                return None
            self.queues[device].append(job)
        self.lb.scheduler.dispatch(self.process_queue, device)
        return device

    def process_queue(self, base: str) -> None:
        with self.lb.queue_lock:
            if self.busy[base] or not self.queues[base]:
                return
            self.busy[base] = True
            job = self.queues[base].pop(0)

        started = time.time()
        tps = self.lb.registry.get_tps(base)
        if base == self.failing_device or tps <= 0:
            # Simulated inference failure: requeue elsewhere and drop the device
            self.lb.mark_offline(base)
            with self.lb.queue_lock:
                self.busy[base] = False
                rescued = self.queues[base] + [job]
                self.queues[base] = []
            for pending in rescued:
                self.submit(pending)
            return

        time.sleep(job.tokens / tps / 10)
        duration_ms = (time.time() - started) * 1000

        self.lb.record_completion(base, duration_ms)
        self.lb.update_average_tokens(job.tokens)
        with self._stats_lock:
            self.completed += 1

        with self.lb.queue_lock:
            self.busy[base] = False
            drained = not self.queues[base]

        if drained:
            self.lb.try_steal_work(base, self.queues, self.process_queue)
        else:
            self.lb.scheduler.dispatch(self.process_queue, base)


def main():
    lb = LoadBalancer(BalancerConfig(tps_per_person=100, rebalance_interval_ms=200), rng=random.Random(7))
    lb.update_device_metrics(DEVICES)

    dispatcher = ClassroomDispatcher(lb, failing_device="http://lab-laptop:11434")
    lb.start_rebalancing(dispatcher.queues, dispatcher.process_queue)

    picker = random.Random(7)
    for i in range(30):
        question = picker.choice(QUESTIONS)
        tokens = lb.analyze_question(question).estimated_tokens
        dispatcher.submit(Job(student=f"student-{i + 1}", question=question, tokens=tokens))
        time.sleep(0.02)

    time.sleep(1.0)
    dispatcher.failing_device = None
    lb.mark_online("http://lab-laptop:11434", 90)

    deadline = time.time() + 10
    while time.time() < deadline and any(dispatcher.queues.values()):
        time.sleep(0.1)
    lb.stop_rebalancing()

    print(f"\nCompleted {dispatcher.completed} requests")
    for base, health in lb.get_queue_health(dispatcher.queues).items():
        print(f"  {base}: {health.to_dict()}")
    for stats in lb.get_rebalance_stats(dispatcher.queues)["devices"]:
        print(f"  {stats.to_dict()}")


if __name__ == "__main__":
    main()
