#!/usr/bin/env python3
"""Discrete-time simulation of a classroom workload against each strategy.

Run with:
    python -m benchmarks.simulate --duration 120 --rate 4 --output results.json
"""

import json
import random
import argparse
import numpy as np
from datetime import datetime
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, asdict, field

from tqdm import tqdm

from .workload import SAMPLE_QUESTIONS, DEFAULT_DEVICES, STRATEGIES, create_balancer, load_arc_questions


@dataclass
class Request:
    question: str
    tokens: int
    arrival: float


@dataclass
class SimulationResult:
    strategy: str
    stealing: bool
    completed: int
    rejected: int
    mean_wait_s: float
    p95_wait_s: float
    max_wait_s: float
    steals: int
    share_by_device: Dict[str, float] = field(default_factory=dict)


class SimulationClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def simulate(
    strategy: str,
    stealing: bool,
    questions: List[str],
    devices: List[Dict[str, Any]],
    duration_s: float = 60.0,
    rate: float = 4.0,
    dt: float = 0.05,
    seed: int = 42,
    show_progress: bool = True
) -> SimulationResult:
    clock = SimulationClock()
    lb = create_balancer(strategy, stealing=stealing, seed=seed, clock=clock)
    lb.update_device_metrics(devices)
    rng = np.random.default_rng(seed)
    picker = random.Random(seed)

    bases = [d["base"] for d in devices]
    queues: Dict[str, List[Request]] = {base: [] for base in bases}
    busy: Dict[str, bool] = {base: False for base in bases}
    running: Dict[str, Optional[tuple]] = {base: None for base in bases}
    waits: List[float] = []
    served = {base: 0 for base in bases}
    rejected = 0
    steals = 0
    next_rebalance = lb.config.rebalance_interval_ms / 1000.0

    steps = int(duration_s / dt)
    for _ in tqdm(range(steps), desc=f"{strategy}{'+steal' if stealing else ''}", disable=not show_progress):
        clock.now += dt

        for _ in range(rng.poisson(rate * dt)):
            question = picker.choice(questions)
            estimate = lb.analyze_question(question).estimated_tokens
            tokens = max(1, int(estimate * rng.lognormal(0.0, 0.4)))
            device = lb.select_best_device(queues, busy, question)
            if device is None:
                rejected += 1
                continue
            queues[device].append(Request(question, tokens, clock.now))

        for base in bases:
            current = running[base]
            if current is not None and clock.now >= current[1]:
                request, _, started = current
                lb.record_completion(base, (clock.now - started) * 1000.0)
                lb.update_average_tokens(request.tokens)
                served[base] += 1
                running[base] = None
                busy[base] = False
                if not queues[base] and stealing and lb.try_steal_work(base, queues):
                    steals += 1

            if running[base] is None and queues[base]:
                request = queues[base].pop(0)
                tps = lb.registry.get_tps(base) or 1.0
                running[base] = (request, clock.now + request.tokens / tps, clock.now)
                busy[base] = True
                waits.append(clock.now - request.arrival)

        if stealing and clock.now >= next_rebalance:
            steals += lb.rebalance_queues(queues)
            next_rebalance += lb.config.rebalance_interval_ms / 1000.0

    total = sum(served.values()) or 1
    wait_arr = np.array(waits) if waits else np.zeros(1)
    return SimulationResult(
        strategy=strategy,
        stealing=stealing,
        completed=sum(served.values()),
        rejected=rejected,
        mean_wait_s=float(np.mean(wait_arr)),
        p95_wait_s=float(np.percentile(wait_arr, 95)),
        max_wait_s=float(np.max(wait_arr)),
        steals=steals,
        share_by_device={base: served[base] / total for base in bases}
    )


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--strategy", default="all", choices=["all"] + STRATEGIES)
    parser.add_argument("--duration", type=float, default=60.0)
    parser.add_argument("--rate", type=float, default=4.0, help="Arrivals per second")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--arc", type=int, default=None, help="Use N questions from the ARC dataset")
    parser.add_argument("--output", type=str, default=None)
    args = parser.parse_args()

    if args.arc:
        print("Loading ARC dataset...")
        questions = load_arc_questions(args.arc)
        print(f"Loaded {len(questions)} questions")
    else:
        questions = SAMPLE_QUESTIONS

    strategies = STRATEGIES if args.strategy == "all" else [args.strategy]
    results = []
    for strategy in strategies:
        for stealing in (False, True):
            results.append(simulate(
                strategy, stealing, questions, DEFAULT_DEVICES,
                duration_s=args.duration, rate=args.rate, seed=args.seed
            ))

    print(f"\n{'='*72}")
    print(f"{'strategy':<16}{'steal':<7}{'done':>6}{'rej':>6}{'mean':>9}{'p95':>9}{'max':>9}{'steals':>8}")
    print(f"{'='*72}")
    for r in results:
        print(f"{r.strategy:<16}{'yes' if r.stealing else 'no':<7}{r.completed:>6}{r.rejected:>6}"
              f"{r.mean_wait_s:>8.2f}s{r.p95_wait_s:>8.2f}s{r.max_wait_s:>8.2f}s{r.steals:>8}")

    if args.output:
        output_data = {
            "timestamp": datetime.now().isoformat(),
            "config": {
                "duration": args.duration,
                "rate": args.rate,
                "seed": args.seed,
                "devices": DEFAULT_DEVICES,
                "questions": len(questions),
            },
            "results": [asdict(r) for r in results],
        }
        with open(args.output, 'w') as f:
            json.dump(output_data, f, indent=2)
        print(f"\nResults saved to {args.output}")


if __name__ == "__main__":
    main()
