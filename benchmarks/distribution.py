#!/usr/bin/env python3
"""Power of Two Choices distribution check.

With equal queue loads the selections should spread across all devices;
with unequal loads the idle device should win most often and a device at
capacity should never be picked.

Run with:
    python -m benchmarks.distribution --selections 200
"""

import argparse
from typing import Dict, List

import numpy as np

from .workload import DEFAULT_DEVICES, create_balancer


def run_selections(lb, queues: Dict[str, List], selections: int, tokens: int = 50) -> Dict[str, int]:
    counts = {base: 0 for base in queues}
    busy = {base: False for base in queues}
    analysis = lb.analyze_question("Tell me about the history of computing")
    for _ in range(selections):
        selected = lb.selector.power_of_two.select(queues, busy, analysis)
        if selected is not None:
            counts[selected] += 1
    return counts


def print_distribution(title: str, counts: Dict[str, int], queues: Dict[str, List], selections: int):
    print(f"\n{title}\n")
    for base, count in sorted(counts.items(), key=lambda x: -x[1]):
        bar = "#" * (count * 40 // max(selections, 1))
        print(f"  {base:<24} {bar:<40} {count}/{selections} "
              f"({count / selections:.1%}) - queue: {len(queues[base])}")

    values = np.array(list(counts.values()), dtype=float)
    cv = values.std() / values.mean() if values.mean() else 0.0
    print(f"\n  Coefficient of variation: {cv:.2f}")


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--selections", type=int, default=100)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--weighted", action="store_true")
    args = parser.parse_args()

    lb = create_balancer("power-of-two", stealing=False, seed=args.seed, weighted_sampling=args.weighted)
    lb.update_device_metrics(DEFAULT_DEVICES)
    bases = [d["base"] for d in DEFAULT_DEVICES]

    print("=" * 80)
    print("Power of Two Choices: Distribution Test")
    print("=" * 80)

    equal = {base: ["q"] for base in bases}
    counts = run_selections(lb, equal, args.selections)
    print_distribution("Equal loads (1 item each)", counts, equal, args.selections)

    # Fastest device at capacity, slowest idle
    unequal = {base: ["q"] for base in bases}
    unequal[bases[0]] = ["q"] * lb.registry.get_capacity(bases[0])
    unequal[bases[-1]] = []
    counts = run_selections(lb, unequal, args.selections)
    print_distribution("Unequal loads (fastest at capacity, slowest idle)", counts, unequal, args.selections)

    if counts[bases[0]]:
        print(f"\n  WARNING: at-capacity device {bases[0]} was selected {counts[bases[0]]} times")


if __name__ == "__main__":
    main()
