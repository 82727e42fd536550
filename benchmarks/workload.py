import random
from typing import Dict, List, Optional, Callable

from balancer import LoadBalancer
from config import BalancerConfig

SAMPLE_QUESTIONS = [
    "Is water wet?",
    "Can penguins fly?",
    "True or false: the sun is a star",
    "What is 12 * 7",
    "Solve the equation x + 3 = 10",
    "Compute the sum of 15 and 27",
    "Define entropy",
    "Name the largest planet",
    "Who was Ada Lovelace",
    "Explain why the sky is blue",
    "Describe the water cycle in detail",
    "Compare renewable and fossil energy sources",
    "Tell me about the French revolution",
    "Analyze the causes of the first world war",
    "Photosynthesis in plants",
    "The history of the printing press",
]

DEFAULT_DEVICES = [
    {"base": "http://device1:11434", "tps": 400},
    {"base": "http://device2:11434", "tps": 300},
    {"base": "http://device3:11434", "tps": 200},
    {"base": "http://device4:11434", "tps": 100},
    {"base": "http://device5:11434", "tps": 50},
]

STRATEGIES = ["power-of-two", "greedy", "complexity"]


def load_arc_questions(max_samples: Optional[int] = None) -> List[str]:
    # Optional dependency, only needed for ARC-sourced workloads
    from datasets import load_dataset

    arc_easy = load_dataset("ai2_arc", "ARC-Easy", split="validation")
    arc_challenge = load_dataset("ai2_arc", "ARC-Challenge", split="validation")

    questions = [item["question"] for item in arc_easy]
    questions += [item["question"] for item in arc_challenge]

    if max_samples:
        random.shuffle(questions)
        questions = questions[:max_samples]
    return questions


def create_balancer(
    strategy: str = "power-of-two",
    stealing: bool = True,
    seed: int = 42,
    clock: Optional[Callable[[], float]] = None,
    **overrides
) -> LoadBalancer:
    if strategy == "power-of-two":
        modes = {"use_power_of_two": True, "use_greedy": False}
    elif strategy == "greedy":
        modes = {"use_power_of_two": False, "use_greedy": True}
    elif strategy == "complexity":
        modes = {"use_power_of_two": False, "use_greedy": False}
    else:
        raise ValueError(f"Unknown strategy: {strategy}")

    config = BalancerConfig(rebalance_enabled=stealing, **modes, **overrides)
    kwargs: Dict = {"rng": random.Random(seed), "dispatch": lambda fn, base: None}
    if clock is not None:
        kwargs["clock"] = clock
    return LoadBalancer(config, **kwargs)
