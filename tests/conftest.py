import random

import pytest

from balancer import LoadBalancer
from config import BalancerConfig
from core import DeviceRegistry
from selector import CompletionTimeEstimator

FAST = "http://device1:11434"
MID = "http://device2:11434"
SLOW = "http://device3:11434"

THREE_DEVICES = [
    {"base": FAST, "tps": 400},
    {"base": MID, "tps": 200},
    {"base": SLOW, "tps": 100},
]


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SyncDispatch:
    """Runs process_queue_fn immediately and remembers the targets."""

    def __init__(self):
        self.calls = []

    def __call__(self, fn, base):
        self.calls.append(base)
        fn(base)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def dispatch():
    return SyncDispatch()


@pytest.fixture
def registry():
    reg = DeviceRegistry(tps_per_person=100)
    reg.update_device_metrics(THREE_DEVICES)
    return reg


@pytest.fixture
def estimator(registry):
    return CompletionTimeEstimator(registry)


@pytest.fixture
def make_balancer(clock, dispatch):
    def _make(devices=THREE_DEVICES, seed=0, **settings):
        lb = LoadBalancer(
            BalancerConfig(**settings),
            rng=random.Random(seed),
            clock=clock,
            dispatch=dispatch
        )
        if devices:
            lb.update_device_metrics(devices)
        return lb
    return _make


@pytest.fixture
def lb(make_balancer):
    return make_balancer()


def empty_queues(*bases):
    return {base: [] for base in (bases or (FAST, MID, SLOW))}


def idle(*bases):
    return {base: False for base in (bases or (FAST, MID, SLOW))}
