"""YAML configuration loader for the load balancer."""

import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import load_dotenv

ENV_PREFIX = "BALANCER_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(Exception):
    """Invalid load balancer configuration."""
    pass


@dataclass
class BalancerConfig:
    """Tunables for routing, estimation and work stealing."""

    # Capacity and routing
    tps_per_person: float = 100.0
    use_greedy: bool = True
    use_power_of_two: bool = True
    weighted_sampling: bool = False
    weight_exponent: float = 1.5

    # Estimation
    avg_tokens_per_request: float = 50.0
    token_smoothing: float = 0.3
    tps_smoothing: float = 0.3
    cache_max_size: int = 1000

    # Work stealing
    rebalance_enabled: bool = True
    rebalance_interval_ms: float = 500.0
    min_steal_threshold: int = 1
    pre_warming: bool = False
    pre_warm_threshold: float = 2.0
    velocity_window_s: float = 5.0

    # Completion tracking
    completion_window: int = 10
    history_max_entries: int = 1000
    profile_min_samples: int = 10

    # Batching and concurrency
    batching_enabled: bool = False
    batch_window_ms: float = 50.0
    min_batch_size: int = 2
    max_batch_size: int = 4
    batch_min_tps: float = 200.0
    dynamic_concurrency: bool = True
    target_latency_ms: float = 3000.0

    verbose: bool = False
    devices: List[Dict[str, Any]] = field(default_factory=list)

    def validate(self) -> "BalancerConfig":
        if self.tps_per_person <= 0:
            raise ConfigError(f"tps_per_person must be positive, got {self.tps_per_person}")
        for name in ("token_smoothing", "tps_smoothing"):
            value = getattr(self, name)
            if not 0 < value <= 1:
                raise ConfigError(f"{name} must be in (0, 1], got {value}")
        if self.cache_max_size < 1:
            raise ConfigError(f"cache_max_size must be at least 1, got {self.cache_max_size}")
        if self.rebalance_interval_ms <= 0:
            raise ConfigError(f"rebalance_interval_ms must be positive, got {self.rebalance_interval_ms}")
        if self.min_steal_threshold < 1:
            raise ConfigError(f"min_steal_threshold must be at least 1, got {self.min_steal_threshold}")
        if self.completion_window < 2:
            raise ConfigError(f"completion_window must be at least 2, got {self.completion_window}")
        if self.min_batch_size < 1 or self.max_batch_size < self.min_batch_size:
            raise ConfigError(f"Batch sizes need 1 <= min <= max, got "
                              f"{self.min_batch_size}..{self.max_batch_size}")
        if self.target_latency_ms <= 0:
            raise ConfigError(f"target_latency_ms must be positive, got {self.target_latency_ms}")
        for device in self.devices:
            if 'base' not in device or 'tps' not in device:
                raise ConfigError(f"Device entries need 'base' and 'tps': {device}")
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BalancerConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown balancer settings: {', '.join(sorted(unknown))}")
        return cls(**dict(data))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _coerce(raw: str, target: type, name: str) -> Any:
    if target is bool:
        value = raw.strip().lower()
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
        raise ConfigError(f"{ENV_PREFIX}{name.upper()} is not a boolean: {raw!r}")
    try:
        return target(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name.upper()} is not a valid {target.__name__}: {raw!r}") from e


class ConfigLoader:
    """Loads a BalancerConfig from YAML with environment overrides.

    File layout:
        balancer:
          tps_per_person: 100
          use_power_of_two: true
        devices:
          - {base: "http://gpu-1:11434", tps: 400}

    Any scalar setting can be overridden with BALANCER_<SETTING>, read
    from the process environment or a .env file.
    """

    def __init__(self, config_path: Optional[str] = None, use_env: bool = True):
        if config_path:
            self.config_path = Path(config_path)
        else:
            self.config_path = Path(__file__).parent / "balancer.yaml"
        self.use_env = use_env
        self._config: Dict[str, Any] = {}

    def load(self) -> BalancerConfig:
        if self.config_path.exists():
            with open(self.config_path, 'r') as f:
                self._config = yaml.safe_load(f) or {}
        else:
            print(f"[config] No config file at {self.config_path}, using defaults")
            self._config = {}

        if not isinstance(self._config, dict):
            raise ConfigError(f"Expected a mapping at the top of {self.config_path}")

        settings = dict(self._config.get('balancer') or {})
        devices = self._config.get('devices')
        if devices:
            settings['devices'] = list(devices)

        if self.use_env:
            load_dotenv()
            settings.update(self._env_overrides())

        config = BalancerConfig.from_dict(settings).validate()
        if config.devices:
            print(f"[config] Loaded {len(config.devices)} devices from {self.config_path.name}")
        return config

    def _env_overrides(self) -> Dict[str, Any]:
        overrides = {}
        for f in fields(BalancerConfig):
            if f.name == 'devices':
                continue
            raw = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is not None:
                overrides[f.name] = _coerce(raw, f.type, f.name)
        return overrides


def load_config(config_path: Optional[str] = None, use_env: bool = True) -> BalancerConfig:
    return ConfigLoader(config_path, use_env=use_env).load()
