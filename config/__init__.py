"""Configuration module for the load balancer."""

from .loader import BalancerConfig, ConfigError, ConfigLoader, load_config

__all__ = ['BalancerConfig', 'ConfigError', 'ConfigLoader', 'load_config']
