"""
Remediation strategies and their registry.
"""
from .backoff import ExponentialBackoff
from .base import Strategy, StrategyAction, StrategyDependencies, normalize_address, sanitize_input
from .builtin import DEFAULT_STRATEGIES
from .registry import StrategyRegistry


__all__ = [
    'Strategy',
    'StrategyAction',
    'StrategyDependencies',
    'StrategyRegistry',
    'ExponentialBackoff',
    'DEFAULT_STRATEGIES',
    'normalize_address',
    'sanitize_input'
]
