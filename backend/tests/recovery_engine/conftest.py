"""Shared fixtures for recovery engine tests."""
from unittest.mock import AsyncMock

import pytest

from backend.src.recovery_engine import engine as engine_module
from backend.src.recovery_engine.config import RecoveryConfig
from backend.src.recovery_engine.engine import RecoveryEngine
from backend.src.recovery_engine.strategies import StrategyRegistry


@pytest.fixture
def config():
    return RecoveryConfig(rpc_endpoints=("https://rpc-a.example", "https://rpc-b.example"))


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def engine(config, sleep):
    """Engine with default strategies that never actually waits."""
    registry = StrategyRegistry.with_defaults(config.dependencies(sleep=sleep))
    return RecoveryEngine(registry=registry, config=config)


@pytest.fixture(autouse=True)
def reset_default_engine():
    yield
    engine_module.set_default_engine(None)
