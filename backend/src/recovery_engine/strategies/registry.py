"""Per-category registry of priority-ordered remediation strategies."""
import logging
from collections.abc import Iterable
from typing import Optional

from ..exceptions import StrategyRegistrationError
from ..types import FailureCategory
from .base import Strategy, StrategyDependencies
from .builtin import DEFAULT_STRATEGIES

logger = logging.getLogger(__name__)


class StrategyRegistry:
    """Maps failure categories to ordered strategy lists."""

    def __init__(self, dependencies: Optional[StrategyDependencies] = None):
        self._dependencies = dependencies or StrategyDependencies()
        self._strategies: dict[FailureCategory, tuple[Strategy, ...]] = {}

    @classmethod
    def with_defaults(cls, dependencies: Optional[StrategyDependencies] = None) -> 'StrategyRegistry':
        """Create a registry pre-loaded with the built-in strategies."""
        registry = cls(dependencies)
        for category, strategies in DEFAULT_STRATEGIES.items():
            registry.register(category, strategies)
        return registry

    @property
    def dependencies(self) -> StrategyDependencies:
        return self._dependencies

    def register(self, category: FailureCategory, strategies: Iterable[Strategy]) -> None:
        """Register strategies for a category, replacing any existing list.

        Strategies are stored sorted by ascending priority; ties keep their
        given order.
        """
        if not isinstance(category, FailureCategory):
            raise StrategyRegistrationError(f"Unknown failure category: {category!r}")

        strategies = list(strategies)
        for strategy in strategies:
            if not isinstance(strategy, Strategy):
                raise StrategyRegistrationError(
                    f"Expected Strategy for {category.value}, got {type(strategy).__name__}"
                )
            if not callable(strategy.action):
                raise StrategyRegistrationError(f"Strategy '{strategy.name}' has no callable action")

        self._strategies[category] = tuple(sorted(strategies, key=lambda s: s.priority))
        logger.debug(
            f"Registered {len(strategies)} strategies for {category.value}: "
            f"{[s.name for s in self._strategies[category]]}"
        )

    def strategies_for(self, category: FailureCategory) -> list[Strategy]:
        """Ordered strategies for a category, falling back to GENERIC_ERROR."""
        strategies = self._strategies.get(category)
        if not strategies:
            strategies = self._strategies.get(FailureCategory.GENERIC_ERROR, ())
        return list(strategies)

    def categories(self) -> list[FailureCategory]:
        return list(self._strategies)
