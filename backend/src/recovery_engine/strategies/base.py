"""
Base types for remediation strategies.
"""
import asyncio
import logging
import traceback
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Optional

from eth_utils import to_checksum_address

from ..callbacks import call_maybe_async
from ..types import Context, StrategyOutcome

logger = logging.getLogger(__name__)


def normalize_address(address: str, chain_type: Optional[str]) -> str:
    """Default address normalizer: EIP-55 checksum for ethereum addresses."""
    if chain_type == "ethereum":
        return to_checksum_address(address)
    return address


def sanitize_input(value: Any) -> Any:
    """Trim strings and drop angle brackets; other values pass through."""
    if isinstance(value, str):
        return value.strip().replace("<", "").replace(">", "")
    return value


@dataclass(frozen=True)
class StrategyDependencies:
    """Collaborators injected into every strategy action."""

    rpc_endpoints: tuple[str, ...] = ()
    default_timeout_ms: int = 5000
    backoff_base_ms: int = 1000
    backoff_cap_ms: int = 10000
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    address_normalizer: Callable[[str, Optional[str]], str] = normalize_address
    input_sanitizer: Callable[[Any], Any] = sanitize_input
    reconnect_database: Optional[Callable[[Context], Awaitable[None]]] = None
    repair_schema: Optional[Callable[[Context], Awaitable[None]]] = None


StrategyAction = Callable[[BaseException, Context, StrategyDependencies], Awaitable[StrategyOutcome]]


@dataclass(frozen=True)
class Strategy:
    """A named, priority-ordered remediation action.

    ``action`` is called as ``action(error, context, dependencies)`` and must
    return a ``StrategyOutcome`` (or an equivalent mapping).
    """

    name: str
    priority: int
    action: StrategyAction

    async def apply(
        self,
        error: BaseException,
        context: Context,
        dependencies: StrategyDependencies
    ) -> StrategyOutcome:
        """Run the action. Exceptions are reported as a failed outcome."""
        try:
            result = await call_maybe_async(self.action, error, context, dependencies)
        except Exception as e:
            logger.error(f"Strategy '{self.name}' raised {type(e).__name__}: {e}")
            logger.debug(f"Traceback: {traceback.format_exc()}")
            return StrategyOutcome(
                success=False,
                action=f"Strategy raised {type(e).__name__}: {e}",
                new_context=None
            )

        if isinstance(result, StrategyOutcome):
            return result
        if isinstance(result, Mapping):
            new_context = result.get("new_context", result.get("newContext"))
            return StrategyOutcome(
                success=bool(result.get("success", False)),
                action=str(result.get("action", "")),
                new_context=dict(new_context) if new_context is not None else None
            )

        logger.error(f"Strategy '{self.name}' returned unsupported {type(result).__name__}")
        return StrategyOutcome(
            success=False,
            action=f"Strategy returned unsupported {type(result).__name__}",
            new_context=None
        )
