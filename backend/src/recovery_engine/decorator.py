"""Wrappers that run an operation with automatic recovery between attempts.
"""
import asyncio
import functools
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar, cast

from .callbacks import call_maybe_async
from .classification import error_message
from .engine import RecoveryEngine, get_default_engine
from .exceptions import RecoveryEscalatedError, RecoveryExhaustedError
from .types import Context, ValidationFn, ValidationOutcome

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])

_UNSET = object()


@dataclass
class OperationResult:
    """Outcome of ``with_recovery``."""

    success: bool
    attempts: int
    context: Context
    result: Any = None
    error: Optional[str] = None
    requires_manual_intervention: bool = False
    error_id: Optional[str] = None
    original_error: Optional[BaseException] = field(default=None, repr=False)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "attempts": self.attempts,
            "error": self.error,
            "requires_manual_intervention": self.requires_manual_intervention,
            "error_id": self.error_id,
        }


async def with_recovery(
    operation: Callable[[Context], Any],
    context: Optional[Context] = None,
    validation_fn: Optional[ValidationFn] = None,
    *,
    max_attempts: int = 3,
    engine: Optional[RecoveryEngine] = None,
    correlation_id: Optional[str] = None
) -> OperationResult:
    """Run ``operation(context)``, recovering and retrying on failure.

    Args:
        operation: Sync or async callable taking the context
        context: Initial context; recovered contexts are merged into it
        validation_fn: Re-check used by the engine. Defaults to re-running
            the operation, whose result is then returned directly.
        max_attempts: Maximum number of times the operation is run
        engine: Recovery engine (default: process-wide engine)
        correlation_id: Request identity passed through to the engine

    Returns:
        OperationResult; escalations come back with
        ``requires_manual_intervention`` set instead of raising

    """
    engine = engine or get_default_engine()
    context = dict(context or {})
    last_error: Optional[BaseException] = None
    attempts = 0

    while attempts < max_attempts:
        attempts += 1
        try:
            result = await call_maybe_async(operation, context)
            return OperationResult(success=True, attempts=attempts, context=context, result=result)
        except Exception as e:
            last_error = e
            logger.warning(f"Operation failed (attempt {attempts}/{max_attempts}): {e}")

        if attempts >= max_attempts:
            break

        captured: dict[str, Any] = {"result": _UNSET}
        check = validation_fn or _rerun_operation(operation, captured)

        recovery = await engine.recover(last_error, context, check, correlation_id=correlation_id)

        if recovery.recovered:
            logger.info(f"Recovered with: {recovery.strategy}")
            context.update(recovery.context)
            if captured["result"] is not _UNSET:
                return OperationResult(
                    success=True, attempts=attempts, context=context, result=captured["result"]
                )
            continue

        logger.error(f"Recovery failed for operation (ID: {recovery.error_id})")
        return OperationResult(
            success=False,
            attempts=attempts,
            context=context,
            error=error_message(last_error),
            requires_manual_intervention=recovery.requires_manual_intervention,
            error_id=recovery.error_id,
            original_error=last_error
        )

    logger.error(f"All {max_attempts} attempts exhausted")
    return OperationResult(
        success=False,
        attempts=attempts,
        context=context,
        error=error_message(last_error) if last_error else "Max attempts exceeded",
        original_error=last_error
    )


def _rerun_operation(operation: Callable[[Context], Any], captured: dict[str, Any]) -> ValidationFn:
    async def check(ctx: Context) -> ValidationOutcome:
        try:
            captured["result"] = await call_maybe_async(operation, ctx)
        except Exception as e:
            return ValidationOutcome(success=False, error=e)
        return ValidationOutcome(success=True, context=ctx)
    return check


def recoverable(
    max_attempts: int = 3,
    engine: Optional[RecoveryEngine] = None,
    validation_fn: Optional[ValidationFn] = None
) -> Callable[[F], F]:
    """Decorator to add recovery to functions whose first argument is a context.

    Args:
        max_attempts: Maximum number of runs of the function (default: 3)
        engine: Recovery engine (default: process-wide engine)
        validation_fn: Custom re-check (default: re-run the function)

    Returns:
        Decorated function. It returns the function's result, or raises
        ``RecoveryEscalatedError`` when the engine escalates and
        ``RecoveryExhaustedError`` when the run budget is spent.

    """
    def decorator(func: F) -> F:
        func_name = f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        async def async_wrapper(context: Optional[Context] = None, *args: Any, **kwargs: Any) -> Any:
            outcome = await with_recovery(
                lambda ctx: func(ctx, *args, **kwargs),
                context,
                validation_fn,
                max_attempts=max_attempts,
                engine=engine
            )
            if outcome.success:
                return outcome.result
            if outcome.requires_manual_intervention:
                raise RecoveryEscalatedError(
                    f"Manual intervention required for {func_name}: {outcome.error}",
                    error_id=outcome.error_id or "",
                    attempts=outcome.attempts,
                    original_error=outcome.original_error
                )
            raise RecoveryExhaustedError(
                f"Recovery exhausted for {func_name} after {outcome.attempts} attempts",
                attempts=outcome.attempts,
                original_error=outcome.original_error
            )

        @functools.wraps(func)
        def sync_wrapper(context: Optional[Context] = None, *args: Any, **kwargs: Any) -> Any:
            return asyncio.run(async_wrapper(context, *args, **kwargs))

        if inspect.iscoroutinefunction(func):
            return cast(F, async_wrapper)
        return cast(F, sync_wrapper)

    return decorator
