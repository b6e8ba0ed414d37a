"""
Validation chain: ordered checks over a shared context.

Each step runs in insertion order. A passing step advances the chain on its
own; a failing step is handed to the recovery engine (or the step's custom
recovery) and re-checked with its own ``validate``. Required steps that cannot
be recovered halt the chain, optional ones are recorded and skipped.
"""
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional

from .callbacks import call_maybe_async
from .classification import error_message
from .engine import RecoveryEngine, get_default_engine
from .exceptions import ValidationChainError, ValidationStepError
from .types import Context, RecoveryResult, ValidationOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationStep:
    """A named check in a validation chain."""

    name: str
    validate: Callable[[Context], Any]
    required: bool = True
    on_success: Optional[Callable[[Context], Any]] = None
    on_failure: Optional[Callable[[Context, BaseException], Any]] = None
    custom_recovery: Optional[Callable[[BaseException, Context], Any]] = None


@dataclass
class StepResult:
    """Outcome of one step of a chain run."""

    name: str
    success: bool
    recovered: bool = False
    attempts: int = 1
    error: Optional[str] = None
    requires_manual_intervention: bool = False
    context: Context = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "success": self.success,
            "recovered": self.recovered,
            "attempts": self.attempts,
            "error": self.error,
            "requires_manual_intervention": self.requires_manual_intervention,
        }


@dataclass
class ChainResult:
    """Outcome of a full chain run."""

    success: bool
    chain_name: str
    total_steps: int
    completed_steps: int
    results: list[StepResult]
    final_context: Context

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "chain_name": self.chain_name,
            "total_steps": self.total_steps,
            "completed_steps": self.completed_steps,
            "results": [result.to_dict() for result in self.results],
            "final_context": self.final_context,
        }


class _StepRecovery(NamedTuple):
    recovered: bool
    attempts: int
    context: Optional[Context]
    requires_manual_intervention: bool


class ValidationChain:
    """Runs validation steps in order with automatic recovery and advancement.

    A chain only holds its step definitions; the running context and step
    results belong to a single ``execute`` call, so one chain can serve
    concurrent runs.
    """

    def __init__(self, name: str = "Default Chain", engine: Optional[RecoveryEngine] = None):
        self.name = name
        self._engine = engine
        self._steps: list[ValidationStep] = []

    @property
    def engine(self) -> RecoveryEngine:
        return self._engine or get_default_engine()

    @property
    def steps(self) -> tuple[ValidationStep, ...]:
        return tuple(self._steps)

    def add_validation(self, step: Optional[ValidationStep | Mapping[str, Any]] = None, **fields: Any) -> 'ValidationChain':
        """Append a step; returns the chain so calls can be chained.

        Accepts a ``ValidationStep``, a mapping of its fields, or the fields as
        keyword arguments.
        """
        if step is not None and fields:
            raise ValidationChainError("Pass either a ValidationStep or its fields, not both")
        if step is None:
            step = fields
        if not isinstance(step, ValidationStep):
            if not isinstance(step, Mapping):
                raise ValidationChainError(f"Unsupported validation step: {type(step).__name__}")
            if not step.get("name"):
                raise ValidationChainError("Validation must have a name")
            if not callable(step.get("validate")):
                raise ValidationChainError("Validation must have a validate function")
            try:
                step = ValidationStep(**step)
            except TypeError as e:
                raise ValidationChainError(f"Invalid validation step: {e}") from e

        if not step.name:
            raise ValidationChainError("Validation must have a name")
        if not callable(step.validate):
            raise ValidationChainError("Validation must have a validate function")

        self._steps.append(step)
        return self

    async def execute(self, initial_context: Optional[Context] = None) -> ChainResult:
        """Run every step in insertion order and report the outcome."""
        steps = tuple(self._steps)
        context: Context = dict(initial_context or {})
        results: list[StepResult] = []
        total = len(steps)

        logger.info(f"Starting validation chain '{self.name}' ({total} validations)")

        for index, step in enumerate(steps):
            logger.info(f"Validation {index + 1}/{total}: {step.name}")

            try:
                result = await self._execute_step(step, context)
            except Exception as e:
                logger.error(f"Unexpected error in validation '{step.name}': {e}")
                result = StepResult(
                    name=step.name,
                    success=False,
                    error=error_message(e),
                    context=dict(context)
                )

            results.append(result)
            context = dict(result.context)

            if result.success:
                logger.info(f"Validation passed: {step.name}" + (" (recovered)" if result.recovered else ""))
                continue

            if step.required:
                logger.warning(f"Required validation '{step.name}' failed, stopping chain")
                return self._build_result(False, index, total, results, context)

            logger.warning(f"Optional validation '{step.name}' failed, continuing chain")

        return self._build_result(True, total, total, results, context)

    async def _execute_step(self, step: ValidationStep, context: Context) -> StepResult:
        error: Optional[BaseException] = None
        try:
            outcome = ValidationOutcome.coerce(await call_maybe_async(step.validate, context))
        except Exception as e:
            logger.warning(f"Validation '{step.name}' raised {type(e).__name__}: {e}")
            outcome = None
            error = e

        if outcome is not None:
            if outcome.success:
                context = _merge(context, outcome.context)
                if step.on_success is not None:
                    await call_maybe_async(step.on_success, context)
                return StepResult(name=step.name, success=True, context=dict(context))
            error = outcome.error

        if error is None:
            error = ValidationStepError("Validation failed")

        logger.info(f"Validation '{step.name}' failed, attempting recovery")
        recovery = await self._recover(step, error, context)

        if recovery.recovered:
            context = _merge(context, recovery.context)
            if step.on_success is not None:
                await call_maybe_async(step.on_success, context)
            return StepResult(
                name=step.name,
                success=True,
                recovered=True,
                attempts=recovery.attempts,
                context=dict(context)
            )

        if step.on_failure is not None:
            await call_maybe_async(step.on_failure, context, error)

        return StepResult(
            name=step.name,
            success=False,
            attempts=recovery.attempts,
            error=error_message(error),
            requires_manual_intervention=recovery.requires_manual_intervention,
            context=dict(context)
        )

    async def _recover(self, step: ValidationStep, error: BaseException, context: Context) -> _StepRecovery:
        if step.custom_recovery is None:
            result = await self.engine.recover(error, context, validation_fn=step.validate)
            return self._normalize_recovery(result)

        try:
            raw = await call_maybe_async(step.custom_recovery, error, context)
            return self._normalize_recovery(raw)
        except Exception as e:
            logger.error(f"Custom recovery for '{step.name}' failed: {type(e).__name__}: {e}")
            return _StepRecovery(False, 1, None, False)

    @staticmethod
    def _normalize_recovery(raw: Any) -> _StepRecovery:
        if isinstance(raw, RecoveryResult):
            return _StepRecovery(raw.recovered, raw.attempts, raw.context, raw.requires_manual_intervention)
        if isinstance(raw, ValidationOutcome):
            return _StepRecovery(raw.success, 1, raw.context, False)
        if isinstance(raw, Mapping):
            recovered = raw.get("recovered", raw.get("success", False))
            manual = raw.get("requires_manual_intervention", raw.get("requiresManualIntervention", False))
            context = raw.get("context")
            return _StepRecovery(
                bool(recovered),
                int(raw.get("attempts", 1)),
                dict(context) if context is not None else None,
                bool(manual)
            )
        raise TypeError(f"Custom recovery returned unsupported {type(raw).__name__}")

    def _build_result(
        self,
        success: bool,
        completed_steps: int,
        total_steps: int,
        results: list[StepResult],
        context: Context
    ) -> ChainResult:
        logger.info(
            f"Chain '{self.name}' {'succeeded' if success else 'failed'}: "
            f"{completed_steps}/{total_steps} validations completed"
        )
        return ChainResult(
            success=success,
            chain_name=self.name,
            total_steps=total_steps,
            completed_steps=completed_steps,
            results=results,
            final_context=dict(context)
        )


def _merge(context: Context, update: Optional[Context]) -> Context:
    if update:
        return {**context, **update}
    return context


def create_chain(name: str, engine: Optional[RecoveryEngine] = None) -> ValidationChain:
    """Create an empty validation chain."""
    return ValidationChain(name, engine=engine)
