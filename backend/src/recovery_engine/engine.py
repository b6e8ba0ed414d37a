"""Recovery engine: classify, remediate, re-validate, escalate."""
import json
import logging
import traceback
from typing import Optional

from .attempts import AttemptTracker
from .callbacks import call_maybe_async
from .classification import TaggedErrorClassifier, error_message
from .config import RecoveryConfig
from .recovery_log import RecoveryLog, RecoveryLogEntry
from .strategies import StrategyRegistry
from .types import (
    Context,
    ErrorClassifierProtocol,
    EscalationPersistence,
    EscalationRecord,
    FailureCategory,
    RecoveryPhase,
    RecoveryResult,
    ValidationFn,
    ValidationOutcome,
)

logger = logging.getLogger(__name__)


class RecoveryEngine:
    """Drives the classify -> select -> apply -> validate loop for one failure.

    Attempt counters live in an ``AttemptTracker`` keyed by error ID. The
    engine's own tracker is shared by every call; pass ``tracker=`` to
    ``recover`` to scope counters to a caller, or ``correlation_id=`` to keep
    unrelated callers with identical failures on separate identities.
    """

    def __init__(
        self,
        registry: Optional[StrategyRegistry] = None,
        classifier: Optional[ErrorClassifierProtocol] = None,
        config: Optional[RecoveryConfig] = None,
        log: Optional[RecoveryLog] = None,
        tracker: Optional[AttemptTracker] = None,
        persistence: Optional[EscalationPersistence] = None
    ):
        self.config = config or RecoveryConfig()
        self.registry = registry or StrategyRegistry.with_defaults(self.config.dependencies())
        self.classifier = classifier or TaggedErrorClassifier()
        self.log = log or RecoveryLog(self.config.log_capacity)
        self.tracker = tracker or AttemptTracker()
        self.persistence = persistence

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts

    def classify_error(self, error: BaseException) -> FailureCategory:
        """Classify an error; a misbehaving classifier yields GENERIC_ERROR."""
        try:
            return self.classifier.classify(error)
        except Exception as e:
            logger.error(f"Classifier failed on {type(error).__name__}: {e}")
            return FailureCategory.GENERIC_ERROR

    def generate_error_id(
        self,
        error: BaseException,
        context: Optional[Context],
        correlation_id: Optional[str] = None
    ) -> str:
        """Deterministic identity from the error message and a context snapshot."""
        try:
            context_str = json.dumps(context if context is not None else {}, default=str)
        except (TypeError, ValueError):
            context_str = repr(context)
        error_id = f"{error_message(error)}_{context_str}"
        if correlation_id:
            error_id = f"{correlation_id}:{error_id}"
        return error_id[:self.config.error_id_length]

    async def recover(
        self,
        error: BaseException,
        context: Optional[Context] = None,
        validation_fn: Optional[ValidationFn] = None,
        *,
        correlation_id: Optional[str] = None,
        tracker: Optional[AttemptTracker] = None
    ) -> RecoveryResult:
        """Try to remediate ``error``; never raises for a failed recovery.

        Args:
            error: The failure to recover from
            context: State the strategies act on; not mutated in place
            validation_fn: Async re-check of the original operation
            correlation_id: Request identity folded into the error ID
            tracker: Caller-owned attempt counters (defaults to the engine's)

        Returns:
            RecoveryResult; ``requires_manual_intervention`` is set when all
            attempts were used up

        """
        context = dict(context or {})
        tracker = tracker or self.tracker
        error_id = self.generate_error_id(error, context, correlation_id)

        logger.info(f"Recovery initiated for {type(error).__name__} (ID: {error_id})")

        async with tracker.guard(error_id):
            return await self._run(error, context, validation_fn, error_id, tracker, correlation_id)

    async def _run(
        self,
        error: BaseException,
        context: Context,
        validation_fn: Optional[ValidationFn],
        error_id: str,
        tracker: AttemptTracker,
        correlation_id: Optional[str]
    ) -> RecoveryResult:
        current_error = error
        current_context = context
        category = FailureCategory.GENERIC_ERROR

        for _ in range(self.max_attempts + 1):
            self._phase(RecoveryPhase.CLASSIFYING, error_id)
            category = self.classify_error(current_error)

            self._phase(RecoveryPhase.SELECTING_STRATEGY, error_id)
            attempts = tracker.get(error_id)
            if attempts >= self.max_attempts:
                return await self._escalate(
                    current_error, error_id, category, current_context, tracker, correlation_id
                )

            strategies = self.registry.strategies_for(category)
            if not strategies:
                logger.warning(f"No strategies registered for {category.value}")
                return await self._escalate(
                    current_error, error_id, category, current_context, tracker, correlation_id
                )

            strategy = strategies[min(attempts, len(strategies) - 1)]
            logger.info(f"Applying strategy #{attempts + 1} for {category.value}: {strategy.name}")

            self._phase(RecoveryPhase.APPLYING, error_id)
            outcome = await strategy.apply(current_error, current_context, self.registry.dependencies)
            self.log.append(RecoveryLogEntry(
                error_id=error_id,
                category=category,
                strategy=strategy.name,
                success=outcome.success,
                action=outcome.action
            ))

            if not outcome.success:
                logger.warning(f"Strategy failed: {strategy.name} ({outcome.action})")
                tracker.increment(error_id)
                if outcome.new_context is not None:
                    current_context = outcome.new_context
                continue

            new_context = outcome.new_context if outcome.new_context is not None else current_context

            if validation_fn is None:
                logger.info(f"Recovery strategy applied: {strategy.name}")
                return self._recovered(strategy.name, attempts, new_context, error_id, category, tracker)

            self._phase(RecoveryPhase.VALIDATING, error_id)
            try:
                validation = ValidationOutcome.coerce(await call_maybe_async(validation_fn, new_context))
            except Exception as e:
                logger.warning(f"Validation raised after {strategy.name}: {e}")
                logger.debug(f"Traceback: {traceback.format_exc()}")
                tracker.increment(error_id)
                current_error = e
                current_context = new_context
                continue

            if validation.success:
                logger.info(f"Recovery successful with {strategy.name}, validation passed")
                if validation.context:
                    new_context = {**new_context, **validation.context}
                return self._recovered(
                    strategy.name, attempts, new_context, error_id, category, tracker, validation
                )

            logger.warning(f"Validation failed after {strategy.name}, trying next strategy")
            tracker.increment(error_id)
            current_context = new_context

        # Reachable when the counter was cleared mid-loop, e.g. by a nested recovery of the same error.
        return await self._escalate(current_error, error_id, category, current_context, tracker, correlation_id)

    def _recovered(
        self,
        strategy_name: str,
        attempts: int,
        context: Context,
        error_id: str,
        category: FailureCategory,
        tracker: AttemptTracker,
        validation: Optional[ValidationOutcome] = None
    ) -> RecoveryResult:
        tracker.clear(error_id)
        self._phase(RecoveryPhase.RECOVERED, error_id)
        return RecoveryResult(
            recovered=True,
            strategy=strategy_name,
            attempts=attempts + 1,
            context=context,
            error_id=error_id,
            category=category,
            validation_result=validation
        )

    async def _escalate(
        self,
        error: BaseException,
        error_id: str,
        category: FailureCategory,
        context: Context,
        tracker: AttemptTracker,
        correlation_id: Optional[str]
    ) -> RecoveryResult:
        attempts = tracker.clear(error_id)
        self._phase(RecoveryPhase.ESCALATED, error_id)
        logger.error(
            f"MANUAL INTERVENTION REQUIRED for {category.value} (ID: {error_id}) "
            f"after {attempts} attempts: {error_message(error)}"
        )

        result = RecoveryResult(
            recovered=False,
            attempts=attempts,
            context=context,
            error_id=error_id,
            category=category,
            requires_manual_intervention=True,
            error=error_message(error)
        )

        if self.persistence is not None:
            record = EscalationRecord(
                error_id=error_id,
                category=category,
                error=error_message(error),
                attempts=attempts,
                context=context,
                correlation_id=correlation_id
            )
            try:
                await self.persistence.save(record)
            except Exception as e:
                logger.error(f"Failed to persist escalation {error_id}: {e}")

        return result

    def _phase(self, phase: RecoveryPhase, error_id: str) -> None:
        logger.debug(f"[{error_id}] -> {phase.value}")

    def get_recovery_log(self) -> list[RecoveryLogEntry]:
        """Oldest-first strategy applications, at most ``log_capacity`` entries."""
        return self.log.entries()

    def clear_recovery_log(self) -> None:
        """Clear the log and every in-flight attempt counter."""
        self.log.clear()
        self.tracker.reset()


_default_engine: Optional[RecoveryEngine] = None


def get_default_engine() -> RecoveryEngine:
    """Process-wide engine, configured from the environment on first use."""
    global _default_engine
    if _default_engine is None:
        config = RecoveryConfig.from_env()
        persistence = None
        if config.persistence_url:
            from .persistence import SQLAlchemyPersistence
            persistence = SQLAlchemyPersistence(config.persistence_url)
        _default_engine = RecoveryEngine(config=config, persistence=persistence)
    return _default_engine


def set_default_engine(engine: Optional[RecoveryEngine]) -> None:
    """Replace the process-wide engine; ``None`` recreates it lazily."""
    global _default_engine
    _default_engine = engine


async def recover(
    error: BaseException,
    context: Optional[Context] = None,
    validation_fn: Optional[ValidationFn] = None,
    **kwargs
) -> RecoveryResult:
    return await get_default_engine().recover(error, context, validation_fn, **kwargs)


def get_recovery_log() -> list[RecoveryLogEntry]:
    return get_default_engine().get_recovery_log()


def clear_recovery_log() -> None:
    get_default_engine().clear_recovery_log()
