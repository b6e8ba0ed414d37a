"""
Shared type definitions for the recovery engine.
"""
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Protocol, Union


Context = dict[str, Any]


class FailureCategory(Enum):
    """Categories a failure is classified into before remediation."""
    RPC_ERROR = "rpc_error"
    DATABASE_ERROR = "database_error"
    ADDRESS_VALIDATION_ERROR = "address_validation_error"
    NETWORK_TIMEOUT = "network_timeout"
    API_VALIDATION_ERROR = "api_validation_error"
    GENERIC_ERROR = "generic_error"


class RecoveryPhase(Enum):
    """Phases a single recovery call moves through."""
    CLASSIFYING = "classifying"
    SELECTING_STRATEGY = "selecting_strategy"
    APPLYING = "applying"
    VALIDATING = "validating"
    RECOVERED = "recovered"
    ESCALATED = "escalated"


@dataclass
class StrategyOutcome:
    """Result of applying one remediation strategy.

    ``new_context`` replaces the context wholesale for everything that follows.
    """

    success: bool
    action: str
    new_context: Optional[Context] = None


@dataclass
class ValidationOutcome:
    """Result of a validation predicate or a validation step."""

    success: bool
    error: Optional[Exception] = None
    context: Optional[Context] = None

    @classmethod
    def coerce(cls, value: Any) -> 'ValidationOutcome':
        """Normalize a predicate's return value.

        Predicates may return a ``ValidationOutcome``, a mapping with
        ``success``/``error``/``context`` keys, or a bare bool.
        """
        if isinstance(value, ValidationOutcome):
            return value
        if isinstance(value, bool):
            return cls(success=value)
        if isinstance(value, Mapping):
            error = value.get("error")
            if error is not None and not isinstance(error, BaseException):
                from .exceptions import ValidationStepError
                error = ValidationStepError(str(error))
            context = value.get("context")
            return cls(
                success=bool(value.get("success", False)),
                error=error,
                context=dict(context) if context is not None else None,
            )
        raise TypeError(
            f"Validation must return a ValidationOutcome, mapping or bool, got {type(value).__name__}"
        )


@dataclass
class RecoveryResult:
    """Structured outcome of ``RecoveryEngine.recover``."""

    recovered: bool
    attempts: int
    context: Context
    error_id: str
    category: FailureCategory
    strategy: Optional[str] = None
    requires_manual_intervention: bool = False
    error: Optional[str] = None
    validation_result: Optional[ValidationOutcome] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "recovered": self.recovered,
            "strategy": self.strategy,
            "attempts": self.attempts,
            "context": self.context,
            "error_id": self.error_id,
            "category": self.category.value,
            "requires_manual_intervention": self.requires_manual_intervention,
            "error": self.error,
        }


@dataclass
class EscalationRecord:
    """Persisted trace of a failure that needed manual intervention."""

    error_id: str
    category: FailureCategory
    error: str
    attempts: int
    context: Context = field(default_factory=dict)
    correlation_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.created_at.tzinfo is None:
            self.created_at = self.created_at.replace(tzinfo=timezone.utc)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "error_id": self.error_id,
            "category": self.category.value,
            "error": self.error,
            "attempts": self.attempts,
            "context": self.context,
            "correlation_id": self.correlation_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'EscalationRecord':
        """Create from dictionary."""
        data = data.copy()
        if isinstance(data.get('category'), str):
            data['category'] = FailureCategory(data['category'])
        if isinstance(data.get('created_at'), str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        return cls(**data)


ValidationFn = Callable[[Context], Awaitable[Union[ValidationOutcome, Mapping[str, Any]]]]


class ErrorClassifierProtocol(Protocol):
    """Anything that can map an exception to a failure category."""

    def classify(self, error: BaseException) -> FailureCategory:
        ...


class EscalationPersistence(Protocol):
    """Protocol for escalation persistence implementations."""

    async def save(self, record: EscalationRecord) -> None:
        """Save an escalation record."""
        ...

    async def load(self, error_id: str) -> Optional[EscalationRecord]:
        """Load an escalation record by error ID."""
        ...

    async def delete(self, error_id: str) -> None:
        """Delete an escalation record."""
        ...

    async def list_by_category(self, category: FailureCategory) -> list[EscalationRecord]:
        """List all escalation records for a category."""
        ...
