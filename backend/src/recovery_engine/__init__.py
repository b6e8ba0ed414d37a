"""
Recovery and validation orchestration engine.
"""
from .attempts import AttemptTracker
from .chain import ChainResult, StepResult, ValidationChain, ValidationStep, create_chain
from .classification import ClassificationRule, KeywordClassifier, TaggedErrorClassifier
from .config import RecoveryConfig
from .decorator import OperationResult, recoverable, with_recovery
from .engine import (
    RecoveryEngine,
    clear_recovery_log,
    get_default_engine,
    get_recovery_log,
    recover,
    set_default_engine,
)
from .exceptions import (
    RecoverableOperationError,
    RecoveryError,
    RecoveryEscalatedError,
    RecoveryExhaustedError,
    StrategyRegistrationError,
    ValidationChainError,
    ValidationStepError,
)
from .recovery_log import RecoveryLog, RecoveryLogEntry
from .responses import escalation_response, recovery_status_code
from .strategies import Strategy, StrategyDependencies, StrategyRegistry
from .types import (
    Context,
    EscalationRecord,
    FailureCategory,
    RecoveryPhase,
    RecoveryResult,
    StrategyOutcome,
    ValidationOutcome,
)


__all__ = [
    # Engine
    'RecoveryEngine',
    'recover',
    'get_recovery_log',
    'clear_recovery_log',
    'get_default_engine',
    'set_default_engine',
    'AttemptTracker',
    'RecoveryLog',
    'RecoveryLogEntry',
    'RecoveryConfig',

    # Classification
    'KeywordClassifier',
    'TaggedErrorClassifier',
    'ClassificationRule',

    # Strategies
    'Strategy',
    'StrategyDependencies',
    'StrategyRegistry',

    # Validation chain
    'ValidationChain',
    'ValidationStep',
    'StepResult',
    'ChainResult',
    'create_chain',

    # Operation wrappers
    'recoverable',
    'with_recovery',
    'OperationResult',

    # Types
    'Context',
    'EscalationRecord',
    'FailureCategory',
    'RecoveryPhase',
    'RecoveryResult',
    'StrategyOutcome',
    'ValidationOutcome',

    # Responses
    'escalation_response',
    'recovery_status_code',

    # Exceptions
    'RecoveryError',
    'RecoverableOperationError',
    'RecoveryEscalatedError',
    'RecoveryExhaustedError',
    'StrategyRegistrationError',
    'ValidationChainError',
    'ValidationStepError',
]
