"""
Exceptions for the recovery engine.
"""
from typing import Optional, Union

from .types import FailureCategory


class RecoveryError(Exception):
    """Base exception for the recovery engine."""

    def __init__(self, message: str, category: FailureCategory = FailureCategory.GENERIC_ERROR):
        super().__init__(message)
        self.category = category


class RecoverableOperationError(RecoveryError):
    """Error raised by collaborators that already know their failure category.

    ``TaggedErrorClassifier`` reads ``category`` directly instead of
    inspecting the message.
    """

    def __init__(self, message: str, category: Union[FailureCategory, str]):
        if isinstance(category, str):
            category = FailureCategory(category)
        super().__init__(message, category)


class RecoveryEscalatedError(RecoveryError):
    """Raised by ``@recoverable`` when the engine asks for manual intervention."""

    def __init__(
        self,
        message: str,
        error_id: str,
        attempts: int,
        original_error: Optional[BaseException] = None,
        category: FailureCategory = FailureCategory.GENERIC_ERROR,
    ):
        super().__init__(message, category)
        self.error_id = error_id
        self.attempts = attempts
        self.original_error = original_error


class RecoveryExhaustedError(RecoveryError):
    """Raised when an operation wrapper ran out of attempts."""

    def __init__(
        self,
        message: str,
        attempts: int,
        original_error: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.attempts = attempts
        self.original_error = original_error


class StrategyRegistrationError(RecoveryError):
    """Raised when strategies cannot be registered."""


class ValidationChainError(RecoveryError):
    """Raised when a validation chain is built incorrectly."""


class ValidationStepError(RecoveryError):
    """Stand-in error for a validation step that failed without giving one."""
